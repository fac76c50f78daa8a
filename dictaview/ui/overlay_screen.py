"""Terminal rendering of the live recording overlay."""

import logging
from typing import List, Optional
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models.status import OverlayStatus
from ..models.ui import OverlaySnapshot

logger = logging.getLogger(__name__)

LEVEL_GLYPHS = " ▁▂▃▄▅▆▇█"
DEFAULT_PLACEHOLDER = "Listening..."

_STATUS_STYLES = {
    OverlayStatus.IDLE: "dim white",
    OverlayStatus.LISTENING: "bold red",
    OverlayStatus.TRANSCRIBING: "bold yellow",
    OverlayStatus.ERROR: "bold magenta",
}


def tail_text(text: str, max_chars: int) -> str:
    """Keep the end of a long transcript visible, like a preview scrolled to the end."""
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    if max_chars == 1:
        return text[-1:]
    return "…" + text[-(max_chars - 1):]


def level_bars(history: List[float]) -> str:
    """Render conditioned levels in [0, 1] as block glyphs."""
    top = len(LEVEL_GLYPHS) - 1
    return "".join(LEVEL_GLYPHS[round(max(0.0, min(1.0, value)) * top)] for value in history)


class OverlayScreen:
    """Projects overlay snapshots and level history onto a rich renderable."""

    def __init__(self, console: Optional[Console] = None, max_transcript_chars: int = 48):
        """Initialize overlay screen.

        Args:
            console: Console used for output
            max_transcript_chars: Visible transcript width; longer text shows its tail
        """
        self.console = console or Console()
        self.max_transcript_chars = max_transcript_chars
        self.snapshot = OverlaySnapshot(
            status=OverlayStatus.IDLE,
            elapsed_label="00:00",
            transcript_text="",
            is_listening=False,
            is_transcribing=False,
        )
        self.levels: List[float] = []
        self.live: Optional[Live] = None

    def update_snapshot(self, snapshot: OverlaySnapshot) -> None:
        self.snapshot = snapshot
        self.refresh()

    def update_levels(self, history: List[float]) -> None:
        self.levels = list(history)
        self.refresh()

    def refresh(self) -> None:
        if self.live is not None:
            self.live.update(self.render())

    def transcript_line(self) -> Text:
        snapshot = self.snapshot
        if not snapshot.has_transcript:
            return Text(snapshot.transcript_text or DEFAULT_PLACEHOLDER, style="dim italic")
        return Text(tail_text(snapshot.transcript_text, self.max_transcript_chars), style="white")

    def render(self) -> Panel:
        """Build the overlay pill for the current snapshot."""
        snapshot = self.snapshot
        style = _STATUS_STYLES.get(snapshot.status, "white")

        grid = Table.grid(padding=(0, 1))
        grid.add_column(width=1)
        grid.add_column(ratio=1)
        grid.add_column(justify="right")

        indicator = Text("●", style=style if snapshot.is_listening else "dim")
        elapsed = Text(snapshot.elapsed_label if snapshot.is_listening else "...", style="cyan")
        grid.add_row(indicator, self.transcript_line(), elapsed)

        if self.levels:
            grid.add_row("", Text(level_bars(self.levels), style=style), "")

        return Panel(grid, title=snapshot.status.value, border_style=style)
