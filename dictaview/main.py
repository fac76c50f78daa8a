"""Main application entry point for Dictaview."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.live import Live

from . import __version__
from .backend import PubSubOverlayBackend, ReplayDriver, VoiceEventPublisher, load_script
from .config import ConfigurationError, DictaviewConfig
from .overlay import LevelMonitor, OverlayStateMachine
from .ui import OverlayScreen

logger = logging.getLogger(__name__)


class OverlayApp:
    """Wires a replayed backend feed into a live terminal overlay."""

    def __init__(self, config_path: Optional[str] = None, log_level: Optional[str] = None):
        # Load configuration
        self.config = DictaviewConfig(config_path)
        # Set up logging (override config with command line if specified)
        level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, level)

        self.settings = self.config.get_overlay_settings()
        self.console = Console()

    def init(self) -> None:
        logger.info("Initializing overlay components...")

        self.publisher = VoiceEventPublisher(self.settings.topic_prefix)
        self.backend = PubSubOverlayBackend(self.publisher)
        self.state_machine = OverlayStateMachine(
            self.backend,
            tick_interval_ms=self.settings.tick_interval_ms,
        )
        self.level_monitor = LevelMonitor(
            self.backend,
            status_source=lambda: self.state_machine.status,
            history_length=self.settings.level_history_length,
            poll_interval_ms=self.settings.level_poll_interval_ms,
        )
        self.screen = OverlayScreen(
            self.console,
            max_transcript_chars=self.config.get('ui.max_transcript_chars', 48),
        )
        self.state_machine.add_listener(self.screen.update_snapshot)
        self.level_monitor.add_listener(self.screen.update_levels)

    def run(self, script_path: Optional[str] = None, speed: float = 1.0) -> int:
        """Replay a script against the live overlay.

        Args:
            script_path: Replay script; defaults to replay.script_path from config
            speed: Replay speed factor

        Returns:
            Number of replayed events
        """
        script_path = script_path or self.config.get('replay.script_path')
        if not script_path:
            raise ConfigurationError("No replay script given and replay.script_path is not configured")
        events = load_script(script_path)
        driver = ReplayDriver(self.publisher, events, speed=speed)
        return asyncio.run(self._run(driver))

    async def _run(self, driver: ReplayDriver) -> int:
        refresh = self.config.get('ui.refresh_per_second', 20)
        with Live(self.screen.render(), console=self.console,
                  refresh_per_second=refresh, transient=False) as live:
            self.screen.live = live
            try:
                await self.state_machine.start()
                self.level_monitor.start()
                return await driver.run()
            finally:
                self.cleanup()

    def cleanup(self) -> None:
        if not hasattr(self, 'state_machine'):
            return
        self.level_monitor.stop()
        self.state_machine.dispose()
        self.screen.live = None


def setup_logging(config: DictaviewConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get_log_file_path()
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - warnings only, so it does not fight the live overlay
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    # Configure root logger
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("Dictaview overlay starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dictaview",
        description="Dictaview - live recording overlay driven by a scripted backend feed",
    )

    parser.add_argument(
        "script",
        type=str,
        nargs="?",
        help="Path to a YAML replay script with status, delta and level events (default: replay.script_path from config)"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, INFO)"
    )

    parser.add_argument(
        "--speed",
        type=float,
        default=1.0,
        help="Replay speed factor (default: 1.0)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Dictaview v{__version__}"
    )
    return parser


def main(argv: Optional[list] = None) -> None:
    """Main entry point for Dictaview."""
    args = build_parser().parse_args(argv)

    app = None
    try:
        app = OverlayApp(args.config, args.log_level)
        app.init()
        sent = app.run(args.script, speed=args.speed)
        app.console.print(f"Replayed {sent} events", style="green")
    except KeyboardInterrupt:
        if app is not None:
            app.cleanup()
        print("\nGoodbye!")
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
