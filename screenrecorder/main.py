"""Main application entry point for screenrecorder."""

import sys
import argparse
import logging
from pathlib import Path
from typing import Optional

from aiohttp import web

from .api.http_api import build_app
from .config import ScreenRecorderConfig
from .services.session_manager import SessionManager

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = ScreenRecorderConfig(config_path)
        # Set up logging (command line overrides config)
        level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, level)
        self.manager: Optional[SessionManager] = None
        self.app: Optional[web.Application] = None

    def init(self) -> web.Application:
        logger.info("Initializing services...")
        self.manager = SessionManager.from_config(self.config)
        self.app = build_app(self.manager)

        logger.info(f"Upload folder: {self.config.get_upload_folder()}")
        logger.info(f"Max sessions: {self.manager.max_sessions}")
        logger.info(f"Session timeout: {self.manager.session_timeout}s")
        return self.app

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        host = host or self.config.get('server.host', 'localhost')
        port = int(port or self.config.get('server.port', 8080))
        logger.info(f"Starting screenrecorder server on {host}:{port}")
        # manager shutdown runs from the app's on_cleanup hook
        web.run_app(self.app, host=host, port=port, print=None)


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    # Get log file path from config
    log_file_path = config.get('logging.file_path', 'logs/app.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    # Set up handlers
    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.info(f"screenrecorder v{__version__} logging to {log_file_path} at {level.upper()}, "
                f"recordings in {config.get_upload_folder()}")


def main() -> None:
    """Main entry point for screenrecorder."""
    parser = argparse.ArgumentParser(
        description="screenrecorder - chunked media recording server"
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
        "--host",
        type=str,
        help="Bind address (overrides config)"
    )

    parser.add_argument(
        "--port",
        type=int,
        help="Listen port (overrides config)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"screenrecorder v{__version__}"
    )

    args = parser.parse_args()

    try:
        server = Server(args.config, args.log_level)
        server.init()
        server.run(args.host, args.port)
    except KeyboardInterrupt:
        print("\nGoodbye!")
    except Exception as e:
        print(f"Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
