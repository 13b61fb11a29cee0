"""Simple YAML configuration loader for screenrecorder."""

import os
import copy
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "server": {
        "host": "localhost",
        "port": 8080,
    },
    "recording": {
        "upload_folder": "./recordings",
        "max_sessions": 10,
        "session_timeout_minutes": 30,
        "queue_size": 256,
        "write_buffer_bytes": 1024 * 1024,
        "persisted_sources": ["screen"],
    },
    "logging": {
        "level": "INFO",
        "file_path": "./logs/app.log",
        "console_output": True,
    },
}

# (environment variable, config key, type)
ENV_OVERRIDES: List[Tuple[str, str, type]] = [
    ("UPLOAD_FOLDER", "recording.upload_folder", str),
    ("MAX_SESSIONS", "recording.max_sessions", int),
    ("SESSION_TIMEOUT_MINUTES", "recording.session_timeout_minutes", int),
    ("SERVER_HOST", "server.host", str),
    ("SERVER_PORT", "server.port", int),
    ("LOG_LEVEL", "logging.level", str),
    ("LOG_FILE", "logging.file_path", str),
]


class ScreenRecorderConfig:
    """screenrecorder configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, the built-in
                        defaults are used (environment overrides still apply).
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is not None and not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        self.config = self._load_config()
        self._apply_env_overrides(self.config)

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file over the defaults."""
        config = copy.deepcopy(DEFAULT_CONFIG)
        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            return config

        logger.info(f"Loading configuration from: {self.config_file}")
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not loaded:
            raise ValueError("Configuration file is empty")
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping")

        self._merge(config, loaded)

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> None:
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                self._merge(base[key], value)
            else:
                base[key] = value

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        # Resolve upload folder
        upload_folder = config['recording'].get('upload_folder')
        if upload_folder and not os.path.isabs(upload_folder):
            config['recording']['upload_folder'] = str(config_dir / upload_folder)

        # Resolve log file path
        log_path = config['logging'].get('file_path')
        if log_path and not os.path.isabs(log_path):
            config['logging']['file_path'] = str(config_dir / log_path)

    def _apply_env_overrides(self, config: Dict[str, Any]) -> None:
        for env_name, key_path, cast in ENV_OVERRIDES:
            raw = os.environ.get(env_name)
            if not raw:
                continue
            try:
                value = cast(raw)
            except ValueError:
                logger.warning(f"Ignoring invalid {env_name}={raw!r}")
                continue
            self.set(key_path, value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'recording.max_sessions').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'server.port')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        # Set the final value
        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_upload_folder(self) -> str:
        """Get recording output directory path."""
        upload_folder = self.get('recording.upload_folder', './recordings')
        return str(Path(upload_folder).absolute())

    def get_max_sessions(self) -> int:
        return int(self.get('recording.max_sessions', 10))

    def get_session_timeout_seconds(self) -> float:
        """Get maximum session lifetime in seconds."""
        return float(self.get('recording.session_timeout_minutes', 30)) * 60

    def get_queue_size(self) -> int:
        return int(self.get('recording.queue_size', 256))

    def get_write_buffer_bytes(self) -> int:
        return int(self.get('recording.write_buffer_bytes', 1024 * 1024))

    def get_persisted_sources(self) -> List[str]:
        sources = self.get('recording.persisted_sources', ['screen'])
        if isinstance(sources, str):
            sources = [sources]
        return list(sources)
