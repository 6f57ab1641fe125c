"""Simple YAML configuration loader for Scribe."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
import logging

from ..exceptions import ConfigurationError
from ..models.audio import Encoding

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "audio": {
        "device_id": None,
        "sample_rate": 16000,
        "channels": 1,
        "frames_per_buffer": 1024,
    },
    "recording": {
        "preferred_encoding": "audio/webm; codecs=opus",
        "fallback_encodings": [
            "audio/webm",
            "audio/ogg",
            "audio/mp4",
            "audio/mp3",
            "audio/m4a",
            "audio/wav",
            "audio/flac",
        ],
        "bit_rate": 32000,
        "transition_timeout_seconds": 1.0,
        "start_timeout_seconds": 5.0,
    },
    "transcription": {
        "enabled": True,
        "platform": "openai",
        "language": "auto",
        "max_chunk_size_bytes": 25 * 1024 * 1024,
        "multi_speaker": False,
        "openai": {
            "api_key": "",
            "base_url": "https://api.openai.com/v1",
            "model": "whisper-1",
        },
        "assemblyai": {
            "api_key": "",
            "poll_interval_seconds": 3.0,
            "poll_timeout_seconds": None,
        },
        "google": {
            "credentials_path": None,
            "operation_timeout_seconds": 900.0,
        },
    },
    "storage": {
        "recording_directory": "recordings",
    },
    "logging": {
        "level": "INFO",
        "file_path": "logs/scribe.log",
        "console_output": True,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


class ScribeConfig:
    """Scribe configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults are used
                        and relative paths resolve against the working directory.
        """
        self.config = copy.deepcopy(DEFAULT_CONFIG)

        if config_path is None:
            self.config_file = None
            self._resolve_paths(self.config, Path.cwd())
            logger.info("No configuration file given, using defaults")
            return

        self.config_file = Path(config_path)
        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        _merge(self.config, self._load_config())
        self._resolve_paths(self.config, self.config_file.parent)

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e

        if not config:
            raise ConfigurationError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any], base_dir: Path) -> None:
        """Resolve relative paths in configuration relative to ``base_dir``."""
        for section, key in (("storage", "recording_directory"),
                             ("logging", "file_path")):
            value = config.get(section, {}).get(key)
            if value and not os.path.isabs(value):
                config[section][key] = str(base_dir / value)

        google = config.get("transcription", {}).get("google", {})
        creds_path = google.get("credentials_path")
        if creds_path and not os.path.isabs(creds_path):
            google["credentials_path"] = str(base_dir / creds_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'transcription.language').

        Args:
            key_path: Dot-separated key path (e.g., 'transcription.openai.api_key')
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
            key_path: Dot-separated path to config value (e.g., 'transcription.platform')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_preferred_encoding(self) -> Encoding:
        return self._parse_encoding(self.get('recording.preferred_encoding'))

    def get_fallback_encodings(self) -> List[Encoding]:
        return [self._parse_encoding(mime) for mime in self.get('recording.fallback_encodings', [])]

    def _parse_encoding(self, mime_type: str) -> Encoding:
        try:
            return Encoding.from_mime_type(mime_type)
        except (ValueError, AttributeError) as e:
            raise ConfigurationError(f"Invalid encoding in configuration: {mime_type!r}") from e

    def get_stream_constraints(self) -> Dict[str, int]:
        return {
            "sample_rate": self.get('audio.sample_rate', 16000),
            "channels": self.get('audio.channels', 1),
            "frames_per_buffer": self.get('audio.frames_per_buffer', 1024),
        }

    def get_google_credentials_path(self) -> str:
        """Get Google credentials path - CRASHES if not found."""
        creds_path = self.get('transcription.google.credentials_path')
        if not creds_path:
            raise ConfigurationError("Google credentials path not configured")

        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise FileNotFoundError(f"Google credentials file not found: {creds_path}")

        return str(creds_file.absolute())

    def get_recording_directory(self) -> str:
        """Get recording directory path."""
        recording_dir = self.get('storage.recording_directory', 'recordings')
        return str(Path(recording_dir).absolute())
