"""
Bridge configuration management for SayType.

Stores the bridge settings (enabled flag, port, bearer token, onboarding
state) in a YAML file in the per-user configuration directory:

    Linux/macOS: $XDG_CONFIG_HOME/SayTypeBridge/bridge.yaml
                 or ~/.config/SayTypeBridge/bridge.yaml
    Windows:     ~/Documents/SayTypeBridge/bridge.yaml

The file holds a ``bridge`` section managed by ConfigStore and an optional
``logging`` section passed to ``setup_logging``. A missing or unreadable
``bridge`` section is replaced with defaults and a freshly generated token.

A running server keeps the token it was started with; ``regenerate_token``
only changes the stored value.
"""

import logging
import os
import secrets
import string
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from filelock import FileLock

logger = logging.getLogger(__name__)

APP_DIR_NAME = "SayTypeBridge"
CONFIG_FILE_NAME = "bridge.yaml"

DEFAULT_PORT = 8765
MIN_PORT = 1024
MAX_PORT = 65535

TOKEN_LENGTH = 32
TOKEN_ALPHABET = string.ascii_lowercase + string.digits


def get_user_config_dir() -> Path:
    """
    Get the user configuration directory based on platform.

    Returns:
        Path to user config directory:
        - Linux/macOS: $XDG_CONFIG_HOME/SayTypeBridge/ or ~/.config/SayTypeBridge/
        - Windows: ~/Documents/SayTypeBridge/
    """
    if sys.platform == "win32":
        return Path.home() / "Documents" / APP_DIR_NAME

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_DIR_NAME
    return Path.home() / ".config" / APP_DIR_NAME


def generate_random_token() -> str:
    """Generate a 32 character lowercase alphanumeric token."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


@dataclass
class BridgeConfig:
    """Persisted bridge settings."""

    enabled: bool = False
    port: int = DEFAULT_PORT
    token: str = field(default_factory=generate_random_token)
    onboarded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeConfig":
        """
        Build a config from a stored section.

        Raises:
            ValueError: If a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError("bridge section must be a mapping")

        try:
            enabled = data["enabled"]
            port = data["port"]
            token = data["token"]
            onboarded = data["onboarded"]
        except KeyError as e:
            raise ValueError(f"missing field {e.args[0]!r}") from e

        if not isinstance(enabled, bool) or not isinstance(onboarded, bool):
            raise ValueError("enabled and onboarded must be booleans")
        if isinstance(port, bool) or not isinstance(port, int):
            raise ValueError("port must be an integer")
        if not isinstance(token, str):
            raise ValueError("token must be a string")

        return cls(enabled=enabled, port=port, token=token, onboarded=onboarded)


def validate_port(port: int) -> int:
    """Ensure a port is in the user-assignable range."""
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValueError(f"Port must be an integer, got {type(port).__name__}")
    if not MIN_PORT <= port <= MAX_PORT:
        raise ValueError(f"Port must be between {MIN_PORT} and {MAX_PORT}, got {port}")
    return port


class ConfigStore:
    """
    YAML-backed store for BridgeConfig.

    Reads and writes are guarded by a lock file; writes go to a temp file
    that is renamed over the original.
    """

    SECTION = "bridge"

    def __init__(self, path: Optional[Path] = None):
        """
        Initialize the store.

        Args:
            path: Path to the YAML file. Uses the user config dir if not specified.
        """
        self.path = Path(path) if path else get_user_config_dir() / CONFIG_FILE_NAME
        self.lock_path = self.path.with_suffix(self.path.suffix + ".lock")
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _read_document(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (yaml.YAMLError, OSError) as e:
            logger.warning(f"Could not read {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write_document(self, data: Dict[str, Any]) -> None:
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with temp_path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False)
        temp_path.replace(self.path)

    def get(self) -> BridgeConfig:
        """
        Return the stored config, creating and persisting defaults if needed.
        """
        with FileLock(self.lock_path):
            document = self._read_document()
            section = document.get(self.SECTION)
            if section is not None:
                try:
                    return BridgeConfig.from_dict(section)
                except ValueError as e:
                    logger.warning(f"Invalid bridge config, resetting to defaults: {e}")

            config = BridgeConfig()
            document[self.SECTION] = config.to_dict()
            self._write_document(document)
            logger.info(f"Created default bridge config at {self.path}")
            return config

    def set(self, config: BridgeConfig) -> None:
        """
        Persist a config, leaving other sections of the file untouched.

        Raises:
            ValueError: If the port is outside 1024-65535
        """
        validate_port(config.port)
        with FileLock(self.lock_path):
            document = self._read_document()
            document[self.SECTION] = config.to_dict()
            self._write_document(document)

    def regenerate_token(self) -> str:
        """Replace the stored token and return the new one."""
        config = self.get()
        config.token = generate_random_token()
        self.set(config)
        logger.info("Bridge token regenerated; restart the server to apply it")
        return config.token

    @property
    def logging(self) -> Dict[str, Any]:
        """Get logging configuration."""
        with FileLock(self.lock_path):
            section = self._read_document().get("logging", {})
        return section if isinstance(section, dict) else {}
