"""
Logging setup for the SayType bridge.

One rotating ``bridge.log`` in JSON lines plus a console stream. Each record
is tagged with the bridge component that produced it, taken from the logger
name (``saytype_bridge.api.routes.transcribe`` -> ``api``, ``uvicorn.error``
-> ``uvicorn``), so the file can be filtered per component. Values passed via
``extra=`` (port, format tag, timings) become top-level JSON keys.

The ``logging`` section of bridge.yaml may set:

    logging:
      level: DEBUG          # default INFO
      directory: ~/logs     # default <config dir>/logs
      max_size_mb: 10
      backup_count: 5
"""

import json
import logging
import logging.handlers
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

LOG_FILE_NAME = "bridge.log"
PACKAGE_LOGGER = "saytype_bridge"

DEFAULT_LEVEL = "INFO"
DEFAULT_MAX_SIZE_MB = 10
DEFAULT_BACKUP_COUNT = 5

# Attributes every LogRecord has; anything else on a record came from ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "service", "taskName"}


def service_for(logger_name: str) -> str:
    """Component tag for a logger name."""
    parts = logger_name.split(".")
    if parts[0] == PACKAGE_LOGGER:
        return parts[1] if len(parts) > 1 else "main"
    return parts[0] or "main"


class ServiceFilter(logging.Filter):
    """Tag records with ``service`` unless the caller passed one in ``extra``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "service"):
            record.service = service_for(record.name)
        return True


class JsonLineFormatter(logging.Formatter):
    """One JSON object per line for bridge.log."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", service_for(record.name)),
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s [%(service)s] %(message)s",
            datefmt="%H:%M:%S",
        )


_log_path: Optional[Path] = None


def default_log_dir() -> Path:
    from saytype_bridge.config import get_user_config_dir

    return get_user_config_dir() / "logs"


def setup_logging(
    config: Optional[Mapping[str, Any]] = None,
    log_dir: Optional[Path] = None,
) -> Path:
    """
    Configure the root logger once per process.

    Args:
        config: The ``logging`` section of bridge.yaml (may be empty)
        log_dir: Directory override from the command line

    Returns:
        Path of the log file. Later calls return it without reconfiguring.
    """
    global _log_path
    if _log_path is not None:
        return _log_path

    config = config or {}
    if log_dir is not None:
        directory = Path(log_dir)
    elif config.get("directory"):
        directory = Path(config["directory"]).expanduser()
    else:
        directory = default_log_dir()
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / LOG_FILE_NAME

    level_name = str(config.get("level", DEFAULT_LEVEL)).upper()
    service_filter = ServiceFilter()

    file_handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=int(config.get("max_size_mb", DEFAULT_MAX_SIZE_MB)) * 1_000_000,
        backupCount=int(config.get("backup_count", DEFAULT_BACKUP_COUNT)),
        encoding="utf-8",
    )
    file_handler.setFormatter(JsonLineFormatter())
    file_handler.addFilter(service_filter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ConsoleFormatter())
    console_handler.addFilter(service_filter)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    root.addHandler(file_handler)
    root.addHandler(console_handler)

    _log_path = log_path
    get_logger("main").info(f"Logging to {log_path}", extra={"log_level": level_name})
    return log_path


def get_logger(service_name: str) -> logging.Logger:
    """Logger for a bridge component, e.g. ``get_logger("server")``."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{service_name}")
