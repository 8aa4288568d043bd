"""
Logging setup — console + rotating file handlers on the root logger.

Modules keep using ``logging.getLogger(__name__)``; this only wires the
handlers once at startup.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from visualization_api.core.config import Settings

_CONSOLE_FORMAT = "%(asctime)s.%(msecs)03d %(funcName)s ▶ %(levelname).4s %(message)s"
_FILE_FORMAT = "%(asctime)s.%(msecs)03d %(funcName)s %(levelname).4s %(message)s"
_DATE_FORMAT = "%H:%M:%S"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

# Marker attribute so repeated calls don't stack handlers
_HANDLER_FLAG = "_visualization_api_handler"


def level_from_name(name: str) -> int:
    """Map a level name to its ``logging`` constant (INFO when unknown)."""
    return _LEVELS.get(name.strip().lower(), logging.INFO)


def setup_logging(settings: Settings) -> None:
    """Attach console and rotating-file handlers to the root logger."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_FLAG, False):
            root.removeHandler(handler)
            handler.close()

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if settings.LOG_CONSOLE_DEBUG else logging.INFO)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT, _DATE_FORMAT))
    setattr(console, _HANDLER_FLAG, True)
    root.addHandler(console)

    if settings.LOG_FILE:
        log_dir = os.path.dirname(settings.LOG_FILE)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.LOG_FILE, maxBytes=10 * 1024 * 1024, backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level_from_name(settings.LOG_LEVEL))
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, _DATE_FORMAT))
        setattr(file_handler, _HANDLER_FLAG, True)
        root.addHandler(file_handler)

    root.setLevel(logging.DEBUG)
