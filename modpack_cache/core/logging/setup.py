# modpack_cache/core/logging/setup.py
from __future__ import annotations
import logging
import logging.handlers
from pathlib import Path
from typing import TYPE_CHECKING

from .formatters import DevFormatter, JsonFormatter, RedactingFormatter

if TYPE_CHECKING:
    from modpack_cache.config.settings import LoggingSettings

__all__ = ["NO_PROPAGATE", "configureLogging"]



# Disable propagation from chatty libraries
NO_PROPAGATE = [
    "asyncio",
    "httpcore.connection", "httpcore.http11", "httpcore.http2",
    "hpack",
]



def configureLogging(settings: LoggingSettings) -> None:
    """
    Initiate the global logging configuration.

      - Console logs at `settings.level`, pretty (DevFormatter) or JSON lines
      - Optional rotating JSON-lines file (`settings.jsonFile`)
      - API keys and tokens scrubbed from every handler
    """
    rootLevel = logging.getLevelName(str(settings.level).upper())
    if not isinstance(rootLevel, int):
        rootLevel = logging.INFO

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(rootLevel)

    for name in NO_PROPAGATE:
        logging.getLogger(name).propagate = False

    devFmt = RedactingFormatter(DevFormatter())
    jsonFmt = RedactingFormatter(JsonFormatter())

    consoleHandler = logging.StreamHandler()
    consoleHandler.setLevel(rootLevel)
    consoleHandler.setFormatter(devFmt if settings.devFormat else jsonFmt)
    root.addHandler(consoleHandler)

    if settings.jsonFile:
        jsonPath = Path(settings.jsonFile)
        jsonPath.parent.mkdir(parents=True, exist_ok=True)
        fileHandler = logging.handlers.RotatingFileHandler(
            jsonPath,
            maxBytes=settings.maxBytes,
            backupCount=settings.backupCount,
            encoding="utf-8"
        )
        fileHandler.setLevel(logging.DEBUG)
        fileHandler.setFormatter(jsonFmt)
        root.addHandler(fileHandler)

    # Per-logger tweaks (reduce noise)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
