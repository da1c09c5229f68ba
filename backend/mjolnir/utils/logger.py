"""
Logging setup.

One stderr handler on the root logger, configured on first use: coloured
single-line records for a terminal in development, one JSON object per
record otherwise. stdout stays free for the CLI's JSON response.

Records may carry ``request_id`` (set by the request logger) and
``operation``; both formatters print them when present.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from pydantic import ValidationError

from mjolnir.config import get_settings

CONTEXT_FIELDS = ("request_id", "operation")
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "watchfiles", "slowapi")


def _context(record: logging.LogRecord) -> dict[str, str]:
    return {name: getattr(record, name) for name in CONTEXT_FIELDS if getattr(record, name, None)}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class DevFormatter(logging.Formatter):
    """``HH:MM:SS [LEVEL] logger: message  key=value``, coloured on a TTY."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, colour: bool) -> None:
        super().__init__()
        self.colour = colour

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S")
        level = f"[{record.levelname:<8}]"
        if self.colour:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"
        line = f"{stamp} {level} {record.name}: {record.getMessage()}"
        context = _context(record)
        if context:
            line += "  " + " ".join(f"{k}={v}" for k, v in context.items())
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


_configured = False


def _configure_root(json_logs: bool, level: str | None) -> None:
    global _configured
    if _configured:
        return
    _configured = True

    handler = logging.StreamHandler(sys.stderr)
    if json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(DevFormatter(colour=sys.stderr.isatty()))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper() if level else logging.INFO)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Named logger; the root handler is installed on the first call."""
    try:
        settings = get_settings()
        json_logs, level = settings.json_logs, settings.LOG_LEVEL or None
    except ValidationError:
        # Broken environment: still log, in the development style.
        json_logs, level = False, None
    _configure_root(json_logs, level)
    return logging.getLogger(name)
