"""
Centralized Logging

Architectural Intent:
- Provides structured JSON logging for all lambdaform components
- Centralizes log configuration to avoid scattered print() calls
- Supports configurable log levels via CLI flags (--verbose, --debug)
"""

import json
import logging
import re
import sys
from datetime import datetime, UTC

_BEARER = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE)
_CONTEXT_FIELDS = ("resource_id", "operation")


def mask_secrets(text: str) -> str:
    """Replace bearer credentials in a log line."""
    return _BEARER.sub(r"\1***", text)


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": mask_secrets(record.getMessage()),
        }
        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value:
                log_entry[name] = value
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = mask_secrets(self.formatException(record.exc_info))
        return json.dumps(log_entry)


class MaskingFormatter(logging.Formatter):
    """Human-readable formatter that still masks bearer credentials."""

    def format(self, record: logging.LogRecord) -> str:
        return mask_secrets(super().format(record))


def configure_logging(
    level: int = logging.INFO,
    json_format: bool = False,
) -> None:
    """Configure logging for lambdaform.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, etc.)
        json_format: If True, use JSON structured output. Otherwise human-readable.
    """
    root = logging.getLogger("lambdaform")
    root.setLevel(level)

    # Remove existing handlers
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            MaskingFormatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )

    root.addHandler(handler)
