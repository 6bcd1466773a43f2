"""
Logging Configuration — Console logging for the g2g CLI.

Every pipeline module logs through logging.getLogger(__name__) and tags
its messages with a "[stage] " prefix (e.g. "[mirror] Pushing..."). This
module turns those records into either:

- Human-readable lines on stderr (colored levels when stderr is a terminal)
- One JSON object per line, for cron jobs and CI logs

A RedactingFilter sits on the handler, so a token-bearing remote URL never
reaches the output whichever module logged it.

## Environment Variables

- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_FORMAT: json, text (default: text)

## Usage

    from g2g.logging_config import setup_logging

    setup_logging()  # Call once at startup
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO, Tuple

from .repo.git import redact

_STAGE_PREFIX = re.compile(r"^\[(\w+)\]\s*")


def split_stage(message: str) -> Tuple[Optional[str], str]:
    """'[mirror] Pushing...' → ('mirror', 'Pushing...')."""
    match = _STAGE_PREFIX.match(message)
    if not match:
        return None, message
    return match.group(1), message[match.end():]


class RedactingFilter(logging.Filter):
    """Strip user:token@ from URLs in the fully formatted message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Output format:
    {"ts": "...", "level": "...", "stage": "mirror", "message": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        stage, message = split_stage(record.getMessage())
        log_entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
        }
        if stage:
            log_entry["stage"] = stage
        # Primary and mirror stages log extra={"branch": ...}
        if hasattr(record, "branch"):
            log_entry["branch"] = record.branch

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


class HumanFormatter(logging.Formatter):
    """
    Terminal formatter.

    Output format:
    12:34:56 INFO    Message
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, stream: Optional[TextIO] = None):
        super().__init__()
        self.stream = stream or sys.stderr

    def _use_color(self) -> bool:
        isatty = getattr(self.stream, "isatty", None)
        return bool(isatty and isatty())

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:7}"
        if self._use_color():
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        line = f"{datetime.now():%H:%M:%S} {level} {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: Optional[str] = None,
    format_type: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure the root logger for a CLI run.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
               Defaults to LOG_LEVEL env var or INFO.
        format_type: Output format (json, text).
                     Defaults to LOG_FORMAT env var or text.
        stream: Where to write (default: stderr, so stdout stays for
                setup instructions and remediation)
    """
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    log_format = (format_type or os.environ.get("LOG_FORMAT", "text")).lower()
    stream = stream or sys.stderr

    numeric_level = getattr(logging, log_level, logging.INFO)

    formatter: logging.Formatter
    if log_format == "json":
        formatter = JSONFormatter()
    else:
        formatter = HumanFormatter(stream)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    handler.setLevel(numeric_level)
    handler.addFilter(RedactingFilter())

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()
    root.addHandler(handler)

    logging.getLogger(__name__).debug(
        f"Logging configured: level={log_level}, format={log_format}"
    )
