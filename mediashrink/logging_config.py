"""
Logging Configuration — one setup call for the server and the CLI.

Two output styles:
- text: coloured single lines for terminals (default)
- json: one object per line for log collectors, carrying job context

## Environment Variables

- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_FORMAT: json, text (default: text)

## Usage

    from mediashrink.logging_config import setup_logging

    setup_logging()

    logger.info("Compressed", extra={"job_id": job.job_id, "kind": "video"})
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from datetime import datetime, timezone
from typing import Optional

# Record attributes copied into JSON lines when a call passes them via extra=
CONTEXT_FIELDS = ("job_id", "kind", "stage")

# Third-party loggers that would otherwise duplicate or flood our output
QUIET_LOGGERS = ("werkzeug", "PIL")


class JSONFormatter(logging.Formatter):
    """Machine-readable lines: ts, level, logger, message, job context."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name))
            for name in CONTEXT_FIELDS
            if hasattr(record, name)
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """
    Terminal lines, e.g.

        14:02:11 WARNING [transcoder     ] [video pass 1] ffmpeg failed (rc=1)
    """

    LEVEL_COLORS = {
        logging.DEBUG: "36",
        logging.INFO: "32",
        logging.WARNING: "33",
        logging.ERROR: "31",
        logging.CRITICAL: "35",
    }

    def __init__(self, color: Optional[bool] = None):
        super().__init__()
        self.color = sys.stderr.isatty() if color is None else color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:7}"
        if self.color:
            code = self.LEVEL_COLORS.get(record.levelno, "0")
            level = f"\033[{code}m{level}\033[0m"

        stamp = time.strftime("%H:%M:%S", time.localtime(record.created))
        source = record.name.rsplit(".", 1)[-1][:15]
        text = f"{stamp} {level} [{source:15}] {record.getMessage()}"
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def setup_logging(
    level: Optional[str] = None,
    format_type: Optional[str] = None,
) -> None:
    """
    Replace the root logger's handlers with one stderr handler.

    Args:
        level: Level name, falling back to LOG_LEVEL, then INFO.
        format_type: "json" or "text", falling back to LOG_FORMAT, then text.
    """
    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    style = (format_type or os.environ.get("LOG_FORMAT") or "text").lower()
    numeric = logging.getLevelName(level_name)
    if not isinstance(numeric, int):
        numeric = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if style == "json" else HumanFormatter())
    logging.basicConfig(level=numeric, handlers=[handler], force=True)

    # Request lines come from our own after_request hook
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(f"Logging ready (level={level_name}, format={style})")
