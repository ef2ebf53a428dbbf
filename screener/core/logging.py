"""Logging setup for scans, the return tracker and the API.

Every record emitted while a scan is running carries the scan's run ID,
and while a ticker is being analyzed, the ticker as well. Both come from
context variables so nothing has to be threaded through call signatures.

Usage:
    from screener.core.logging import get_logger, run_id_var

    logger = get_logger("services.pipeline")
    token = run_id_var.set(run_id)
    try:
        logger.info("Scan started")   # -> ... [1a2b3c4d] screener.services.pipeline: Scan started
    finally:
        run_id_var.reset(token)
"""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import settings


run_id_var: ContextVar[Optional[str]] = ContextVar("run_id", default=None)
ticker_var: ContextVar[Optional[str]] = ContextVar("ticker", default=None)

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "yfinance", "apprise", "openai")

# Attributes every LogRecord has; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "run_id", "ticker"}


class ScanContextFilter(logging.Filter):
    """Copy the current run ID and ticker onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = run_id_var.get()
        record.ticker = ticker_var.get()
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in ("run_id", "ticker"):
            value = getattr(record, key, None)
            if value:
                entry[key] = value

        entry.update(
            {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}
        )

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if settings.debug:
            entry["location"] = f"{record.pathname}:{record.lineno} ({record.funcName})"

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Readable single-line format for terminals."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S"
        )
        context = ""
        run_id = getattr(record, "run_id", None)
        if run_id:
            context += f"[{run_id[:8]}] "
        ticker = getattr(record, "ticker", None)
        if ticker:
            context += f"<{ticker}> "

        line = f"{timestamp} {record.levelname:8} {context}{record.name}: {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class SensitiveDataFilter(logging.Filter):
    """Redact provider keys and notification credentials."""

    SENSITIVE_KEYS = (
        "api_key",
        "apikey",
        "token",
        "secret",
        "authorization",
        "password",
        "apprise_url",
    )

    # Apprise URLs carry webhook tokens or mail credentials after the scheme
    APPRISE_URL = re.compile(r"\b(discord|slack|mailtos?|tgram|json)://\S+", re.IGNORECASE)

    def __init__(self) -> None:
        super().__init__()
        keys = "|".join(self.SENSITIVE_KEYS)
        self._key_value = re.compile(
            rf"""(["']?(?:{keys})["']?\s*[=:]\s*)[^\s,}}\]&]+""", re.IGNORECASE
        )

    def redact(self, text: str) -> str:
        text = self._key_value.sub(r"\1[REDACTED]", text)
        return self.APPRISE_URL.sub(r"\1://[REDACTED]", text)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self.redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        level: Log level name, defaults to ``settings.log_level``
        fmt: ``json`` or ``text``, defaults to ``settings.log_format``
    """
    level = (level or settings.log_level).upper()
    fmt = fmt or settings.log_format

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if fmt == "json" else TextFormatter())
    handler.addFilter(ScanContextFilter())
    handler.addFilter(SensitiveDataFilter())

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``screener`` namespace."""
    return logging.getLogger(f"screener.{name}")
