"""
Run logging for the pipeline commands.

Two loggers are configured per run:
- ``content_factory``: console output through rich plus a run log file
  (JSONL or plain text) in the run folder
- ``content_factory.llm``: a JSONL transcript of completion and image
  exchanges, redacted and truncated according to the logging config

Structured fields are passed as ``extra`` through ``log_event`` and end up
as top-level keys of the JSONL records.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
import re
from typing import Any, Callable

from rich.logging import RichHandler

from ..config import LoggingConfig

APP_LOGGER = "content_factory"
LLM_LOGGER = "content_factory.llm"

_URL_RE = re.compile(r"https?://\S+")
_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Attributes every LogRecord has; anything else on a record came from ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}

_REDACTORS: dict[str, Callable[[str], str]] = {
    "none": lambda text: text,
    "redact_content": lambda text: "",
    "redact_urls": lambda text: _URL_RE.sub("[REDACTED_URL]", text),
}


def setup_logging(cfg: LoggingConfig, run_output_dir: Path | None) -> logging.Logger:
    """Configure the application logger for one run and return it."""
    level = _level(cfg.level)
    logger = _fresh_logger(APP_LOGGER, level)

    if cfg.console:
        console = RichHandler(rich_tracebacks=True, show_time=False, show_path=False)
        console.setLevel(level)
        console.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(console)

    if cfg.file and run_output_dir is not None:
        formatter = JsonlFormatter() if cfg.format == "jsonl" else logging.Formatter(_PLAIN_FORMAT)
        logger.addHandler(_file_handler(run_output_dir / cfg.filename, level, formatter))

    return logger


def setup_llm_logger(cfg: LoggingConfig, run_output_dir: Path | None) -> logging.Logger | None:
    """Logger for the LLM transcript, or None when it is disabled."""
    if not cfg.llm_log_enabled or run_output_dir is None:
        return None
    level = _level(cfg.level)
    logger = _fresh_logger(LLM_LOGGER, level)
    logger.addHandler(_file_handler(run_output_dir / cfg.llm_log_file, level, JsonlFormatter()))
    return logger


def log_event(logger: logging.Logger | None, message: str, **fields: Any) -> None:
    if logger is None:
        return
    logger.info(message, extra=fields)


def redact_text(text: str, mode: str) -> str:
    """Apply a redaction mode; unknown modes leave the text unchanged."""
    redactor = _REDACTORS.get(mode)
    return redactor(text) if redactor else text


def truncate_text(text: str, max_chars: int = 20000) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "...(truncated)"


class JsonlFormatter(logging.Formatter):
    """One JSON object per record, with ``extra`` fields merged in."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _fresh_logger(name: str, level: int) -> logging.Logger:
    logger = logging.getLogger(name)
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []
    logger.setLevel(level)
    logger.propagate = False
    return logger


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)
