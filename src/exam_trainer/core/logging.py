"""JSON run log for the trainer.

Every record from the ``exam_trainer`` logger tree lands in one rotating
``exam_trainer.log`` in the workspace ``logs`` folder. Fields passed through
``extra=`` (seeds, question ids, bank paths) sit beside the message in each
JSON object, so a run can be replayed from its log.
"""

from __future__ import annotations

import json
import logging
import sys
import tempfile
from datetime import datetime, timezone
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

__all__ = [
    "LOG_FILENAME",
    "JsonLogFormatter",
    "configure_logger",
]

LOG_FILENAME = "exam_trainer.log"
MAX_LOG_BYTES = 512 * 1024
LOG_BACKUPS = 2

_OWNED = "_exam_trainer_owned"
_CORE_KEYS = ("time", "level", "logger", "message")
_RECORD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}


class JsonLogFormatter(logging.Formatter):
    """One JSON object per record with ``extra`` fields flattened in."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "time": stamp.isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key in _RECORD_FIELDS:
                continue
            payload[f"extra_{key}" if key in _CORE_KEYS else key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_jsonable, ensure_ascii=True)


def configure_logger(
    name: str = "exam_trainer",
    *,
    log_dir: Path,
    level: str = "INFO",
    verbose: bool = False,
) -> tuple[logging.Logger, Path]:
    """Route the ``name`` logger tree into the JSON run log.

    Calling it again replaces the handlers installed earlier. ``verbose``
    lowers the level to DEBUG and mirrors records to stderr.
    """

    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(logging.DEBUG if verbose else _level_number(level))
    for handler in list(logger.handlers):
        if getattr(handler, _OWNED, False):
            logger.removeHandler(handler)
            handler.close()

    try:
        file_handler = _open_log(log_dir)
    except OSError:
        file_handler = _open_log(_fallback_log_dir())
    file_handler.setFormatter(JsonLogFormatter())
    _attach(logger, file_handler)

    if verbose:
        stream = logging.StreamHandler(stream=sys.stderr)
        stream.setFormatter(
            logging.Formatter("%(levelname)s %(name)s: %(message)s")
        )
        _attach(logger, stream)
    return logger, Path(file_handler.baseFilename)


def _level_number(level: str) -> int:
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def _open_log(log_dir: Path) -> RotatingFileHandler:
    log_dir.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        log_dir / LOG_FILENAME,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )


def _attach(logger: logging.Logger, handler: logging.Handler) -> None:
    setattr(handler, _OWNED, True)
    logger.addHandler(handler)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def _fallback_log_dir() -> Path:
    return Path(tempfile.gettempdir()) / "exam-trainer-logs"
