from __future__ import annotations

import json
import logging
import tempfile
from typing import Iterator

import pytest

from exam_trainer.core import logging as core_logging
from exam_trainer.session.machine import SessionMode


@pytest.fixture(autouse=True)
def _close_test_loggers() -> Iterator[None]:
    yield
    for name in list(logging.Logger.manager.loggerDict):
        if not name.startswith("exam_trainer.test_"):
            continue
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def _records(logger: logging.Logger, path) -> list[dict]:
    for handler in logger.handlers:
        handler.flush()
    return [
        json.loads(line)
        for line in path.read_text(encoding="utf-8").splitlines()
    ]


def test_records_are_json_with_flattened_fields(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "exam_trainer.test_json", log_dir=tmp_path / "logs"
    )

    logger.info(
        "Started session",
        extra={
            "mode": SessionMode.EXAM,
            "seed": 7,
            "path": tmp_path / "q.csv",
            "ids": ("Q1", "Q2"),
            "flags": {"Q2", "Q1"},
            "level": "shadowed",
        },
    )

    (record,) = _records(logger, log_path)
    assert log_path == tmp_path / "logs" / core_logging.LOG_FILENAME
    assert record["message"] == "Started session"
    assert record["level"] == "INFO"
    assert record["logger"] == "exam_trainer.test_json"
    assert record["mode"] == "exam"
    assert record["seed"] == 7
    assert record["path"].endswith("q.csv")
    assert record["ids"] == ["Q1", "Q2"]
    assert record["flags"] == ["Q1", "Q2"]
    assert record["extra_level"] == "shadowed"


def test_exceptions_are_recorded(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "exam_trainer.test_exc", log_dir=tmp_path
    )

    try:
        raise ValueError("broken row")
    except ValueError:
        logger.exception("Export failed")

    (record,) = _records(logger, log_path)
    assert "broken row" in record["exception"]


def test_child_module_loggers_reach_the_file(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "exam_trainer.test_tree", log_dir=tmp_path
    )

    logging.getLogger("exam_trainer.test_tree.bank").warning("duplicate ids")

    (record,) = _records(logger, log_path)
    assert record["logger"] == "exam_trainer.test_tree.bank"


def test_level_filters_output(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "exam_trainer.test_level", log_dir=tmp_path, level="warning"
    )

    logger.info("hidden")
    logger.warning("shown")

    assert [r["message"] for r in _records(logger, log_path)] == ["shown"]


def test_unknown_level_means_info(tmp_path):
    logger, _ = core_logging.configure_logger(
        "exam_trainer.test_chatty", log_dir=tmp_path, level="chatty"
    )

    assert logger.level == logging.INFO


def test_reconfiguring_replaces_handlers(tmp_path):
    name = "exam_trainer.test_toggle"

    logger, _ = core_logging.configure_logger(
        name, log_dir=tmp_path, verbose=True
    )
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2

    core_logging.configure_logger(name, log_dir=tmp_path, verbose=True)
    assert len(logger.handlers) == 2

    core_logging.configure_logger(name, log_dir=tmp_path, verbose=False)
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], core_logging.RotatingFileHandler)


def test_unwritable_log_dir_falls_back(tmp_path, monkeypatch):
    blocked = tmp_path / "blocked"
    blocked.write_text("a file, not a folder", encoding="utf-8")
    fallback = tmp_path / "fallback"
    monkeypatch.setattr(core_logging, "_fallback_log_dir", lambda: fallback)

    logger, log_path = core_logging.configure_logger(
        "exam_trainer.test_blocked", log_dir=blocked
    )
    logger.info("still logged")

    assert log_path == fallback / core_logging.LOG_FILENAME
    assert _records(logger, log_path)[0]["message"] == "still logged"


def test_fallback_log_dir_uses_tempdir(tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "gettempdir", lambda: str(tmp_path))

    assert core_logging._fallback_log_dir() == tmp_path / "exam-trainer-logs"
