from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from exam_trainer.bank.models import ItemType, Question  # noqa: E402


class FakeClock:
    """Millisecond clock advanced explicitly by tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def tick(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_question() -> Callable[..., Question]:
    """Build single-choice questions with sensible defaults."""

    def _factory(qid: str = "Q1", **overrides: object) -> Question:
        values: dict[str, object] = {
            "id": qid,
            "domain": "People",
            "question": f"Stem for {qid}?",
            "choices": ("Alpha", "Bravo", "Charlie", "Delta"),
            "correct_index": 1,
            "explanation": f"Because of {qid}.",
        }
        values.update(overrides)
        return Question(**values)  # type: ignore[arg-type]

    return _factory


@pytest.fixture
def multi_question() -> Question:
    return Question(
        id="M1",
        domain="Process",
        question="Pick the two risk responses.",
        choices=("Avoid", "Ignore", "Mitigate", "Gossip"),
        item_type=ItemType.MULTI,
        correct_indices=(0, 2),
    )


@pytest.fixture
def match_question() -> Question:
    return Question(
        id="X1",
        domain="Agile",
        question="Match each ceremony to its purpose.",
        item_type=ItemType.MATCH,
        left=("Standup", "Retro"),
        right=("Improve process", "Sync daily"),
        pairs=((0, 1), (1, 0)),
    )


@pytest.fixture
def workspace_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point EXAM_TRAINER_HOME at a per-test directory."""

    home = tmp_path / "home"
    monkeypatch.setenv("EXAM_TRAINER_HOME", str(home))
    for key in (
        "EXAM_TRAINER_CONFIG",
        "EXAM_TRAINER_MODE",
        "EXAM_TRAINER_SIZE",
        "EXAM_TRAINER_SEED",
        "EXAM_TRAINER_DOMAINS",
        "EXAM_TRAINER_LOG_LEVEL",
        "EXAM_TRAINER_EXPORT_DIR",
    ):
        monkeypatch.delenv(key, raising=False)
    return home


@pytest.fixture(autouse=True)
def _reset_trainer_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("exam_trainer")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
