"""Session state machine for practice and exam runs.

A :class:`TrainerSession` moves through ``UNSTARTED -> ACTIVE -> FINISHED``.
``start`` samples and shuffles the pool, the submit/check methods record
attempts for the current question and ``advance`` moves on, finishing the
session after the last question. Practice mode eliminates wrong options and
lets the user retry until correct; exam mode takes exactly one attempt per
question and advances immediately.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Callable, Iterable, Mapping

from ..bank.models import ItemType, Question
from ..shuffle import XorShift32, permutation, random_seed, shuffle
from .scoring import strategy_for

__all__ = [
    "AdvanceToken",
    "Attempt",
    "EmptyPoolError",
    "QuestionResult",
    "ResultKey",
    "SessionMode",
    "SessionPhase",
    "SessionStateError",
    "SessionSummary",
    "SubmitOutcome",
    "TrainerSession",
]

logger = logging.getLogger(__name__)

Attempt = int | tuple[int, ...]
Clock = Callable[[], float]

_CHOICE_STREAM_SALT = 0x5BD1E995
_UNSET = -1


class SessionStateError(RuntimeError):
    """Raised when a transition is not valid in the current state."""


class EmptyPoolError(SessionStateError):
    """Raised when a session is started without any questions."""


class SessionPhase(Enum):
    UNSTARTED = "unstarted"
    ACTIVE = "active"
    FINISHED = "finished"


class SessionMode(Enum):
    PRACTICE = "practice"
    EXAM = "exam"

    @classmethod
    def from_value(cls, value: str) -> "SessionMode":
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise ValueError(
            f"Unknown session mode '{value}'. Expected one of: {expected}."
        )


@dataclass(frozen=True)
class ResultKey:
    """Results are keyed by position as well as id so repeated ids in a
    bank cannot overwrite each other."""

    position: int
    question_id: str


@dataclass(frozen=True)
class AdvanceToken:
    """Identifies one question of one started session."""

    generation: int
    position: int


@dataclass(frozen=True)
class QuestionResult:
    question_id: str
    first_try_correct: bool
    tries: int
    elapsed_ms: int
    attempt_log: tuple[Attempt, ...]


@dataclass(frozen=True)
class SubmitOutcome:
    """What happened to a submission.

    ``advance_token`` is set after a correct practice answer; pass it to
    :meth:`TrainerSession.advance_if_current` once the feedback pause ends.
    """

    accepted: bool
    correct: bool = False
    resolved: bool = False
    advanced: bool = False
    message: str = ""
    advance_token: AdvanceToken | None = None


@dataclass(frozen=True)
class SessionSummary:
    total: int
    answered: int
    first_try_correct: int
    accuracy_percent: int
    flagged: int


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class TrainerSession:
    """Owns one session's questions, position, attempts, results and flags."""

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._clock = clock or _monotonic_ms
        self._generation = 0
        self.reset()

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self._generation += 1
        self.phase = SessionPhase.UNSTARTED
        self.mode = SessionMode.PRACTICE
        self.seed: int | None = None
        self.questions: list[Question] = []
        self.position = 0
        self._results: dict[ResultKey, QuestionResult] = {}
        self._flags: set[str] = set()
        self._clear_transient()

    def start(
        self,
        pool: Iterable[Question],
        *,
        size: int,
        seed: int | None = None,
        mode: SessionMode = SessionMode.PRACTICE,
        fully_deterministic: bool = False,
    ) -> None:
        """Begin a new session, discarding any previous state.

        The pool order is always reproducible from ``seed``. Choice order is
        only reproducible with ``fully_deterministic``; otherwise every
        question draws a fresh random seed for its choices.

        ``size`` is clamped to ``[1, len(pool)]``, so a size of zero or less
        still yields a one-question session.
        """

        candidates = list(pool)
        if not candidates:
            raise EmptyPoolError("Cannot start a session with no questions.")

        self.reset()
        self.seed = random_seed() if seed is None else int(seed)
        self.mode = mode

        count = max(1, min(int(size), len(candidates)))
        picked = shuffle(candidates, self.seed)[:count]
        choice_rng = (
            XorShift32(self.seed ^ _CHOICE_STREAM_SALT)
            if fully_deterministic
            else None
        )
        self.questions = [
            self._permute_choices(question, choice_rng) for question in picked
        ]
        self.phase = SessionPhase.ACTIVE
        self._enter_question()
        logger.info(
            "Started session",
            extra={
                "mode": mode.value,
                "seed": self.seed,
                "size": len(self.questions),
                "pool_size": len(candidates),
                "fully_deterministic": fully_deterministic,
            },
        )

    # ------------------------------------------------------------------
    # read-only views
    # ------------------------------------------------------------------
    @property
    def is_active(self) -> bool:
        return self.phase is SessionPhase.ACTIVE

    @property
    def is_finished(self) -> bool:
        return self.phase is SessionPhase.FINISHED

    @property
    def current(self) -> Question | None:
        if not self.is_active:
            return None
        return self.questions[self.position]

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def results(self) -> Mapping[ResultKey, QuestionResult]:
        return MappingProxyType(self._results)

    @property
    def flags(self) -> frozenset[str]:
        return frozenset(self._flags)

    @property
    def attempt_log(self) -> tuple[Attempt, ...]:
        return tuple(self._attempt_log)

    @property
    def eliminated(self) -> frozenset[int]:
        return frozenset(self._eliminated)

    @property
    def multi_selection(self) -> tuple[int, ...]:
        return tuple(sorted(self._multi_selection))

    @property
    def match_selection(self) -> tuple[int, ...]:
        return tuple(self._match_selection)

    @property
    def is_resolved(self) -> bool:
        """True once the current practice question was answered correctly."""

        return self._resolved

    def result_at(self, position: int) -> QuestionResult | None:
        if not 0 <= position < len(self.questions):
            return None
        key = ResultKey(position, self.questions[position].id)
        return self._results.get(key)

    def summary(self) -> SessionSummary:
        total = len(self.questions)
        first = sum(1 for r in self._results.values() if r.first_try_correct)
        accuracy = math.floor(first / total * 100 + 0.5) if total else 0
        return SessionSummary(
            total=total,
            answered=len(self._results),
            first_try_correct=first,
            accuracy_percent=accuracy,
            flagged=len(self._flags),
        )

    # ------------------------------------------------------------------
    # transitions
    # ------------------------------------------------------------------
    def submit_choice(self, index: int) -> SubmitOutcome:
        """Submit a single-choice answer for the current question."""

        question = self._require_active()
        if question.item_type is not ItemType.SINGLE:
            raise SessionStateError(
                "submit_choice only applies to single-choice questions."
            )
        if self._resolved:
            return SubmitOutcome(False, message="Question already answered.")
        if not 0 <= index < len(question.choices):
            return SubmitOutcome(False, message="No such choice.")
        if index in self._eliminated:
            return SubmitOutcome(
                False, message="That choice was already eliminated."
            )

        correct = strategy_for(question).is_correct(question, index)
        if not correct and self.mode is SessionMode.PRACTICE:
            self._eliminated.add(index)
        return self._register_attempt(
            index, correct, "Correct" if correct else "Incorrect. Try again."
        )

    def toggle_selection(self, index: int) -> bool:
        """Toggle ``index`` in the multi-select buffer; returns membership."""

        question = self._require_active(ItemType.MULTI)
        if self._resolved or not 0 <= index < len(question.choices):
            return index in self._multi_selection
        if index in self._multi_selection:
            self._multi_selection.discard(index)
            return False
        self._multi_selection.add(index)
        return True

    def check_selection(self) -> SubmitOutcome:
        question = self._require_active(ItemType.MULTI)
        if self._resolved:
            return SubmitOutcome(False, message="Question already answered.")
        selection = tuple(sorted(self._multi_selection))
        if not selection:
            return SubmitOutcome(False, message="Select at least one choice.")
        strategy = strategy_for(question)
        return self._register_attempt(
            selection,
            strategy.is_correct(question, selection),
            strategy.feedback(question, selection),
        )

    def set_match(self, left: int, right: int) -> bool:
        """Assign ``right`` to ``left`` (``-1`` clears); False if invalid."""

        question = self._require_active(ItemType.MATCH)
        if self._resolved:
            return False
        if not 0 <= left < len(question.left):
            return False
        if right != _UNSET and not 0 <= right < len(question.right):
            return False
        self._match_selection[left] = right
        return True

    def check_match(self) -> SubmitOutcome:
        question = self._require_active(ItemType.MATCH)
        if self._resolved:
            return SubmitOutcome(False, message="Question already answered.")
        selection = tuple(self._match_selection)
        if all(value == _UNSET for value in selection):
            return SubmitOutcome(False, message="Match at least one item.")
        strategy = strategy_for(question)
        return self._register_attempt(
            selection,
            strategy.is_correct(question, selection),
            strategy.feedback(question, selection),
        )

    def advance(self) -> None:
        """Move to the next question, or finish after the last one."""

        self._require_active()
        if self.position >= len(self.questions) - 1:
            self.position = len(self.questions)
            self.phase = SessionPhase.FINISHED
            self._clear_transient()
            summary = self.summary()
            logger.info(
                "Finished session",
                extra={
                    "total": summary.total,
                    "first_try_correct": summary.first_try_correct,
                    "accuracy_percent": summary.accuracy_percent,
                },
            )
            return
        self.position += 1
        self._enter_question()

    def advance_if_current(self, token: AdvanceToken) -> bool:
        """Advance only if still active on the question ``token`` names.

        Tokens from before a ``start`` or ``reset`` never match.
        """

        if not self.is_active:
            return False
        if token != AdvanceToken(self._generation, self.position):
            return False
        self.advance()
        return True

    def toggle_flag(self) -> bool:
        """Flip the review flag on the current question; returns new state."""

        question = self._require_active()
        if question.id in self._flags:
            self._flags.discard(question.id)
            return False
        self._flags.add(question.id)
        return True

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    def _require_active(self, item_type: ItemType | None = None) -> Question:
        if not self.is_active:
            raise SessionStateError(
                f"Session is {self.phase.value}; start a session first."
            )
        question = self.questions[self.position]
        if item_type is not None and question.item_type is not item_type:
            raise SessionStateError(
                f"Current question is {question.item_type.value}, "
                f"not {item_type.value}."
            )
        return question

    def _clear_transient(self) -> None:
        self._eliminated: set[int] = set()
        self._attempt_log: list[Attempt] = []
        self._multi_selection: set[int] = set()
        self._match_selection: list[int] = []
        self._resolved = False
        self._question_started: float | None = None

    def _enter_question(self) -> None:
        self._clear_transient()
        question = self.questions[self.position]
        if question.item_type is ItemType.MATCH:
            self._match_selection = [_UNSET] * len(question.left)
        self._question_started = self._clock()

    def _permute_choices(
        self, question: Question, rng: XorShift32 | None
    ) -> Question:
        if question.item_type is ItemType.MATCH:
            return question
        choice_seed = rng.next_seed() if rng is not None else random_seed()
        order = permutation(len(question.choices), choice_seed)
        return strategy_for(question).remap(question, order)

    def _register_attempt(
        self, attempt: Attempt, correct: bool, message: str
    ) -> SubmitOutcome:
        self._attempt_log.append(attempt)
        logger.debug(
            "Recorded attempt",
            extra={
                "position": self.position,
                "attempt": attempt,
                "correct": correct,
            },
        )
        if self.mode is SessionMode.EXAM:
            self._record_result(correct)
            self.advance()
            return SubmitOutcome(
                True,
                correct=correct,
                resolved=True,
                advanced=True,
                message="Answer recorded.",
            )
        if correct:
            self._record_result(True)
            self._resolved = True
            return SubmitOutcome(
                True,
                correct=True,
                resolved=True,
                message=message,
                advance_token=AdvanceToken(self._generation, self.position),
            )
        return SubmitOutcome(True, correct=False, message=message)

    def _record_result(self, correct: bool) -> None:
        question = self.questions[self.position]
        tries = len(self._attempt_log)
        started = self._question_started
        elapsed = 0 if started is None else self._clock() - started
        self._results[ResultKey(self.position, question.id)] = QuestionResult(
            question_id=question.id,
            first_try_correct=correct and tries == 1,
            tries=tries,
            elapsed_ms=max(0, int(round(elapsed))),
            attempt_log=tuple(self._attempt_log),
        )
