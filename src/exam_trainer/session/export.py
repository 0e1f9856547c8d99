"""Map finished session results onto the summary CSV."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Sequence

from ..bank.csv_codec import to_csv
from ..bank.models import Question
from .machine import Attempt, QuestionResult, TrainerSession
from .scoring import strategy_for

__all__ = [
    "EXPORT_HEADER",
    "build_export_rows",
    "export_filename",
    "export_session",
    "format_attempts",
    "session_rows",
]

logger = logging.getLogger(__name__)

EXPORT_HEADER: tuple[str, ...] = (
    "id",
    "domain",
    "first_try_correct",
    "tries",
    "time_ms",
    "chosen",
    "question",
    "correct",
    "explanation",
)


def format_attempts(attempts: Sequence[Attempt]) -> str:
    """Join attempts with ``|``; multi-part attempts join with ``+``."""

    parts: list[str] = []
    for attempt in attempts:
        if isinstance(attempt, tuple):
            parts.append("+".join(str(value) for value in attempt))
        else:
            parts.append(str(attempt))
    return "|".join(parts)


def build_export_rows(
    questions: Sequence[Question],
    results: Sequence[QuestionResult | None],
) -> list[list[str]]:
    """Return the header plus one row per question.

    ``results`` is aligned with ``questions``; a ``None`` entry renders its
    result columns as empty strings.
    """

    rows: list[list[str]] = [list(EXPORT_HEADER)]
    for question, result in zip(questions, results):
        rows.append(
            [
                question.id,
                question.domain,
                str(result.first_try_correct).lower() if result else "",
                str(result.tries) if result else "",
                str(result.elapsed_ms) if result else "",
                format_attempts(result.attempt_log) if result else "",
                question.question,
                strategy_for(question).correct_text(question),
                question.explanation,
            ]
        )
    return rows


def export_filename(today: date | None = None) -> str:
    stamp = (today or date.today()).isoformat()
    return f"pmp_session_{stamp}.csv"


def session_rows(session: TrainerSession) -> list[list[str]]:
    results = [
        session.result_at(position)
        for position in range(session.total_questions)
    ]
    return build_export_rows(session.questions, results)


def export_session(
    session: TrainerSession,
    out_dir: Path,
    *,
    today: date | None = None,
) -> Path:
    """Write the session summary CSV into ``out_dir`` and return its path."""

    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / export_filename(today)
    target.write_text(to_csv(session_rows(session)), encoding="utf-8")
    logger.info(
        "Exported session summary",
        extra={"path": target, "rows": session.total_questions},
    )
    return target
