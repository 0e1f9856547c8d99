"""Question bank loading: structured JSON, CSV fallback and uploads."""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from .csv_codec import parse_questions
from .models import (
    ALLOWED_DOMAINS,
    LEGACY_CHOICE_COUNT,
    STARTER_QUESTIONS,
    ItemType,
    Question,
    is_allowed_domain,
)

__all__ = [
    "BankFormatError",
    "BankSource",
    "BankUploadError",
    "LoadedBank",
    "domain_counts",
    "filter_by_domains",
    "find_duplicate_ids",
    "load_default_bank",
    "load_upload",
    "parse_structured",
]

logger = logging.getLogger(__name__)


class BankFormatError(ValueError):
    """Raised when structured bank text is not a JSON array."""


class BankUploadError(RuntimeError):
    """Raised when a user-supplied bank cannot be read or parsed."""


class BankSource(Enum):
    STRUCTURED = "structured"
    CSV = "csv"
    STARTER = "starter"
    UPLOAD = "upload"


@dataclass(frozen=True)
class LoadedBank:
    """Questions together with where they came from."""

    questions: tuple[Question, ...]
    source: BankSource
    path: Path | None = None

    @property
    def duplicate_ids(self) -> list[str]:
        return find_duplicate_ids(self.questions)


def parse_structured(text: str) -> list[Question]:
    """Parse a JSON array of legacy or tagged question objects.

    Entries that cannot be normalized are dropped. Text that is not a JSON
    array raises :class:`BankFormatError`.
    """

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise BankFormatError(f"Invalid JSON question bank: {exc}") from exc
    if not isinstance(data, list):
        raise BankFormatError("Structured question bank must be a JSON array.")

    questions: list[Question] = []
    for position, entry in enumerate(data, start=1):
        if not isinstance(entry, Mapping):
            continue
        question = _entry_to_question(entry, position)
        if question is None:
            logger.debug(
                "Skipped structured entry", extra={"position": position}
            )
            continue
        questions.append(question)
    return questions


def load_default_bank(
    structured_path: Path | None,
    csv_path: Path | None,
) -> LoadedBank:
    """Load the startup bank: JSON first, then CSV, then the starter set.

    Never raises; each failed step is logged and the next one is tried.
    """

    if structured_path is not None:
        try:
            questions = parse_structured(_read_text(structured_path))
        except (OSError, UnicodeDecodeError, BankFormatError) as exc:
            logger.warning(
                "Structured bank load failed",
                extra={"path": structured_path, "error": str(exc)},
            )
        else:
            if questions:
                return _loaded(
                    questions, BankSource.STRUCTURED, structured_path
                )

    if csv_path is not None:
        try:
            questions = parse_questions(_read_text(csv_path))
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(
                "CSV bank load failed",
                extra={"path": csv_path, "error": str(exc)},
            )
        else:
            if questions:
                return _loaded(questions, BankSource.CSV, csv_path)

    logger.info("Falling back to the starter question set")
    return LoadedBank(questions=STARTER_QUESTIONS, source=BankSource.STARTER)


def load_upload(path: Path) -> LoadedBank:
    """Load a user-picked ``.json`` or ``.csv`` file.

    Raises :class:`BankUploadError` when the file is unreadable, is invalid
    JSON, or yields no usable questions, so the caller keeps its bank.
    """

    try:
        text = _read_text(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise BankUploadError(f"Could not read {path}: {exc}") from exc

    if path.suffix.lower() == ".json":
        try:
            questions = parse_structured(text)
        except BankFormatError as exc:
            raise BankUploadError(f"Could not parse {path}: {exc}") from exc
    else:
        questions = parse_questions(text)

    if not questions:
        raise BankUploadError(f"No usable questions found in {path}.")
    return _loaded(questions, BankSource.UPLOAD, path)


def find_duplicate_ids(questions: Iterable[Question]) -> list[str]:
    counts = Counter(question.id for question in questions)
    return sorted(qid for qid, count in counts.items() if count > 1)


def filter_by_domains(
    questions: Iterable[Question], domains: Iterable[str]
) -> list[Question]:
    wanted = set(domains)
    return [q for q in questions if q.domain and q.domain in wanted]


def domain_counts(questions: Iterable[Question]) -> dict[str, int]:
    counts = {domain: 0 for domain in ALLOWED_DOMAINS}
    for question in questions:
        counts[question.domain] = counts.get(question.domain, 0) + 1
    return counts


def _loaded(
    questions: Sequence[Question], source: BankSource, path: Path
) -> LoadedBank:
    bank = LoadedBank(questions=tuple(questions), source=source, path=path)
    duplicates = bank.duplicate_ids
    if duplicates:
        logger.warning(
            "Question bank contains duplicate ids",
            extra={"path": path, "duplicates": duplicates},
        )
    logger.info(
        "Loaded question bank",
        extra={
            "source": source.value,
            "path": path,
            "count": len(bank.questions),
        },
    )
    return bank


def _read_text(path: Path) -> str:
    return Path(path).read_text(encoding="utf-8-sig")


def _entry_to_question(
    entry: Mapping[str, Any], position: int
) -> Question | None:
    domain = str(entry.get("domain") or "").strip()
    if not is_allowed_domain(domain):
        return None

    qid = str(entry.get("id") or "").strip() or f"U{position}"
    stem = str(entry.get("question") or entry.get("prompt") or "").strip()
    common = {
        "id": qid,
        "domain": domain,
        "question": stem,
        "explanation": str(entry.get("explanation") or ""),
        "reference": str(entry.get("reference") or ""),
    }

    if "item_type" in entry or "correct_index" in entry:
        question = _tagged_question(entry, common)
    else:
        choices = _strings(entry.get("choices"))
        if len(choices) != LEGACY_CHOICE_COUNT:
            return None
        question = Question(
            choices=choices,
            item_type=ItemType.SINGLE,
            correct_index=_as_int(entry.get("answerIndex")),
            **common,
        )

    if question is None or not question.has_valid_correctness():
        return None
    return question


def _tagged_question(
    entry: Mapping[str, Any], common: dict[str, str]
) -> Question | None:
    item_type = ItemType.from_value(entry.get("item_type") or "single")
    if item_type is None:
        return None
    extras = {
        "rationales": _strings(entry.get("rationales")),
        "asset_url": str(entry.get("asset_url") or ""),
    }
    if item_type is ItemType.SINGLE:
        raw_index = entry.get("correct_index")
        return Question(
            choices=_strings(entry.get("choices")),
            item_type=item_type,
            correct_index=_as_int(0 if raw_index is None else raw_index),
            **common,
            **extras,
        )
    if item_type is ItemType.MULTI:
        raw = entry.get("correct_indices") or []
        if not isinstance(raw, list):
            return None
        indices = [_as_int(value) for value in raw]
        if any(idx is None for idx in indices):
            return None
        return Question(
            choices=_strings(entry.get("choices")),
            item_type=item_type,
            correct_indices=tuple(sorted(set(indices))),  # type: ignore
            **common,
            **extras,
        )
    pairs = _pairs(entry.get("pairs"))
    if pairs is None:
        return None
    return Question(
        item_type=item_type,
        left=_strings(entry.get("left")),
        right=_strings(entry.get("right")),
        pairs=pairs,
        **common,
        **extras,
    )


def _strings(value: object) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in value)


def _as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _pairs(value: object) -> tuple[tuple[int, int], ...] | None:
    if not isinstance(value, list):
        return None
    pairs: list[tuple[int, int]] = []
    for item in value:
        if not isinstance(item, list) or len(item) != 2:
            return None
        left, right = _as_int(item[0]), _as_int(item[1])
        if left is None or right is None:
            return None
        pairs.append((left, right))
    return tuple(pairs)
