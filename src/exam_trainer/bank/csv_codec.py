"""Quote-aware CSV tokenizer, question parser and serializer.

The tokenizer is a single left-to-right scan that tolerates quoted fields,
embedded commas and newlines, doubled-quote escapes and mixed ``\\r\\n`` /
``\\n`` / ``\\r`` row terminators. The question parser built on top of it
fails soft: bad rows are dropped and a missing required header yields an
empty list instead of an exception.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from .models import Question, is_allowed_domain

__all__ = [
    "REQUIRED_COLUMNS",
    "OPTIONAL_COLUMNS",
    "tokenize",
    "parse_questions",
    "resolve_correct",
    "to_csv",
]

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: tuple[str, ...] = (
    "domain",
    "question",
    "a",
    "b",
    "c",
    "d",
    "correct",
)
OPTIONAL_COLUMNS: tuple[str, ...] = ("id", "explanation", "reference")

_LETTER_INDEX = {"a": 0, "b": 1, "c": 2, "d": 3}
_DIGIT_RE = re.compile(r"^[0-3]$")
_WHITESPACE_RE = re.compile(r"\s+")
_NEEDS_QUOTES_RE = re.compile(r'[",\n\r]')


def tokenize(text: str) -> list[list[str]]:
    """Split ``text`` into rows of raw string fields.

    Rows whose fields are all empty are dropped.
    """

    rows: list[list[str]] = []
    row: list[str] = []
    buffer: list[str] = []
    in_quotes = False
    length = len(text)
    i = 0
    while i < length:
        ch = text[i]
        if ch == '"':
            if in_quotes and i + 1 < length and text[i + 1] == '"':
                buffer.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
            i += 1
            continue
        if not in_quotes and ch == ",":
            row.append("".join(buffer))
            buffer = []
            i += 1
            continue
        if not in_quotes and ch in "\r\n":
            row.append("".join(buffer))
            buffer = []
            if any(row):
                rows.append(row)
            row = []
            if ch == "\r" and i + 1 < length and text[i + 1] == "\n":
                i += 2
            else:
                i += 1
            continue
        buffer.append(ch)
        i += 1

    if buffer or row:
        row.append("".join(buffer))
        if any(row):
            rows.append(row)
    return rows


def resolve_correct(value: str) -> int | None:
    """Map a ``correct`` cell (``a``-``d`` or ``0``-``3``) to an index."""

    normalized = str(value).strip().lower()
    if normalized in _LETTER_INDEX:
        return _LETTER_INDEX[normalized]
    if _DIGIT_RE.match(normalized):
        return int(normalized)
    return None


def parse_questions(text: str) -> list[Question]:
    """Parse CSV ``text`` into normalized single-choice questions."""

    table = tokenize(text)
    if not table:
        return []

    header = [cell.strip().lower() for cell in table[0]]
    columns = {name: _index_of(header, name) for name in REQUIRED_COLUMNS}
    missing = [name for name, idx in columns.items() if idx is None]
    if missing:
        logger.warning(
            "CSV header missing required columns",
            extra={"missing": missing, "header": header},
        )
        return []
    for name in OPTIONAL_COLUMNS:
        columns[name] = _index_of(header, name)

    questions: list[Question] = []
    for row_number, row in enumerate(table[1:], start=1):
        if all(not cell.strip() for cell in row):
            continue
        question = _row_to_question(row, row_number, columns)
        if question is None:
            logger.debug(
                "Skipped CSV row with bad answer or domain",
                extra={"row": row_number + 1},
            )
            continue
        questions.append(question)
    return questions


def to_csv(rows: Iterable[Sequence[object]]) -> str:
    """Serialize ``rows`` into CSV text, quoting only where required."""

    return "\n".join(
        ",".join(_quote_cell(cell) for cell in row) for row in rows
    )


def _quote_cell(cell: object) -> str:
    text = str(cell)
    if _NEEDS_QUOTES_RE.search(text):
        return '"' + text.replace('"', '""') + '"'
    return text


def _index_of(header: list[str], name: str) -> int | None:
    try:
        return header.index(name)
    except ValueError:
        return None


def _cell(row: Sequence[str], idx: int | None) -> str:
    if idx is None or idx >= len(row):
        return ""
    return row[idx]


def _row_to_question(
    row: Sequence[str],
    row_number: int,
    columns: dict[str, int | None],
) -> Question | None:
    answer = resolve_correct(_cell(row, columns["correct"]))
    domain = _cell(row, columns["domain"]).strip()
    if answer is None or not is_allowed_domain(domain):
        return None

    raw_id = _WHITESPACE_RE.sub("", _cell(row, columns["id"]))
    return Question(
        id=raw_id or f"U{row_number}",
        domain=domain,
        question=_cell(row, columns["question"]).strip(),
        choices=tuple(
            _cell(row, columns[letter]).strip()
            for letter in ("a", "b", "c", "d")
        ),
        correct_index=answer,
        explanation=_cell(row, columns["explanation"]).strip(),
        reference=_cell(row, columns["reference"]).strip(),
    )
