"""Normalized question records shared by the loaders and the session."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

ALLOWED_DOMAINS: tuple[str, ...] = ("People", "Process", "Business", "Agile")
LEGACY_CHOICE_COUNT = 4


class ItemType(Enum):
    """Question shapes understood by the trainer."""

    SINGLE = "single"
    MULTI = "multi"
    MATCH = "match"

    @classmethod
    def from_value(cls, value: object) -> "ItemType | None":
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return None


@dataclass(frozen=True)
class Question:
    """Immutable question record.

    ``correct_index`` is used by single-choice items, ``correct_indices`` by
    multi-select items and ``pairs`` (left index, right index) by matching
    items. Unused fields keep their empty defaults.
    """

    id: str
    domain: str
    question: str
    choices: tuple[str, ...] = ()
    item_type: ItemType = ItemType.SINGLE
    correct_index: int | None = None
    correct_indices: tuple[int, ...] = ()
    left: tuple[str, ...] = ()
    right: tuple[str, ...] = ()
    pairs: tuple[tuple[int, int], ...] = ()
    explanation: str = ""
    reference: str = ""
    rationales: tuple[str, ...] = field(default=())
    asset_url: str = ""

    @property
    def is_single(self) -> bool:
        return self.item_type is ItemType.SINGLE

    def choice_text(self, index: int | None) -> str:
        if index is None or not 0 <= index < len(self.choices):
            return ""
        return self.choices[index]

    def has_valid_correctness(self) -> bool:
        """Return True when the correctness data points at real options."""

        if self.item_type is ItemType.SINGLE:
            return (
                self.correct_index is not None
                and 0 <= self.correct_index < len(self.choices)
            )
        if self.item_type is ItemType.MULTI:
            return bool(self.correct_indices) and all(
                0 <= idx < len(self.choices) for idx in self.correct_indices
            )
        return bool(self.pairs) and all(
            0 <= left < len(self.left) and 0 <= right < len(self.right)
            for left, right in self.pairs
        )


def is_allowed_domain(domain: str) -> bool:
    return domain in ALLOWED_DOMAINS


STARTER_QUESTIONS: tuple[Question, ...] = (
    Question(
        id="Q1",
        domain="People",
        question=(
            "Two team members are in conflict. What is the best first step?"
        ),
        choices=(
            "Escalate immediately",
            "Facilitate a private, interest-based talk",
            "Replace a member",
            "Send a broadcast email",
        ),
        correct_index=1,
        explanation=(
            "Start with private, interest-based resolution before escalating."
        ),
    ),
)
