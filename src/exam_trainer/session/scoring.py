"""Per item-type correctness strategies.

Each strategy knows how to judge a selection, how to carry its correctness
data through a choice permutation and how to render the correct answer for
exports. The session machine only talks to :func:`strategy_for`.
"""

from __future__ import annotations

import json
from dataclasses import replace
from typing import Iterable, Sequence

from ..bank.models import ItemType, Question

__all__ = [
    "CorrectnessStrategy",
    "MatchStrategy",
    "MultiChoiceStrategy",
    "SingleChoiceStrategy",
    "strategy_for",
]


class CorrectnessStrategy:
    """Base strategy; subclasses cover one :class:`ItemType` each."""

    item_type: ItemType

    def is_correct(self, question: Question, selection: object) -> bool:
        raise NotImplementedError

    def remap(self, question: Question, order: Sequence[int]) -> Question:
        """Reorder choices so ``new[i] == old[order[i]]``."""

        return question

    def correct_text(self, question: Question) -> str:
        raise NotImplementedError

    def feedback(self, question: Question, selection: object) -> str:
        if self.is_correct(question, selection):
            return "Correct"
        return "Incorrect."


def _permute(values: Sequence[str], order: Sequence[int]) -> tuple[str, ...]:
    if len(values) != len(order):
        return tuple(values)
    return tuple(values[old] for old in order)


class SingleChoiceStrategy(CorrectnessStrategy):
    item_type = ItemType.SINGLE

    def is_correct(self, question: Question, selection: object) -> bool:
        if not isinstance(selection, int):
            return False
        return selection == question.correct_index

    def remap(self, question: Question, order: Sequence[int]) -> Question:
        if len(order) != len(question.choices):
            return question
        order = list(order)
        return replace(
            question,
            choices=_permute(question.choices, order),
            correct_index=order.index(question.correct_index),
            rationales=_permute(question.rationales, order),
        )

    def correct_text(self, question: Question) -> str:
        return question.choice_text(question.correct_index)


class MultiChoiceStrategy(CorrectnessStrategy):
    item_type = ItemType.MULTI

    def is_correct(self, question: Question, selection: object) -> bool:
        chosen = _as_index_set(selection)
        return bool(chosen) and chosen == set(question.correct_indices)

    def remap(self, question: Question, order: Sequence[int]) -> Question:
        if len(order) != len(question.choices):
            return question
        order = list(order)
        return replace(
            question,
            choices=_permute(question.choices, order),
            correct_indices=tuple(
                sorted(order.index(idx) for idx in question.correct_indices)
            ),
            rationales=_permute(question.rationales, order),
        )

    def correct_text(self, question: Question) -> str:
        return " | ".join(
            question.choice_text(idx) for idx in question.correct_indices
        )

    def feedback(self, question: Question, selection: object) -> str:
        chosen = _as_index_set(selection)
        correct = set(question.correct_indices)
        if chosen and chosen == correct:
            return "Correct"
        if chosen - correct:
            return "Keep trying: remove wrong choices."
        return "Keep trying: select remaining correct choices."


class MatchStrategy(CorrectnessStrategy):
    item_type = ItemType.MATCH

    def is_correct(self, question: Question, selection: object) -> bool:
        if not isinstance(selection, Sequence) or not selection:
            return False
        if not question.pairs:
            return False
        return all(
            left < len(selection) and selection[left] == right
            for left, right in question.pairs
        )

    def correct_text(self, question: Question) -> str:
        return json.dumps(
            [list(pair) for pair in question.pairs], separators=(",", ":")
        )


def _as_index_set(selection: object) -> set[int]:
    if isinstance(selection, int):
        return {selection}
    if isinstance(selection, Iterable):
        return {item for item in selection if isinstance(item, int)}
    return set()


_STRATEGIES: dict[ItemType, CorrectnessStrategy] = {
    ItemType.SINGLE: SingleChoiceStrategy(),
    ItemType.MULTI: MultiChoiceStrategy(),
    ItemType.MATCH: MatchStrategy(),
}


def strategy_for(question: Question) -> CorrectnessStrategy:
    return _STRATEGIES[question.item_type]
