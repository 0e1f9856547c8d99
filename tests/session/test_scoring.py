from __future__ import annotations

import pytest

from exam_trainer.bank.models import ItemType
from exam_trainer.session import scoring


def test_strategy_lookup(make_question, multi_question, match_question):
    assert isinstance(
        scoring.strategy_for(make_question()), scoring.SingleChoiceStrategy
    )
    assert isinstance(
        scoring.strategy_for(multi_question), scoring.MultiChoiceStrategy
    )
    assert isinstance(scoring.strategy_for(match_question), scoring.MatchStrategy)


def test_single_choice_correctness(make_question):
    question = make_question()
    strategy = scoring.strategy_for(question)

    assert strategy.is_correct(question, 1)
    assert not strategy.is_correct(question, 0)
    assert not strategy.is_correct(question, (1,))
    assert strategy.correct_text(question) == "Bravo"
    assert strategy.feedback(question, 1) == "Correct"


def test_single_choice_remap_keeps_correct_text(make_question):
    question = make_question(rationales=("ra", "rb", "rc", "rd"))
    order = [2, 0, 3, 1]

    remapped = scoring.strategy_for(question).remap(question, order)

    assert remapped.choices == ("Charlie", "Alpha", "Delta", "Bravo")
    assert remapped.correct_index == 3
    assert remapped.choices[remapped.correct_index] == "Bravo"
    assert remapped.rationales == ("rc", "ra", "rd", "rb")


def test_remap_ignores_mismatched_order(make_question):
    question = make_question()

    assert scoring.strategy_for(question).remap(question, [1, 0]) is question


def test_multi_choice_set_equality(multi_question):
    strategy = scoring.strategy_for(multi_question)

    assert strategy.is_correct(multi_question, (2, 0))
    assert not strategy.is_correct(multi_question, (0,))
    assert not strategy.is_correct(multi_question, (0, 1, 2))
    assert not strategy.is_correct(multi_question, ())
    assert strategy.correct_text(multi_question) == "Avoid | Mitigate"


@pytest.mark.parametrize(
    "selection, message",
    [
        ((0, 2), "Correct"),
        ((0, 1), "Keep trying: remove wrong choices."),
        ((0,), "Keep trying: select remaining correct choices."),
    ],
)
def test_multi_choice_feedback(multi_question, selection, message):
    strategy = scoring.strategy_for(multi_question)

    assert strategy.feedback(multi_question, selection) == message


def test_multi_choice_remap(multi_question):
    remapped = scoring.strategy_for(multi_question).remap(
        multi_question, [3, 2, 1, 0]
    )

    assert remapped.choices == ("Gossip", "Mitigate", "Ignore", "Avoid")
    assert remapped.correct_indices == (1, 3)
    assert scoring.strategy_for(remapped).correct_text(remapped) == (
        "Mitigate | Avoid"
    )


def test_match_requires_every_pair(match_question):
    strategy = scoring.strategy_for(match_question)

    assert strategy.is_correct(match_question, (1, 0))
    assert not strategy.is_correct(match_question, (1, -1))
    assert not strategy.is_correct(match_question, (0, 1))
    assert not strategy.is_correct(match_question, ())
    assert strategy.correct_text(match_question) == "[[0,1],[1,0]]"
    assert match_question.item_type is ItemType.MATCH
    assert strategy.remap(match_question, [1, 0]) is match_question
