from __future__ import annotations

from datetime import date

from exam_trainer.bank import csv_codec
from exam_trainer.session import export
from exam_trainer.session.machine import QuestionResult, SessionMode, TrainerSession


def test_export_filename_uses_iso_date():
    assert export.export_filename(date(2024, 3, 9)) == "pmp_session_2024-03-09.csv"


def test_format_attempts():
    assert export.format_attempts([2, 0, 1]) == "2|0|1"
    assert export.format_attempts([(0, 2), (1, -1)]) == "0+2|1+-1"
    assert export.format_attempts([]) == ""


def test_build_rows_with_and_without_results(make_question, multi_question):
    answered = make_question("Q1", explanation="Team first, then escalate.")
    skipped = multi_question
    result = QuestionResult(
        question_id="Q1",
        first_try_correct=False,
        tries=2,
        elapsed_ms=1234,
        attempt_log=(0, 1),
    )

    rows = export.build_export_rows([answered, skipped], [result, None])

    assert rows[0] == list(export.EXPORT_HEADER)
    assert rows[1] == [
        "Q1",
        "People",
        "false",
        "2",
        "1234",
        "0|1",
        "Stem for Q1?",
        "Bravo",
        "Team first, then escalate.",
    ]
    assert rows[2][:6] == ["M1", "Process", "", "", "", ""]
    assert rows[2][7] == "Avoid | Mitigate"


def test_one_question_export_has_two_lines(tmp_path, make_question):
    question = make_question("E1", explanation="Plain reason")
    session = TrainerSession()
    session.start([question], size=1, seed=4)
    outcome = session.submit_choice(session.current.correct_index)
    session.advance_if_current(outcome.advance_token)

    path = export.export_session(
        session, tmp_path / "exports", today=date(2025, 1, 2)
    )

    assert path.name == "pmp_session_2025-01-02.csv"
    text = path.read_text(encoding="utf-8")
    lines = text.split("\n")
    assert len(lines) == 2
    assert lines[0] == ",".join(export.EXPORT_HEADER)
    row = csv_codec.tokenize(text)[1]
    assert row[0] == "E1"
    assert row[2] == "true"
    assert row[3] == "1"
    assert row[7] == "Bravo"


def test_export_quotes_embedded_commas(tmp_path, make_question):
    question = make_question("E2", question='Who says "go", and when?')
    session = TrainerSession()
    session.start([question], size=1, seed=4, mode=SessionMode.EXAM)
    session.submit_choice(session.current.correct_index)

    rows = csv_codec.tokenize(csv_codec.to_csv(export.session_rows(session)))

    assert rows[1][6] == 'Who says "go", and when?'
    assert rows[1][2] == "true"
