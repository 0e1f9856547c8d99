"""Rich-powered console loop driving a :class:`TrainerSession`.

The loop renders the current question, reads one command per line from an
injectable input provider and applies it to the session. Practice-mode
correct answers pause for the configured feedback delay before the guarded
``advance_if_current`` call, so a stale delayed advance can never skip a
question.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Callable, Literal

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..bank.models import ItemType, Question
from ..session.machine import (
    SessionMode,
    SubmitOutcome,
    TrainerSession,
)
from ..session.scoring import strategy_for

InputProvider = Callable[[], str]
Sleeper = Callable[[float], None]
ExitAction = Literal["finished", "quit"]

_MATCH_RE = re.compile(r"^(\d+)\s*[=:>]\s*([A-Za-z]|-)$")


@dataclass(frozen=True)
class TrainerCommand:
    """Normalized user command parsed from console input."""

    type: Literal["choose", "check", "match", "flag", "skip", "quit"]
    index: int | None = None
    right: int | None = None


def choice_key(index: int) -> str:
    return chr(ord("A") + index)


def parse_trainer_command(raw: str | None) -> TrainerCommand | None:
    """Parse raw user input into a structured command.

    Choices are letters (``a``) or 1-based numbers (``1``); matching uses
    ``<left number>=<right letter>`` with ``-`` to clear.
    """

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"check", "ok", "submit"}:
        return TrainerCommand("check")
    if lowered in {"flag", "!"}:
        return TrainerCommand("flag")
    if lowered in {"skip", "next", "n"}:
        return TrainerCommand("skip")
    if lowered in {"quit", "q", "exit"}:
        return TrainerCommand("quit")
    match = _MATCH_RE.match(lowered)
    if match:
        left = int(match.group(1)) - 1
        letter = match.group(2)
        right = -1 if letter == "-" else ord(letter) - ord("a")
        if left < 0:
            return None
        return TrainerCommand("match", left, right)
    if len(text) == 1 and text.isalpha():
        return TrainerCommand("choose", ord(lowered) - ord("a"))
    if text.isdigit() and int(text) > 0:
        return TrainerCommand("choose", int(text) - 1)
    return None


def run_trainer_session(
    session: TrainerSession,
    console: Console,
    input_provider: InputProvider,
    *,
    feedback_delay_ms: int = 250,
    sleep: Sleeper = time.sleep,
) -> ExitAction:
    """Drive an already started session until it finishes or the user quits."""

    while session.is_active:
        _render_question(console, session)
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            return "quit"
        command = parse_trainer_command(raw)
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue
        if command.type == "quit":
            console.print("\n[bold yellow]Ending session early.[/]")
            return "quit"
        outcome = _apply_command(command, session, console)
        if outcome is not None:
            _report_outcome(
                outcome,
                session,
                console,
                feedback_delay_ms=feedback_delay_ms,
                sleep=sleep,
            )

    render_summary(console, session)
    return "finished"


def _apply_command(
    command: TrainerCommand,
    session: TrainerSession,
    console: Console,
) -> SubmitOutcome | None:
    question = session.current
    if question is None:
        return None
    if command.type == "flag":
        flagged = session.toggle_flag()
        console.print("Flagged for review." if flagged else "Flag removed.")
        return None
    if command.type == "skip":
        session.advance()
        return None
    if command.type == "check":
        if question.item_type is ItemType.MULTI:
            return session.check_selection()
        if question.item_type is ItemType.MATCH:
            return session.check_match()
        console.print("[red]Pick a choice letter to answer this question.[/]")
        return None
    if command.type == "match":
        if question.item_type is not ItemType.MATCH:
            console.print("[red]This question is not a matching item.[/]")
            return None
        if not session.set_match(command.index or 0, command.right or 0):
            console.print("[red]That match is out of range.[/]")
        return None
    if command.type == "choose" and command.index is not None:
        if question.item_type is ItemType.SINGLE:
            return session.submit_choice(command.index)
        if question.item_type is ItemType.MULTI:
            if command.index >= len(question.choices):
                console.print("[red]No such choice.[/]")
            else:
                session.toggle_selection(command.index)
            return None
        console.print("[red]Use <item>=<letter> to match items.[/]")
    return None


def _report_outcome(
    outcome: SubmitOutcome,
    session: TrainerSession,
    console: Console,
    *,
    feedback_delay_ms: int,
    sleep: Sleeper,
) -> None:
    if not outcome.accepted:
        console.print(f"[yellow]{outcome.message}[/]")
        return
    if session.mode is SessionMode.EXAM:
        console.print(f"[dim]{outcome.message}[/]")
        return
    style = "bold green" if outcome.correct else "bold red"
    console.print(Text(outcome.message, style=style))
    if outcome.advance_token is None:
        return
    question = session.current
    if question is not None and question.explanation:
        console.print(
            Panel(
                Text(question.explanation),
                title="Explanation",
                border_style="green",
            )
        )
    if feedback_delay_ms > 0:
        sleep(feedback_delay_ms / 1000.0)
    session.advance_if_current(outcome.advance_token)


def _render_question(console: Console, session: TrainerSession) -> None:
    question = session.current
    if question is None:
        return
    summary = session.summary()
    flag = " [flagged]" if question.id in session.flags else ""
    header = Text.assemble(
        (f"Question {session.position + 1}", "bold cyan"),
        (f" / {session.total_questions}", "dim"),
        (f" • Domain: {question.domain}{flag}", "dim"),
    )
    console.print()
    console.rule(header)
    console.print(Text(question.question, style="bold"))
    if question.asset_url:
        console.print(Text(f"Asset: {question.asset_url}", style="blue"))

    if question.item_type is ItemType.MATCH:
        console.print(_match_table(question, session.match_selection))
        hint = "Commands: <item>=<letter>, check, flag, skip, quit"
    else:
        console.print(_choice_table(question, session))
        if question.item_type is ItemType.MULTI:
            hint = "Commands: letters toggle, check, flag, skip, quit"
        else:
            hint = "Commands: choice letter, flag, skip, quit"
    console.print(
        Text(
            f"First-try score: {summary.first_try_correct}/{summary.answered}"
            f" | {hint}",
            style="dim",
        )
    )


def _choice_table(question: Question, session: TrainerSession) -> Table:
    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Choice")
    selected = set(session.multi_selection)
    for idx, choice in enumerate(question.choices):
        if idx in session.eliminated:
            table.add_row(
                choice_key(idx), Text(f"✗ {choice}", style="dim strike")
            )
            continue
        if question.item_type is ItemType.MULTI:
            marker = "[x] " if idx in selected else "[ ] "
            table.add_row(choice_key(idx), Text(marker + choice))
            continue
        table.add_row(choice_key(idx), Text(choice))
    return table


def _match_table(question: Question, selection: tuple[int, ...]) -> Table:
    table = Table(box=box.SIMPLE, expand=True)
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Item")
    table.add_column("Matched with")
    for idx, item in enumerate(question.left):
        chosen = selection[idx] if idx < len(selection) else -1
        label = (
            f"{choice_key(chosen)}) {question.right[chosen]}"
            if 0 <= chosen < len(question.right)
            else "-"
        )
        table.add_row(str(idx + 1), Text(item), Text(label))
    options = ", ".join(
        f"{choice_key(idx)}) {text}" for idx, text in enumerate(question.right)
    )
    table.caption = Text(f"Options: {options}")
    return table


def render_summary(console: Console, session: TrainerSession) -> None:
    """Render the end-of-session overview and, for exams, the review."""

    summary = session.summary()
    console.print()
    console.rule(Text("Session Summary", style="bold magenta"))

    overview = Table(
        show_header=False,
        box=box.MINIMAL_DOUBLE_HEAD,
        expand=False,
    )
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Questions", str(summary.total))
    overview.add_row("First-try correct", str(summary.first_try_correct))
    overview.add_row("Accuracy (first try)", f"{summary.accuracy_percent}%")
    overview.add_row("Flagged", str(summary.flagged))
    console.print(overview)

    if session.mode is SessionMode.EXAM:
        _render_review(console, session)


def _render_review(console: Console, session: TrainerSession) -> None:
    review = Table(title="Review", box=box.SIMPLE, expand=True)
    review.add_column("#", justify="right")
    review.add_column("Question", overflow="fold")
    review.add_column("Correct answer", overflow="fold")
    review.add_column("Result", justify="center")

    for position, question in enumerate(session.questions):
        result = session.result_at(position)
        outcome = "✅" if result and result.first_try_correct else "❌"
        review.add_row(
            str(position + 1),
            Text(question.question or f"Question {position + 1}"),
            Text(strategy_for(question).correct_text(question)),
            outcome,
        )
    console.print(review)

    for position, question in enumerate(session.questions):
        lines = [
            f"{choice_key(idx)}) {text}"
            for idx, text in enumerate(question.rationales)
        ]
        if question.explanation:
            lines.append(question.explanation)
        if not lines:
            continue
        result = session.result_at(position)
        border = "green" if result and result.first_try_correct else "red"
        console.print(
            Panel(
                Text("\n".join(lines)),
                title=Text(f"Explanation: {question.id}"),
                border_style=border,
            )
        )
