from __future__ import annotations

from typing import Optional

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.widget import Widget
from textual.widgets import Button, Static

from ..bank.models import ItemType, Question
from ..session.machine import (
    AdvanceToken,
    SessionMode,
    SubmitOutcome,
    TrainerSession,
)
from ..session.scoring import strategy_for
from .console import choice_key


def summary_lines(session: TrainerSession) -> list[str]:
    """Plain-text summary shown once the session has finished."""

    summary = session.summary()
    lines = [
        "Session Summary",
        f"Questions: {summary.total}",
        f"First-try correct: {summary.first_try_correct}",
        f"Accuracy (first try): {summary.accuracy_percent}%",
        f"Flagged: {summary.flagged}",
    ]
    if session.mode is SessionMode.EXAM:
        for position, question in enumerate(session.questions):
            result = session.result_at(position)
            mark = "✅" if result and result.first_try_correct else "❌"
            correct = strategy_for(question).correct_text(question)
            lines.append(f"{mark} {position + 1}. {question.id}: {correct}")
    return lines


class TrainerApp(App):
    CSS_PATH = None
    CSS = """
#choices Button.selected { background: $accent; color: black; }
#choices Button.eliminated { text-style: strike; }
#footer { height: auto; }
"""
    BINDINGS = [
        ("a", "choose(0)", "A"),
        ("b", "choose(1)", "B"),
        ("c", "choose(2)", "C"),
        ("d", "choose(3)", "D"),
        ("e", "choose(4)", "E"),
        ("enter", "check", "Check"),
        ("f", "flag", "Flag"),
        ("n", "skip", "Skip"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        session: TrainerSession,
        *,
        feedback_delay_ms: int = 250,
    ) -> None:
        super().__init__()
        self._session = session
        self._feedback_delay_ms = max(0, int(feedback_delay_ms))
        self._status_line = ""

    @property
    def session(self) -> TrainerSession:
        return self._session

    @property
    def status_text(self) -> str:
        return self._status_line

    def compose(self) -> ComposeResult:
        if not self._session.is_active and not self._session.is_finished:
            yield Static("No active session.", id="empty")
            return
        with Container(id="stage"):
            yield self._stage_widget()
        with Horizontal(id="footer"):
            yield Button("Check", id="check")
            yield Button("Flag", id="flag")
            yield Button("Skip", id="skip")
            yield Static(self._status_line, id="status")
            yield Static(self._score_text(), id="score")

    # Pure helpers driving the session (testable without running the App)
    def choose(self, index: int) -> Optional[SubmitOutcome]:
        question = self._session.current
        if question is None:
            return None
        if question.item_type is ItemType.SINGLE:
            outcome = self._session.submit_choice(index)
            self._handle_outcome(outcome)
            return outcome
        if question.item_type is ItemType.MULTI:
            self._session.toggle_selection(index)
            self._set_status("")
        self._update_stage()
        return None

    def match(self, left: int, right: int) -> bool:
        question = self._session.current
        if question is None or question.item_type is not ItemType.MATCH:
            return False
        changed = self._session.set_match(left, right)
        self._update_stage()
        return changed

    def check(self) -> Optional[SubmitOutcome]:
        question = self._session.current
        if question is None:
            return None
        if question.item_type is ItemType.MULTI:
            outcome = self._session.check_selection()
        elif question.item_type is ItemType.MATCH:
            outcome = self._session.check_match()
        else:
            self._set_status("Pick a choice to answer this question.")
            return None
        self._handle_outcome(outcome)
        return outcome

    def flag(self) -> bool:
        if self._session.current is None:
            return False
        flagged = self._session.toggle_flag()
        self._set_status("Flagged for review." if flagged else "Flag removed.")
        self._update_stage()
        return flagged

    def skip(self) -> None:
        if self._session.current is None:
            return
        self._session.advance()
        self._set_status("")
        self._update_stage()

    def _handle_outcome(self, outcome: SubmitOutcome) -> None:
        self._set_status(outcome.message)
        token = outcome.advance_token
        if token is not None:
            if self._feedback_delay_ms:
                self.set_timer(
                    self._feedback_delay_ms / 1000.0,
                    lambda: self._delayed_advance(token),
                )
            else:
                self._delayed_advance(token)
        self._update_stage()

    def _delayed_advance(self, token: AdvanceToken) -> bool:
        advanced = self._session.advance_if_current(token)
        if advanced:
            self._set_status("")
            self._update_stage()
        return advanced

    def _stage_widget(self) -> Widget:
        session = self._session
        question = session.current
        if question is None:
            return Static(
                "\n".join(summary_lines(session)), id="summary", markup=False
            )
        return QuestionView(
            question,
            index=session.position + 1,
            total=session.total_questions,
            eliminated=session.eliminated,
            selected=session.multi_selection,
            matches=session.match_selection,
            flagged=question.id in session.flags,
        )

    def _update_stage(self) -> None:
        try:
            stage = self.query_one("#stage", Container)
        except Exception:
            return
        stage.remove_children()
        stage.mount(self._stage_widget())
        try:
            self.query_one("#score", Static).update(self._score_text())
        except Exception:
            pass

    def _set_status(self, text: str) -> None:
        self._status_line = text
        try:
            self.query_one("#status", Static).update(text)
        except Exception:
            pass

    def _score_text(self) -> str:
        summary = self._session.summary()
        return f"First-try: {summary.first_try_correct}/{summary.answered}"

    def action_choose(self, index: int) -> None:
        self.choose(int(index))

    def action_check(self) -> None:
        self.check()

    def action_flag(self) -> None:
        self.flag()

    def action_skip(self) -> None:
        self.skip()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        bid = getattr(event.button, "id", "") or ""
        if bid.startswith("choice-"):
            self.choose(int(bid.split("-", 1)[1]))
        elif bid.startswith("match-"):
            _, left, right = bid.split("-")
            self.match(int(left), int(right))
        elif bid == "check":
            self.check()
        elif bid == "flag":
            self.flag()
        elif bid == "skip":
            self.skip()


class QuestionView(Widget):
    """Renders one question with its choices or matching grid and progress."""

    def __init__(
        self,
        question: Question,
        index: int,
        total: int,
        *,
        eliminated: frozenset[int] = frozenset(),
        selected: tuple[int, ...] = (),
        matches: tuple[int, ...] = (),
        flagged: bool = False,
    ) -> None:
        super().__init__()
        self.question = question
        self.index = index
        self.total = total
        self.eliminated = eliminated
        self.selected = selected
        self.matches = matches
        self.flagged = flagged

    def compose(self) -> ComposeResult:
        yield Static(self.question.question, id="stem", markup=False)
        if self.question.asset_url:
            yield Static(
                f"Asset: {self.question.asset_url}", id="asset", markup=False
            )
        with Vertical(id="choices"):
            for button in self.buttons():
                yield button
        yield Static(self.progress_text(), id="progress")

    def progress_text(self) -> str:
        flag = " (flagged)" if self.flagged else ""
        return f"{self.index}/{self.total} • {self.question.domain}{flag}"

    def buttons(self) -> list[Button]:
        if self.question.item_type is ItemType.MATCH:
            return self._match_buttons()
        buttons: list[Button] = []
        for idx, text in enumerate(self.question.choices):
            btn = Button(
                escape(f"{choice_key(idx)}) {text}"), id=f"choice-{idx}"
            )
            if idx in self.eliminated:
                btn.disabled = True
                btn.add_class("eliminated")
            elif idx in self.selected:
                btn.add_class("selected")
            buttons.append(btn)
        return buttons

    def _match_buttons(self) -> list[Button]:
        buttons: list[Button] = []
        for left, item in enumerate(self.question.left):
            chosen = self.matches[left] if left < len(self.matches) else -1
            for right, option in enumerate(self.question.right):
                label = f"{left + 1}. {item} → {choice_key(right)}) {option}"
                btn = Button(
                    escape(label),
                    id=f"match-{left}-{right}",
                )
                if chosen == right:
                    btn.add_class("selected")
                buttons.append(btn)
        return buttons
