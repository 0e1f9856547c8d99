from .app import QuestionView, TrainerApp, summary_lines
from .console import (
    TrainerCommand,
    parse_trainer_command,
    render_summary,
    run_trainer_session,
)

__all__ = [
    "QuestionView",
    "TrainerApp",
    "summary_lines",
    "TrainerCommand",
    "parse_trainer_command",
    "render_summary",
    "run_trainer_session",
]
