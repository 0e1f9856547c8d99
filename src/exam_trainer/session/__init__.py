from .export import (
    EXPORT_HEADER,
    build_export_rows,
    export_filename,
    export_session,
    session_rows,
)
from .machine import (
    AdvanceToken,
    EmptyPoolError,
    QuestionResult,
    ResultKey,
    SessionMode,
    SessionPhase,
    SessionStateError,
    SessionSummary,
    SubmitOutcome,
    TrainerSession,
)
from .scoring import strategy_for

__all__ = [
    "AdvanceToken",
    "EXPORT_HEADER",
    "build_export_rows",
    "export_filename",
    "export_session",
    "session_rows",
    "EmptyPoolError",
    "QuestionResult",
    "ResultKey",
    "SessionMode",
    "SessionPhase",
    "SessionStateError",
    "SessionSummary",
    "SubmitOutcome",
    "TrainerSession",
    "strategy_for",
]
