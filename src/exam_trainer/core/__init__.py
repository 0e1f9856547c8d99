"""Core shared helpers for exam-trainer commands."""

from __future__ import annotations

from .config import (
    TomlConfigError,
    install_template,
    load_toml,
    overlay_toml,
)
from .logging import LOG_FILENAME, JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
)

__all__ = [
    "TomlConfigError",
    "install_template",
    "load_toml",
    "overlay_toml",
    "LOG_FILENAME",
    "configure_logger",
    "JsonLogFormatter",
    "ensure_workspace",
    "WorkspaceLayout",
    "WorkspaceError",
    "WORKSPACE_ENV",
]
