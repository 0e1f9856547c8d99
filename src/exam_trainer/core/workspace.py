"""Per-user data home for the trainer.

``--workspace`` or ``EXAM_TRAINER_HOME`` names the home explicitly. Without
either, ``~/.exam-trainer`` is used, and a temp directory stands in when that
cannot be created. The home always holds the same four folders: ``config``
for ``trainer.toml``, ``logs`` for the JSON run log, ``exports`` for session
summaries and ``banks`` for question bank files.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

WORKSPACE_ENV = "EXAM_TRAINER_HOME"
DEFAULT_WORKSPACE = Path.home() / ".exam-trainer"
FOLDERS = ("config", "logs", "exports", "banks")


class WorkspaceError(RuntimeError):
    """Raised when the workspace home cannot be prepared."""


@dataclass(frozen=True)
class WorkspaceLayout:
    home: Path

    def path_for(self, folder: str) -> Path:
        if folder not in FOLDERS:
            raise KeyError(f"Unknown workspace folder '{folder}'.")
        return self.home / folder

    def items(self) -> tuple[tuple[str, Path], ...]:
        return tuple((folder, self.home / folder) for folder in FOLDERS)


def ensure_workspace(
    *,
    env: Mapping[str, str] | None = None,
    path: Path | None = None,
) -> WorkspaceLayout:
    """Create the home and its folders, returning the layout.

    An explicit home that cannot be created is an error; only the default
    home falls back to the temp directory.
    """

    env_map = os.environ if env is None else env
    explicit = path if path is not None else _home_from_env(env_map)
    if explicit is not None:
        candidates = [explicit]
    else:
        candidates = [DEFAULT_WORKSPACE, _fallback_base()]

    denied: PermissionError | None = None
    for candidate in candidates:
        try:
            return _build(_absolute(candidate))
        except PermissionError as exc:
            denied = exc
    raise WorkspaceError(
        f"Unable to prepare workspace at {_absolute(candidates[0])}"
    ) from denied


def _home_from_env(env: Mapping[str, str]) -> Path | None:
    raw = (env.get(WORKSPACE_ENV) or "").strip()
    return Path(raw) if raw else None


def _absolute(path: Path) -> Path:
    return path.expanduser().resolve()


def _fallback_base() -> Path:
    return Path(tempfile.gettempdir()) / "exam-trainer-data"


def _build(home: Path) -> WorkspaceLayout:
    if home.exists() and not home.is_dir():
        raise WorkspaceError(f"Workspace path is not a directory: {home}")
    layout = WorkspaceLayout(home=home)
    for folder, folder_path in layout.items():
        try:
            _make_folder(folder_path)
        except FileExistsError as exc:
            raise WorkspaceError(
                f"Workspace {folder} folder is blocked by a file: "
                f"{folder_path}"
            ) from exc
    return layout


def _make_folder(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)
