"""Configuration loader for trainer sessions.

Precedence is CLI overrides > ``EXAM_TRAINER_*`` environment variables >
``trainer.toml`` > built-in defaults. The resolved :class:`TrainerConfig`
is passed explicitly to the CLI handlers and views.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, MutableMapping, Optional, Sequence

from .bank.models import ALLOWED_DOMAINS
from .core import config as core_config
from .core import workspace as workspace_mod
from .session.machine import SessionMode

CONFIG_FILENAME = "trainer.toml"
CONFIG_ENV = "EXAM_TRAINER_CONFIG"
ENV_PREFIX = "EXAM_TRAINER_"
TEMPLATE_PACKAGE = "exam_trainer"
TEMPLATE_FILENAME = "template.toml"

_DEFAULT_SIZE = 40
_DEFAULT_SEED = 42
_DEFAULT_FEEDBACK_DELAY_MS = 250
_DEFAULT_LOG_LEVEL = "INFO"


class TrainerConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class TrainerConfig:
    """Fully resolved configuration for a trainer run."""

    structured_path: Optional[Path]
    csv_path: Optional[Path]
    mode: SessionMode
    size: int
    seed: Optional[int]
    domains: tuple[str, ...]
    fully_deterministic: bool
    feedback_delay_ms: int
    export_dir: Path
    log_level: str


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    mode: Optional[SessionMode] = None
    size: Optional[int] = None
    seed: Optional[int] = None
    domains: Optional[Sequence[str]] = None
    fully_deterministic: Optional[bool] = None
    export_dir: Optional[Path] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    config: TrainerConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load configuration applying precedence CLI > env > TOML defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    layout = workspace_mod.ensure_workspace(env=env_map, path=workspace_path)
    requested_path = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=layout.path_for("config") / CONFIG_FILENAME,
    )

    options = _default_table(layout)
    loaded_path: Optional[Path] = None
    if requested_path.exists():
        loaded_path = requested_path
        try:
            options = core_config.overlay_toml(options, requested_path)
        except core_config.TomlConfigError as exc:
            raise TrainerConfigError(str(exc)) from exc
    elif config_path is not None or env_map.get(CONFIG_ENV, "").strip():
        raise TrainerConfigError(f"Config file not found: {requested_path}")

    bank = options["bank"]
    session = options["session"]

    try:
        mode = _pick_first(
            overrides.mode,
            _env_mode(env_map),
            SessionMode.from_value(_require_str(session["mode"], "mode")),
        )
    except ValueError as exc:
        raise TrainerConfigError(str(exc)) from exc

    size = _resolve_size(
        _pick_first(overrides.size, _env_int(env_map, "SIZE"), session["size"])
    )
    seed = _resolve_seed(
        _pick_first(overrides.seed, _env_int(env_map, "SEED"), session["seed"])
    )
    domains = _normalize_domains(
        _pick_first(
            overrides.domains, _env_domains(env_map), session["domains"]
        )
    )
    deterministic = bool(
        _pick_first(
            overrides.fully_deterministic,
            _env_bool(env_map, "FULLY_DETERMINISTIC"),
            session["fully_deterministic"],
        )
    )
    delay = session["feedback_delay_ms"]
    if isinstance(delay, bool) or not isinstance(delay, int) or delay < 0:
        raise TrainerConfigError(
            "session.feedback_delay_ms must be a non-negative integer."
        )

    export_dir = _resolve_dir(
        _pick_first(
            overrides.export_dir,
            _env_path(env_map, "EXPORT_DIR"),
            _coerce_optional_path(options["export"]["output_dir"], "export"),
        ),
        default=layout.path_for("exports"),
        layout=layout,
    )
    log_level = _require_str(
        _pick_first(
            overrides.log_level,
            _env_string(env_map, "LOG_LEVEL"),
            options["logging"]["level"],
        ),
        "logging.level",
    ).upper()

    config = TrainerConfig(
        structured_path=_resolve_bank_path(
            _pick_first(
                _env_path(env_map, "STRUCTURED_PATH"),
                _coerce_optional_path(bank["structured_path"], "bank"),
            ),
            layout,
        ),
        csv_path=_resolve_bank_path(
            _pick_first(
                _env_path(env_map, "CSV_PATH"),
                _coerce_optional_path(bank["csv_path"], "bank"),
            ),
            layout,
        ),
        mode=mode,
        size=size,
        seed=seed,
        domains=domains,
        fully_deterministic=deterministic,
        feedback_delay_ms=delay,
        export_dir=export_dir,
        log_level=log_level,
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def write_template(path: Path, *, overwrite: bool = False) -> Path:
    try:
        return core_config.install_template(
            path,
            package=TEMPLATE_PACKAGE,
            filename=TEMPLATE_FILENAME,
            overwrite=overwrite,
        )
    except core_config.TomlConfigError as exc:
        raise TrainerConfigError(str(exc)) from exc


def _default_table(
    layout: workspace_mod.WorkspaceLayout,
) -> MutableMapping[str, MutableMapping[str, object]]:
    banks = layout.path_for("banks")
    return {
        "bank": {
            "structured_path": str(banks / "questions.json"),
            "csv_path": str(banks / "questions.csv"),
        },
        "session": {
            "mode": SessionMode.PRACTICE.value,
            "size": _DEFAULT_SIZE,
            "seed": _DEFAULT_SEED,
            "domains": list(ALLOWED_DOMAINS),
            "fully_deterministic": False,
            "feedback_delay_ms": _DEFAULT_FEEDBACK_DELAY_MS,
        },
        "export": {"output_dir": None},
        "logging": {"level": _DEFAULT_LOG_LEVEL},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = env_map.get(CONFIG_ENV, "").strip()
    if env_candidate:
        return Path(env_candidate).expanduser()
    return default_path


def _resolve_size(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise TrainerConfigError("session.size must be a positive integer.")
    return value


def _resolve_seed(value: object) -> Optional[int]:
    # A negative seed in TOML asks for a random seed per run.
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise TrainerConfigError("session.seed must be an integer.")
    return None if value < 0 else value


def _normalize_domains(value: object) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        raise TrainerConfigError("session.domains must be a list of names.")
    lookup = {domain.lower(): domain for domain in ALLOWED_DOMAINS}
    result: list[str] = []
    for item in value:
        key = str(item).strip().lower()
        if key not in lookup:
            expected = ", ".join(ALLOWED_DOMAINS)
            raise TrainerConfigError(
                f"Unknown domain '{item}'. Expected one of: {expected}."
            )
        if lookup[key] not in result:
            result.append(lookup[key])
    if not result:
        raise TrainerConfigError("At least one domain must be selected.")
    return tuple(result)


def _coerce_optional_path(value: object, section: str) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, str):
        raw = value.strip()
        return Path(raw) if raw else None
    raise TrainerConfigError(f"{section} paths must be strings when provided.")


def _resolve_bank_path(
    candidate: object, layout: workspace_mod.WorkspaceLayout
) -> Optional[Path]:
    if candidate is None:
        return None
    path = Path(str(candidate)).expanduser()
    if not path.is_absolute():
        return (layout.home / path).resolve()
    return path


def _resolve_dir(
    candidate: object,
    *,
    default: Path,
    layout: workspace_mod.WorkspaceLayout,
) -> Path:
    if candidate is None:
        return default
    path = Path(str(candidate)).expanduser()
    if not path.is_absolute():
        return (layout.home / path).resolve()
    return path.resolve()


def _require_str(value: object, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise TrainerConfigError(f"{name} must be a non-empty string.")
    return value.strip()


def _env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _env_int(env_map: Mapping[str, str], key: str) -> Optional[int]:
    raw = _env_string(env_map, key)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise TrainerConfigError(
            f"{ENV_PREFIX}{key} must be an integer, got '{raw}'."
        ) from exc


def _env_bool(env_map: Mapping[str, str], key: str) -> Optional[bool]:
    raw = _env_string(env_map, key)
    if raw is None:
        return None
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_mode(env_map: Mapping[str, str]) -> Optional[SessionMode]:
    raw = _env_string(env_map, "MODE")
    if raw is None:
        return None
    return SessionMode.from_value(raw)


def _env_domains(env_map: Mapping[str, str]) -> Optional[list[str]]:
    raw = _env_string(env_map, "DOMAINS")
    if raw is None:
        return None
    parts = [part for part in raw.replace(",", " ").split() if part]
    return parts or None


def _env_path(env_map: Mapping[str, str], key: str) -> Optional[Path]:
    raw = _env_string(env_map, key)
    if raw is None:
        return None
    return Path(raw).expanduser()


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
