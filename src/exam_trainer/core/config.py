"""TOML plumbing behind ``trainer.toml``.

:func:`overlay_toml` reads a document and lays it over a table of defaults,
refusing keys the defaults do not name. :func:`install_template` copies the
packaged template into place for ``exam-trainer config init``.
"""

from __future__ import annotations

import copy
import tomllib
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, MutableMapping

__all__ = [
    "TomlConfigError",
    "install_template",
    "load_toml",
    "overlay_toml",
]


class TomlConfigError(RuntimeError):
    """Raised when a TOML document cannot be read or does not fit."""


def load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Failed to parse {path.name}: {exc}") from exc


def overlay_toml(defaults: Mapping[str, Any], path: Path) -> dict[str, Any]:
    """Return a copy of ``defaults`` with the values from ``path`` laid on.

    Tables have to line up with tables and arrays with arrays. Scalars are
    copied through untouched; the caller validates them.
    """

    merged = copy.deepcopy(dict(defaults))
    _overlay(merged, load_toml(path), prefix="")
    return merged


def install_template(
    target: Path,
    *,
    package: str,
    filename: str,
    overwrite: bool = False,
) -> Path:
    """Copy the TOML template shipped in ``package`` to ``target``."""

    if target.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {target}")
    try:
        resource = resources.files(package).joinpath(filename)
        text = resource.read_text(encoding="utf-8")
    except (FileNotFoundError, ModuleNotFoundError) as exc:
        raise TomlConfigError(
            f"Template '{filename}' not found in package '{package}'."
        ) from exc
    try:
        tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Packaged {filename} is broken: {exc}") from exc
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    return target


def _overlay(
    target: MutableMapping[str, Any], source: Mapping[str, Any], prefix: str
) -> None:
    unknown = sorted(set(source) - set(target))
    if unknown:
        names = ", ".join(prefix + key for key in unknown)
        raise TomlConfigError(f"Unknown configuration key(s): {names}.")
    for key, value in source.items():
        name = prefix + key
        current = target[key]
        if isinstance(current, MutableMapping):
            if not isinstance(value, Mapping):
                raise TomlConfigError(f"[{name}] must be a table.")
            _overlay(current, value, prefix=f"{name}.")
        elif isinstance(value, Mapping):
            raise TomlConfigError(f"{name} must be a value, not a table.")
        elif isinstance(current, list) and not isinstance(value, list):
            raise TomlConfigError(f"{name} must be an array.")
        else:
            target[key] = value
