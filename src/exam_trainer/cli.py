"""CLI entry point for the exam trainer."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .bank import (
    BankUploadError,
    LoadedBank,
    domain_counts,
    filter_by_domains,
    load_default_bank,
    load_upload,
)
from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    LoadResult,
    TrainerConfig,
    TrainerConfigError,
    load_config,
    write_template,
)
from .core import workspace as workspace_mod
from .core.logging import configure_logger
from .core.workspace import WorkspaceError
from .session import (
    EmptyPoolError,
    SessionMode,
    TrainerSession,
    export_session,
)
from .view.app import TrainerApp
from .view.console import run_trainer_session

InputProvider = Callable[[], str]


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help=(
            "Path to a TOML config file (defaults to the workspace config "
            "directory)."
        ),
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root (defaults to EXAM_TRAINER_HOME).",
    )
    parser.add_argument(
        "--upload",
        type=Path,
        help="Load questions from a .json or .csv file instead of the bank.",
    )
    parser.add_argument(
        "--log-level",
        help="Set the logging level for the run (defaults to INFO).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Also print log records to stderr.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="exam-trainer",
        description="Practice and exam sessions over a local question bank.",
        epilog=(
            "Run `exam-trainer config init` to scaffold the default "
            "trainer.toml template."
        ),
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    start = sub.add_parser("start", help="Run a practice or exam session")
    _add_common_options(start)
    start.add_argument(
        "--domains",
        nargs="+",
        help="Limit the pool to these domains (People Process Business Agile)",
    )
    start.add_argument(
        "--mode",
        choices=[mode.value for mode in SessionMode],
        help="Session mode (defaults to practice).",
    )
    start.add_argument("--size", type=int, help="Questions per session")
    start.add_argument(
        "--seed",
        type=int,
        help="Seed for question order; a negative value draws a random seed.",
    )
    start.add_argument(
        "--deterministic",
        action="store_true",
        default=None,
        help="Derive choice order from the seed as well.",
    )
    start.add_argument(
        "--tui",
        action="store_true",
        help="Use the Textual interface instead of the console loop.",
    )
    start.add_argument(
        "--export",
        action="store_true",
        help="Write the session summary CSV when the session ends.",
    )
    start.add_argument(
        "--export-dir",
        type=Path,
        help="Directory for exported summaries (default: workspace exports).",
    )
    start.set_defaults(func=_cmd_start)

    inspect = sub.add_parser("inspect", help="Show the loaded question bank")
    _add_common_options(inspect)
    inspect.set_defaults(func=_cmd_inspect)

    config = sub.add_parser("config", help="Manage the trainer config file")
    config_sub = config.add_subparsers(dest="config_cmd", required=True)
    init = config_sub.add_parser("init", help="Write the default trainer.toml")
    init.add_argument(
        "--path",
        type=Path,
        help=(
            "Destination for the config TOML (defaults to the workspace "
            "config directory)."
        ),
    )
    init.add_argument(
        "--workspace",
        type=Path,
        help="Workspace root override used for the default config path.",
    )
    init.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the destination if a config already exists.",
    )
    init.set_defaults(func=_cmd_config_init)
    return parser


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
    input_provider: Optional[InputProvider] = None,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    out = console or Console()
    return args.func(args, out, input_provider)


def _cmd_start(
    args: argparse.Namespace,
    console: Console,
    input_provider: Optional[InputProvider],
) -> int:
    seed = args.seed
    overrides = ConfigOverrides(
        mode=SessionMode.from_value(args.mode) if args.mode else None,
        size=args.size,
        seed=None if seed is None or seed < 0 else seed,
        domains=args.domains,
        fully_deterministic=args.deterministic,
        export_dir=args.export_dir,
        log_level=args.log_level,
    )
    loaded = _load(args, console, overrides)
    if loaded is None:
        return 2
    config = loaded.config
    logger, _ = configure_logger(
        "exam_trainer",
        log_dir=loaded.layout.path_for("logs"),
        level=config.log_level,
        verbose=args.verbose,
    )

    bank = _load_bank(args, config, console)
    pool = filter_by_domains(bank.questions, config.domains)
    if not pool:
        console.print(
            "[red]No questions match the selected domains: "
            f"{escape(', '.join(config.domains))}[/]"
        )
        return 1

    session = TrainerSession()
    try:
        session.start(
            pool,
            size=config.size,
            seed=None if seed is not None and seed < 0 else config.seed,
            mode=config.mode,
            fully_deterministic=config.fully_deterministic,
        )
    except EmptyPoolError as exc:
        console.print(f"[red]{escape(str(exc))}[/]")
        return 1

    if args.tui:
        TrainerApp(session, feedback_delay_ms=config.feedback_delay_ms).run()
    else:
        provider = input_provider or (lambda: console.input("[bold]> [/]"))
        run_trainer_session(
            session,
            console,
            provider,
            feedback_delay_ms=config.feedback_delay_ms,
        )

    if args.export and session.total_questions:
        try:
            path = export_session(session, config.export_dir)
        except OSError as exc:
            logger.error("Export failed", extra={"error": str(exc)})
            console.print(
                f"[red]Could not write export: {escape(str(exc))}[/]"
            )
            return 1
        console.print(f"Exported session summary to {escape(str(path))}")
    return 0


def _cmd_inspect(
    args: argparse.Namespace,
    console: Console,
    input_provider: Optional[InputProvider],
) -> int:
    loaded = _load(args, console, ConfigOverrides(log_level=args.log_level))
    if loaded is None:
        return 2
    configure_logger(
        "exam_trainer",
        log_dir=loaded.layout.path_for("logs"),
        level=loaded.config.log_level,
        verbose=args.verbose,
    )
    bank = _load_bank(args, loaded.config, console)

    location = f" ({escape(str(bank.path))})" if bank.path else ""
    console.print(f"Source: {bank.source.value}{location}")
    table = Table(title="Questions per domain", box=box.SIMPLE)
    table.add_column("Domain")
    table.add_column("Count", justify="right")
    for domain, count in domain_counts(bank.questions).items():
        table.add_row(domain, str(count))
    table.add_row("Total", str(len(bank.questions)), style="bold")
    console.print(table)
    duplicates = bank.duplicate_ids
    if duplicates:
        console.print(
            f"[yellow]Duplicate ids: {escape(', '.join(duplicates))}[/]"
        )
    return 0


def _cmd_config_init(
    args: argparse.Namespace,
    console: Console,
    input_provider: Optional[InputProvider],
) -> int:
    try:
        target = _resolve_config_target(args)
    except WorkspaceError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1
    try:
        written = write_template(target, overwrite=args.force)
    except TrainerConfigError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1
    console.print(f"Wrote trainer config to {written}")
    return 0


def _load(
    args: argparse.Namespace,
    console: Console,
    overrides: ConfigOverrides,
) -> Optional[LoadResult]:
    try:
        return load_config(
            config_path=args.config,
            overrides=overrides,
            workspace_path=args.workspace,
        )
    except (TrainerConfigError, WorkspaceError) as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return None


def _load_bank(
    args: argparse.Namespace, config: TrainerConfig, console: Console
) -> LoadedBank:
    bank = load_default_bank(config.structured_path, config.csv_path)
    if args.upload is None:
        return bank
    try:
        return load_upload(args.upload.expanduser())
    except BankUploadError as exc:
        console.print(
            f"[red]{escape(str(exc))}[/] Keeping the current question bank."
        )
        return bank


def _resolve_config_target(args: argparse.Namespace) -> Path:
    if args.path is not None:
        candidate = args.path.expanduser()
        if not candidate.is_absolute():
            candidate = (Path.cwd() / candidate).resolve()
        return candidate
    layout = workspace_mod.ensure_workspace(path=args.workspace)
    return layout.path_for("config") / CONFIG_FILENAME


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
