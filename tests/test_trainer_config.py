from __future__ import annotations

from pathlib import Path

import pytest

from exam_trainer import config as trainer_config
from exam_trainer.bank.models import ALLOWED_DOMAINS
from exam_trainer.session.machine import SessionMode


def _write_config(home: Path, body: str) -> Path:
    path = home / "config" / trainer_config.CONFIG_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")
    return path


def test_defaults_without_a_config_file(tmp_path):
    result = trainer_config.load_config(env={}, workspace_path=tmp_path)
    config = result.config

    assert result.config_path is None
    assert config.mode is SessionMode.PRACTICE
    assert config.size == 40
    assert config.seed == 42
    assert config.domains == ALLOWED_DOMAINS
    assert config.fully_deterministic is False
    assert config.feedback_delay_ms == 250
    assert config.log_level == "INFO"
    assert config.export_dir == result.layout.path_for("exports")
    assert config.structured_path == (
        result.layout.path_for("banks") / "questions.json"
    )


def test_toml_values_are_applied(tmp_path):
    path = _write_config(
        tmp_path,
        """
[bank]
structured_path = ""
csv_path = "data/bank.csv"

[session]
mode = "exam"
size = 10
seed = -1
domains = ["agile", "People", "Agile"]
fully_deterministic = true
feedback_delay_ms = 0

[export]
output_dir = "out"

[logging]
level = "debug"
""",
    )

    result = trainer_config.load_config(env={}, workspace_path=tmp_path)
    config = result.config

    assert result.config_path.resolve() == path.resolve()
    assert config.mode is SessionMode.EXAM
    assert config.size == 10
    assert config.seed is None
    assert config.domains == ("Agile", "People")
    assert config.fully_deterministic is True
    assert config.feedback_delay_ms == 0
    assert config.structured_path is None
    assert config.csv_path == (tmp_path / "data" / "bank.csv").resolve()
    assert config.export_dir == (tmp_path / "out").resolve()
    assert config.log_level == "DEBUG"


def test_env_overrides_toml_and_cli_overrides_env(tmp_path):
    _write_config(tmp_path, '[session]\nmode = "practice"\nsize = 10\n')
    env = {
        "EXAM_TRAINER_MODE": "exam",
        "EXAM_TRAINER_SIZE": "20",
        "EXAM_TRAINER_DOMAINS": "People, Process",
        "EXAM_TRAINER_FULLY_DETERMINISTIC": "yes",
    }

    from_env = trainer_config.load_config(env=env, workspace_path=tmp_path)
    assert from_env.config.mode is SessionMode.EXAM
    assert from_env.config.size == 20
    assert from_env.config.domains == ("People", "Process")
    assert from_env.config.fully_deterministic is True

    overrides = trainer_config.ConfigOverrides(
        mode=SessionMode.PRACTICE,
        size=5,
        domains=["Business"],
        fully_deterministic=False,
        log_level="warning",
    )
    from_cli = trainer_config.load_config(
        env=env, workspace_path=tmp_path, overrides=overrides
    )
    assert from_cli.config.mode is SessionMode.PRACTICE
    assert from_cli.config.size == 5
    assert from_cli.config.domains == ("Business",)
    assert from_cli.config.fully_deterministic is False
    assert from_cli.config.log_level == "WARNING"


def test_config_path_from_env(tmp_path):
    custom = tmp_path / "elsewhere.toml"
    custom.write_text("[session]\nsize = 3\n", encoding="utf-8")

    result = trainer_config.load_config(
        env={trainer_config.CONFIG_ENV: str(custom)},
        workspace_path=tmp_path / "ws",
    )

    assert result.config_path == custom
    assert result.config.size == 3


def test_explicit_missing_config_errors(tmp_path):
    with pytest.raises(trainer_config.TrainerConfigError, match="not found"):
        trainer_config.load_config(
            config_path=tmp_path / "missing.toml",
            env={},
            workspace_path=tmp_path,
        )


@pytest.mark.parametrize(
    "body, message",
    [
        ('[session]\nmode = "cram"\n', "Unknown session mode"),
        ("[session]\nsize = 0\n", "positive integer"),
        ('[session]\nseed = "abc"\n', "must be an integer"),
        ('[session]\ndomains = ["Scrum"]\n', "Unknown domain"),
        ("[session]\ndomains = []\n", "At least one domain"),
        ("[session]\nfeedback_delay_ms = -5\n", "non-negative"),
        ("[session]\nunknown = 1\n", "Unknown configuration key"),
        ("[bank]\ncsv_path = 3\n", "must be strings"),
        ("[session\n", "parse"),
    ],
)
def test_invalid_values_raise(tmp_path, body, message):
    _write_config(tmp_path, body)

    with pytest.raises(trainer_config.TrainerConfigError, match=message):
        trainer_config.load_config(env={}, workspace_path=tmp_path)


def test_bad_env_integer(tmp_path):
    with pytest.raises(trainer_config.TrainerConfigError, match="SIZE"):
        trainer_config.load_config(
            env={"EXAM_TRAINER_SIZE": "many"}, workspace_path=tmp_path
        )


def test_template_round_trips_through_the_loader(tmp_path):
    target = tmp_path / "config" / trainer_config.CONFIG_FILENAME

    trainer_config.write_template(target)
    result = trainer_config.load_config(env={}, workspace_path=tmp_path)

    assert result.config_path.resolve() == target.resolve()
    assert result.config.size == 40
    assert result.config.seed == 42
    assert result.config.export_dir == result.layout.path_for("exports")
    assert result.config.csv_path == (tmp_path / "banks" / "questions.csv").resolve()

    with pytest.raises(trainer_config.TrainerConfigError):
        trainer_config.write_template(target)
