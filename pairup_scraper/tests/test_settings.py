from __future__ import annotations

import pydantic
import pytest

from pairup_scraper.config.settings import (
    Settings,
    WorkerConfig,
    get_settings,
    reset_settings,
)
from pairup_scraper.sources.base import (
    TimeoutFailure,
    TransportFailure,
    UnexpectedFailure,
)
from pairup_scraper.worker import FailureAction, FailureKind, FailurePolicy

CONFIG = """
worker:
  interval_seconds: 3600
failure_policy:
  transport: continue
  timeout: continue
source:
  url: https://pairup.example/api/activities
  timeout_seconds: 5
storage:
  db_path: {db_path}
"""


@pytest.fixture(name="config_file")
def fixture_config_file(tmp_path):
    path = tmp_path / "pairup.yaml"
    path.write_text(CONFIG.format(db_path=tmp_path / "pairup.db"), encoding="utf-8")
    return path


def test_defaults_run_daily_and_stop_on_any_failure():
    settings = Settings()

    assert settings.worker.interval_seconds == 86400
    assert settings.failure_policy.build().to_dict() == {
        "transport": "stop",
        "timeout": "stop",
        "unexpected": "stop",
    }


def test_from_yaml(config_file, tmp_path):
    settings = Settings.from_yaml(config_file)

    assert settings.worker.interval_seconds == 3600
    assert settings.source.url == "https://pairup.example/api/activities"
    assert settings.source.timeout_seconds == 5
    assert settings.storage.db_path == str(tmp_path / "pairup.db")

    policy = settings.failure_policy.build()
    assert policy.should_continue(TransportFailure("x"))
    assert policy.should_continue(TimeoutFailure("x"))
    assert not policy.should_continue(UnexpectedFailure(ValueError("x")))


def test_missing_file_falls_back_to_defaults(tmp_path):
    settings = Settings.from_yaml(tmp_path / "absent.yaml")

    assert settings == Settings()


def test_unparseable_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "pairup.yaml"
    path.write_text("worker: [unclosed", encoding="utf-8")

    assert Settings.from_yaml(path) == Settings()


def test_invalid_values_are_rejected(tmp_path):
    path = tmp_path / "pairup.yaml"
    path.write_text("failure_policy:\n  transport: retry\n", encoding="utf-8")

    with pytest.raises(pydantic.ValidationError):
        Settings.from_yaml(path)


def test_environment_overrides(monkeypatch, config_file):
    monkeypatch.setenv("PAIRUP_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("PAIRUP_DB_PATH", "/tmp/override.db")
    monkeypatch.setenv("PAIRUP_SOURCE_URL", "http://other/api")

    settings = Settings.from_yaml(config_file)

    assert settings.worker.interval_seconds == 0.5
    assert settings.storage.db_path == "/tmp/override.db"
    assert settings.source.url == "http://other/api"


@pytest.mark.parametrize("value", ["0", "-5", "nan", "inf", "daily"])
def test_invalid_interval_override_is_rejected(monkeypatch, config_file, value):
    monkeypatch.setenv("PAIRUP_INTERVAL_SECONDS", value)

    with pytest.raises(pydantic.ValidationError):
        WorkerConfig()
    with pytest.raises(pydantic.ValidationError):
        Settings.from_yaml(config_file)


def test_get_settings_uses_config_env_and_caches(monkeypatch, config_file):
    monkeypatch.setenv("PAIRUP_CONFIG", str(config_file))
    reset_settings()

    first = get_settings()

    assert first.worker.interval_seconds == 3600
    assert get_settings() is first


def test_failure_policy_kinds():
    policy = FailurePolicy(transport="continue")

    assert FailureKind.of(TransportFailure("x")) is FailureKind.Transport
    assert FailureKind.of(TimeoutFailure("x")) is FailureKind.Timeout
    assert FailureKind.of(UnexpectedFailure(ValueError())) is FailureKind.Unexpected
    assert policy.action_for(TransportFailure("x")) is FailureAction.Continue
    assert policy.action_for(TimeoutFailure("x")) is FailureAction.Stop

    with pytest.raises(ValueError):
        FailurePolicy(timeout="ignore")
