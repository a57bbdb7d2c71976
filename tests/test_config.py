# tests/test_config.py
from pathlib import Path

import pytest
from pydantic import ValidationError

from study_scheduler.config import DEFAULT_HOME, Settings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("STUDY_SCHEDULER_HOME", "STUDY_SCHEDULER_BACKEND", "STUDY_SCHEDULER_DEBUG"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings()
    assert settings.data_dir == DEFAULT_HOME
    assert settings.backend == "local"
    assert settings.debug is False


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("STUDY_SCHEDULER_HOME", str(tmp_path))
    monkeypatch.setenv("STUDY_SCHEDULER_BACKEND", " SQLite ")
    monkeypatch.setenv("STUDY_SCHEDULER_DEBUG", "1")
    settings = load_settings()
    assert settings.data_dir == tmp_path
    assert settings.backend == "sqlite"
    assert settings.debug is True
    assert settings.db_path == str(tmp_path / "scheduler.db")
    assert settings.local_store_path == str(tmp_path / "local_storage.json")


@pytest.mark.parametrize("value", ["0", "false", "No", "off", ""])
def test_debug_false_values(monkeypatch, value):
    monkeypatch.setenv("STUDY_SCHEDULER_DEBUG", value)
    assert load_settings().debug is False


def test_unknown_backend_rejected(monkeypatch):
    monkeypatch.setenv("STUDY_SCHEDULER_BACKEND", "postgres")
    with pytest.raises(ValidationError):
        load_settings()


def test_home_is_expanded(monkeypatch):
    monkeypatch.setenv("STUDY_SCHEDULER_HOME", "~/study")
    assert load_settings().data_dir == Path("~/study").expanduser()


def test_settings_model_direct(tmp_path):
    assert Settings(data_dir=tmp_path, backend="sqlite").db_path.endswith("scheduler.db")
