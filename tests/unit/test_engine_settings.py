"""Tests for engine settings."""

from pathlib import Path

import pytest

from pagepolish.config import settings as settings_module
from pagepolish.config.settings import EngineSettings, load_engine_settings
from pagepolish.storage.kv_store import DEFAULT_STORE_DIR


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.setattr(settings_module, "_ENV_LOADED", True)
    for name in (
        "POLISH_STORE_DIR",
        "POLISH_SUBMIT_TIMEOUT",
        "POLISH_FAST_TIMEOUT",
        "POLISH_HISTORY_CAP",
        "POLISH_IN_MEMORY_STORE",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = EngineSettings()
    assert settings.history_cap == 100
    assert settings.submit_timeout == 60
    assert settings.fast_timeout == 5
    assert settings.resolved_store_dir == DEFAULT_STORE_DIR
    limits = settings.snapshot_limits
    assert (limits.max_depth, limits.max_markup_chars, limits.max_rules) == (3, 5000, 20)


def test_with_overrides_returns_copy(tmp_path):
    base = EngineSettings()
    updated = base.with_overrides(store_dir=str(tmp_path), in_memory_store=True, history_cap=5)
    assert updated.store_dir == Path(tmp_path)
    assert updated.in_memory_store is True
    assert updated.history_cap == 5
    assert base.history_cap == 100
    assert base.with_overrides() == base


@pytest.mark.parametrize("kwargs", [{"history_cap": 0}, {"fast_timeout": 0}, {"submit_timeout": -1}])
def test_validation(kwargs):
    with pytest.raises(ValueError):
        EngineSettings(**kwargs)


def test_load_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("POLISH_STORE_DIR", str(tmp_path))
    monkeypatch.setenv("POLISH_SUBMIT_TIMEOUT", "45")
    monkeypatch.setenv("POLISH_HISTORY_CAP", "10")
    monkeypatch.setenv("POLISH_IN_MEMORY_STORE", "true")
    settings = load_engine_settings()
    assert settings.store_dir == tmp_path
    assert settings.submit_timeout == 45.0
    assert settings.history_cap == 10
    assert settings.in_memory_store is True


def test_load_without_env():
    assert load_engine_settings() == EngineSettings()
