# tests/test_config.py

from __future__ import annotations

import pytest

from kalvian_roots.config import PROJECT_ROOT, get_config, load_config, reset_config
from kalvian_roots.logging import get_logger, list_active_loggers
from kalvian_roots.normalization.name_equivalence import NameEquivalenceEngine
from kalvian_roots.persistence.store import InMemoryStore


@pytest.fixture
def custom_config(tmp_path, monkeypatch):
    path = tmp_path / "roots.yml"
    path.write_text(
        "names:\n"
        "  confirmation_threshold: 0.8\n"
        "paths:\n"
        f"  data_dir: {tmp_path / 'data'}\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("KALVIAN_ROOTS_CONFIG", str(path))
    reset_config()
    yield path
    monkeypatch.delenv("KALVIAN_ROOTS_CONFIG")
    reset_config()


def test_defaults_fill_missing_sections(tmp_path) -> None:
    cfg = load_config(tmp_path / "absent.yml")
    assert cfg.names["rate_limit"] == 5
    assert cfg.resolver["max_concurrency"] == 4
    assert cfg.store_path == PROJECT_ROOT / "data" / "kalvian_roots_store.json"
    assert cfg.debug is False


def test_environment_selects_config_file(custom_config, tmp_path) -> None:
    cfg = get_config()

    assert cfg.names["confirmation_threshold"] == 0.8
    # untouched keys of a given section keep their defaults
    assert cfg.names["rate_window_seconds"] == 60
    assert cfg.store_path == tmp_path / "data" / "kalvian_roots_store.json"
    assert get_config() is cfg


def test_engine_reads_thresholds_from_config(custom_config) -> None:
    engine = NameEquivalenceEngine(InMemoryStore())
    assert engine.threshold == 0.8
    assert engine.rate_limit == 5


def test_loggers_live_under_package_hierarchy() -> None:
    log = get_logger("resolver")
    assert log.name == "kalvian_roots.resolver"
    assert get_logger("kalvian_roots.resolver") is log
    assert "kalvian_roots.resolver" in list_active_loggers()
