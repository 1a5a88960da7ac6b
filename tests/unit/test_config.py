"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from flowgraph.config import load_config
from flowgraph.persistence import SQLiteHistoryStorage
from flowgraph.store import get_execution_store


def test_defaults_without_config_file():
    config = load_config()
    assert config.history.url is None
    assert config.history.limit == 20
    assert config.history.fallback_limit == 5
    assert config.pricing.model == "gemini-2.5-flash"
    assert config.flows_path is None


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "custom.yaml"
    config_path.write_text(
        """
history:
  url: sqlite://history.db
  limit: 7
pricing:
  input_per_1k: 0.5
  model: house-model
flows_path: ./flows
"""
    )
    monkeypatch.setenv("FLOWGRAPH_CONFIG", str(config_path))

    config = load_config()
    assert config.history.url == "sqlite://history.db"
    assert config.history.limit == 7
    assert config.pricing.input_per_1k == 0.5
    assert config.pricing.output_per_1k == 0.0006
    assert config.pricing.model == "house-model"
    assert config.flows_path == "./flows"


def test_default_file_in_working_directory(tmp_path):
    (tmp_path / "flowgraph.yaml").write_text("history:\n  limit: 3\n")
    assert load_config().history.limit == 3


def test_env_history_url_overrides_file(tmp_path, monkeypatch):
    config_path = tmp_path / "custom.yaml"
    config_path.write_text("history:\n  url: memory://\n")
    monkeypatch.setenv("FLOWGRAPH_HISTORY_URL", "sqlite://override.db")
    assert load_config(str(config_path)).history.url == "sqlite://override.db"


def test_invalid_limit_rejected(tmp_path):
    config_path = tmp_path / "custom.yaml"
    config_path.write_text("history:\n  limit: 0\n")
    with pytest.raises(ValidationError):
        load_config(str(config_path))


def test_default_store_uses_config(tmp_path, monkeypatch):
    config_path = tmp_path / "custom.yaml"
    config_path.write_text(f"history:\n  url: sqlite://{tmp_path / 'h.db'}\n  limit: 4\n")
    monkeypatch.setenv("FLOWGRAPH_CONFIG", str(config_path))

    store = get_execution_store()
    assert store.history_limit == 4
    assert isinstance(store._storage, SQLiteHistoryStorage)
