"""Tests for environment settings and adapter selection."""
from __future__ import annotations

from pathlib import Path

import pytest

from family_graph.config import Settings, build_adapter
from family_graph.persistence import InMemoryRemoteStore, PostgrestRemoteStore, SQLiteRemoteStore


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "BACKEND",
        "SQLITE_PATH",
        "POSTGREST_URL",
        "POSTGREST_API_KEY",
        "HTTP_TIMEOUT",
        "HTTP_MAX_RETRIES",
        "REFETCH_AFTER_GRAPH_WRITE",
        "LOG_LEVEL",
        "ACTOR_ID",
    ):
        monkeypatch.delenv(f"FAMILY_GRAPH_{name}", raising=False)


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env()
        assert settings.backend == "sqlite"
        assert settings.http_max_retries == 3
        assert settings.refetch_after_graph_write is False

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("FAMILY_GRAPH_BACKEND", "Postgrest")
        monkeypatch.setenv("FAMILY_GRAPH_POSTGREST_URL", "https://db.example.co")
        monkeypatch.setenv("FAMILY_GRAPH_HTTP_TIMEOUT", "5")
        monkeypatch.setenv("FAMILY_GRAPH_REFETCH_AFTER_GRAPH_WRITE", "yes")
        monkeypatch.setenv("FAMILY_GRAPH_LOG_LEVEL", "debug")
        monkeypatch.setenv("FAMILY_GRAPH_ACTOR_ID", "acct-7")

        settings = Settings.from_env()

        assert settings.backend == "postgrest"
        assert settings.postgrest_url == "https://db.example.co"
        assert settings.http_timeout == 5.0
        assert settings.refetch_after_graph_write is True
        assert settings.log_level == "DEBUG"
        assert settings.actor_id == "acct-7"

    def test_bad_numbers_fall_back(self, monkeypatch):
        monkeypatch.setenv("FAMILY_GRAPH_HTTP_MAX_RETRIES", "many")
        assert Settings.from_env().http_max_retries == 3

    def test_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("FAMILY_GRAPH_BACKEND", "oracle")
        with pytest.raises(ValueError, match="Unknown backend"):
            Settings.from_env()


class TestBuildAdapter:
    def test_memory(self):
        assert isinstance(build_adapter(Settings(backend="memory")), InMemoryRemoteStore)

    def test_sqlite(self, tmp_path: Path):
        adapter = build_adapter(Settings(backend="sqlite", sqlite_path=tmp_path / "nested" / "tree.db"))
        assert isinstance(adapter, SQLiteRemoteStore)
        assert (tmp_path / "nested" / "tree.db").exists()

    def test_postgrest(self):
        adapter = build_adapter(
            Settings(backend="postgrest", postgrest_url="https://db.example.co", postgrest_api_key="anon")
        )
        assert isinstance(adapter, PostgrestRemoteStore)

    def test_postgrest_requires_url_and_key(self):
        with pytest.raises(ValueError, match="POSTGREST_URL"):
            build_adapter(Settings(backend="postgrest", postgrest_url="https://db.example.co"))
