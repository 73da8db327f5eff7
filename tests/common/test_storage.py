from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest

from identigraph.config import ConfigurationError, storage


def test_storage_prefers_explicit_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("IDENTIGRAPH_DATA_DIR", str(custom))

    result = storage.get_storage_config().resolve_data_dir()

    assert result == custom.resolve()


def test_database_uri_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://localhost/identigraph")
    monkeypatch.setenv("IDENTIGRAPH_STORE_TIMEOUT", "2.5")

    config = storage.get_database_config()

    assert config.uri == "postgresql+psycopg://localhost/identigraph"
    assert not config.is_sqlite
    assert config.connect_args() == {"options": "-c statement_timeout=2500"}


def test_database_uri_creates_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.delenv("IDENTIGRAPH_STORE_TIMEOUT", raising=False)
    monkeypatch.setenv("IDENTIGRAPH_DATA_DIR", str(tmp_path / "data-dir"))

    config = storage.get_database_config()

    expected_path = (tmp_path / "data-dir" / storage.DEFAULT_DB_FILENAME).resolve()
    assert config.uri == f"sqlite+pysqlite:///{expected_path}"
    assert expected_path.parent.exists()
    assert config.connect_args() == {"timeout": storage.DEFAULT_STORE_TIMEOUT_SECONDS}


def test_store_timeout_must_be_numeric(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IDENTIGRAPH_STORE_TIMEOUT", "soon")

    with pytest.raises(ConfigurationError):
        storage.get_database_config()
