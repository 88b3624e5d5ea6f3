from __future__ import annotations

from typing import Iterator

import pytest

import rowkeeper
from rowkeeper import config
from rowkeeper.config import Settings
from rowkeeper.drivers.abstract import DriverAdapter
from rowkeeper.drivers.postgres import PostgresDriver
from rowkeeper.infrastructure.db_factory import build_dsn, connect_kwargs

ENV_VARS = (
    "DB_HOST",
    "DB_PORT",
    "DB_USER",
    "DB_PASSWORD",
    "DB_NAME",
    "DB_POOL_MIN_SIZE",
    "DB_POOL_MAX_SIZE",
    "DB_STATEMENT_TIMEOUT_MS",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


def test_get_settings_defaults(clean_env: None) -> None:
    settings = Settings(_env_file=None)
    assert settings.db_host == "localhost"
    assert settings.db_port == 5432
    assert settings.db_user == "postgres"
    assert settings.db_name == "rowkeeper"
    assert settings.db_pool_min_size <= settings.db_pool_max_size
    assert settings.db_statement_timeout_ms == 0


def test_settings_read_environment(clean_env: None, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DB_HOST", "db.internal")
    monkeypatch.setenv("DB_POOL_MAX_SIZE", "25")
    settings = config.get_settings()
    assert settings.db_host == "db.internal"
    assert settings.db_pool_max_size == 25
    assert config.get_settings() is settings


def test_build_dsn_and_connect_kwargs() -> None:
    settings = Settings(
        db_host="h", db_port=6543, db_user="u", db_password="p", db_name="n", db_statement_timeout_ms=0
    )
    assert build_dsn(settings) == "postgresql://u:p@h:6543/n"
    assert connect_kwargs(settings) == {}

    timed = settings.model_copy(update={"db_statement_timeout_ms": 1500})
    assert connect_kwargs(timed) == {"options": "-c statement_timeout=1500"}


def test_postgres_driver_satisfies_adapter_protocol() -> None:
    assert isinstance(PostgresDriver(pool=object()), DriverAdapter)


def test_package_exports_version() -> None:
    assert rowkeeper.__version__
    assert "Registry" in rowkeeper.__all__
