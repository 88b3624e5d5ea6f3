"""
Pytest configuration for rowkeeper.

Provides fixtures for:
- An in-memory driver and a registry of sample entities for unit tests
- Database connection management for PostgreSQL integration tests
- Settings override for integration tests
"""

from __future__ import annotations

import os
from typing import Generator

import psycopg
import pytest

from memory_driver import InMemoryDriver
from rowkeeper.config import Settings
from rowkeeper.entity import Entity, Registry
from sample_models import build_memory_driver, build_registry


@pytest.fixture
def memory_driver() -> InMemoryDriver:
    return build_memory_driver()


@pytest.fixture
def registry(memory_driver: InMemoryDriver) -> Registry:
    return build_registry(memory_driver)


@pytest.fixture
def person(registry: Registry) -> Entity:
    return registry["person"]


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "rowkeeper"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;").fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped autocommit connection for schema setup.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn, autocommit=True)
    try:
        yield conn
    finally:
        conn.close()
