"""Pytest configuration and fixtures for typed_sqlite tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
from prometheus_client import CollectorRegistry

from typed_sqlite.adapters.outbound import CtypesSQLite
from typed_sqlite.application import Connection
from typed_sqlite.domain.entities import Database
from typed_sqlite.infrastructure.config import Config, EngineConfig
from typed_sqlite.infrastructure.container import Container, reset_container
from typed_sqlite.infrastructure.metrics import MetricsRegistry, set_metrics


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config() -> Config:
    """Provide a test configuration with short timeouts."""
    return Config(
        engine=EngineConfig(
            busy_timeout_ms=100,
            extended_result_codes=True,
        ),
    )


@pytest.fixture
def container() -> Generator[Container, None, None]:
    """Provide a fresh DI container for each test."""
    reset_container()
    c = Container()
    yield c
    c.clear()
    reset_container()


@pytest.fixture
def metrics_registry() -> Generator[MetricsRegistry, None, None]:
    """Provide a fresh metrics registry, installed as the global one."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    metrics = MetricsRegistry(registry=registry)
    set_metrics(metrics)
    yield metrics
    set_metrics(None)


@pytest.fixture(scope="session")
def engine() -> CtypesSQLite:
    """The system SQLite library, loaded once per session."""
    return CtypesSQLite()


@pytest.fixture
def conn(engine: CtypesSQLite) -> Generator[Connection, None, None]:
    """An open connection to a private in-memory database."""
    connection = Connection.builder(Database.memory()).engine(engine).open()
    yield connection
    connection.close()


@pytest.fixture
def users(conn: Connection) -> Connection:
    """A connection with a populated ``users`` table."""
    conn.execute_batch(
        """
        CREATE TABLE users(id INTEGER PRIMARY KEY, username TEXT, score REAL);
        INSERT INTO users VALUES (NULL, 'boo', 0.69);
        INSERT INTO users VALUES (NULL, 'foo', 1.5);
        INSERT INTO users VALUES (NULL, 'bar', NULL);
        """
    )
    return conn


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests against libsqlite3")
    config.addinivalue_line("markers", "slow: Slow tests")
