"""Unit tests for configuration and the DI container."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from typed_sqlite.infrastructure.config import (
    Config,
    EngineConfig,
    ObservabilityConfig,
    get_config,
)
from typed_sqlite.infrastructure.container import Container, register_defaults
from typed_sqlite.ports.outbound import NativeEngine


@pytest.mark.unit
class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_defaults(self) -> None:
        """Default values are correct."""
        config = EngineConfig()
        assert config.library_path is None
        assert config.threading_mode is None
        assert config.busy_timeout_ms == 5000
        assert config.extended_result_codes is True

    def test_negative_timeout_rejected(self) -> None:
        """Busy timeout must be non-negative."""
        with pytest.raises(ValidationError):
            EngineConfig(busy_timeout_ms=-1)

    def test_unknown_threading_mode_rejected(self) -> None:
        """Only the three engine modes are accepted."""
        with pytest.raises(ValidationError):
            EngineConfig(threading_mode="parallel")  # type: ignore[arg-type]


@pytest.mark.unit
class TestObservabilityConfig:
    """Tests for ObservabilityConfig."""

    def test_defaults(self) -> None:
        """Default values are correct."""
        config = ObservabilityConfig()
        assert config.log_level == "INFO"
        assert config.log_format == "json"
        assert config.otel_endpoint is None
        assert config.metrics_port is None

    def test_invalid_log_level(self) -> None:
        """Invalid log level is rejected."""
        with pytest.raises(ValidationError):
            ObservabilityConfig(log_level="INVALID")  # type: ignore[arg-type]


@pytest.mark.unit
class TestConfig:
    """Tests for the main Config."""

    def test_defaults(self) -> None:
        """Sections have default values."""
        config = Config()
        assert config.engine.busy_timeout_ms == 5000
        assert config.observability.otel_service_name == "typed_sqlite"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Nested values come from TYPED_SQLITE_<SECTION>__<FIELD>."""
        monkeypatch.setenv("TYPED_SQLITE_ENGINE__BUSY_TIMEOUT_MS", "250")
        monkeypatch.setenv("TYPED_SQLITE_ENGINE__THREADING_MODE", "multi_thread")
        config = Config()
        assert config.engine.busy_timeout_ms == 250
        assert config.engine.threading_mode == "multi_thread"

    def test_get_config_singleton(self) -> None:
        """get_config returns the same instance."""
        assert get_config() is get_config()


@pytest.mark.unit
class TestContainer:
    """Tests for the DI container."""

    def test_singleton(self, container: Container) -> None:
        """Registered singletons resolve to themselves."""
        engine = object()
        container.register_singleton(NativeEngine, engine)  # type: ignore[type-abstract]
        assert container.resolve(NativeEngine) is engine  # type: ignore[type-abstract]

    def test_factory_is_lazy_and_cached(self, container: Container) -> None:
        """Factories run once, on first resolve."""
        calls: list[int] = []

        def factory(c: Container) -> object:
            calls.append(1)
            return object()

        container.register_factory(NativeEngine, factory)  # type: ignore[type-abstract]
        assert calls == []
        first = container.resolve(NativeEngine)  # type: ignore[type-abstract]
        assert container.resolve(NativeEngine) is first  # type: ignore[type-abstract]
        assert calls == [1]

    def test_unregistered(self, container: Container) -> None:
        """Resolving an unknown interface raises KeyError."""
        with pytest.raises(KeyError):
            container.resolve(int)

    def test_register_defaults_keeps_existing(self, container: Container) -> None:
        """Defaults never replace an explicit registration."""
        engine = object()
        container.register_singleton(NativeEngine, engine)  # type: ignore[type-abstract]
        register_defaults(container)
        assert container.resolve(NativeEngine) is engine  # type: ignore[type-abstract]

    def test_register_defaults_adds_engine(self, container: Container) -> None:
        """An empty container gains a NativeEngine factory."""
        register_defaults(container)
        assert container.has(NativeEngine)  # type: ignore[type-abstract]

    def test_override_restores(self, container: Container) -> None:
        """override() swaps an implementation for the duration of a block."""
        original, replacement = object(), object()
        container.register_singleton(NativeEngine, original)  # type: ignore[type-abstract]
        with container.override(NativeEngine, replacement):  # type: ignore[type-abstract]
            assert container.resolve(NativeEngine) is replacement  # type: ignore[type-abstract]
        assert container.resolve(NativeEngine) is original  # type: ignore[type-abstract]
