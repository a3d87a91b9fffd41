"""Unit tests for identifiers and engine enumerations."""

from __future__ import annotations

import pytest

from typed_sqlite.domain.value_objects import (
    ChangeSummary,
    OpenOption,
    ResultCode,
    RowId,
    StatementState,
    ThreadingMode,
)


@pytest.mark.unit
class TestRowId:
    """Tests for RowId."""

    def test_wraps_value(self) -> None:
        """RowId exposes its integer value."""
        rid = RowId(42)
        assert rid.value == 42
        assert int(rid) == 42
        assert repr(rid) == "RowId(42)"

    def test_zero_rejected(self) -> None:
        """Zero is never an engine-assigned row id."""
        with pytest.raises(ValueError, match="nonzero"):
            RowId(0)

    def test_negative_allowed(self) -> None:
        """Explicit negative row ids are legal."""
        assert RowId(-5).value == -5

    def test_out_of_range(self) -> None:
        """Values beyond 64 bits are rejected."""
        with pytest.raises(ValueError):
            RowId(2**63)

    def test_bool_rejected(self) -> None:
        """Booleans are not row ids."""
        with pytest.raises(TypeError):
            RowId(True)

    def test_ordering_and_equality(self) -> None:
        """RowIds compare by value."""
        assert RowId(1) < RowId(2)
        assert RowId(7) == RowId(7)
        assert len({RowId(7), RowId(7)}) == 1

    def test_not_an_int(self) -> None:
        """RowId is a distinct type from plain integers."""
        assert RowId(1) != 1


@pytest.mark.unit
class TestThreadingMode:
    """Tests for ThreadingMode ordering."""

    def test_values_match_threadsafe(self) -> None:
        """Values follow sqlite3_threadsafe()."""
        assert ThreadingMode(0) is ThreadingMode.SINGLE_THREAD
        assert ThreadingMode(1) is ThreadingMode.SERIALIZED
        assert ThreadingMode(2) is ThreadingMode.MULTI_THREAD

    def test_supports_weaker_modes(self) -> None:
        """A build supports its own mode and every weaker one."""
        serialized = ThreadingMode.SERIALIZED
        assert serialized.supports(ThreadingMode.SERIALIZED)
        assert serialized.supports(ThreadingMode.MULTI_THREAD)
        assert serialized.supports(ThreadingMode.SINGLE_THREAD)

    def test_rejects_stronger_modes(self) -> None:
        """A single-thread build supports nothing stronger."""
        single = ThreadingMode.SINGLE_THREAD
        assert not single.supports(ThreadingMode.MULTI_THREAD)
        assert not single.supports(ThreadingMode.SERIALIZED)
        assert not ThreadingMode.MULTI_THREAD.supports(ThreadingMode.SERIALIZED)

    def test_open_flags(self) -> None:
        """Each mode selects its mutex flag."""
        assert ThreadingMode.SERIALIZED.open_flags() == OpenOption.FULL_MUTEX
        assert ThreadingMode.MULTI_THREAD.open_flags() == OpenOption.NO_MUTEX
        assert ThreadingMode.SINGLE_THREAD.open_flags() == OpenOption(0)


@pytest.mark.unit
class TestResultCode:
    """Tests for ResultCode categories."""

    def test_primary_from_extended(self) -> None:
        """Extended codes map to their primary code."""
        # SQLITE_CONSTRAINT_UNIQUE
        assert ResultCode.from_code(2067) is ResultCode.CONSTRAINT
        # SQLITE_BUSY_SNAPSHOT
        assert ResultCode.from_code(517) is ResultCode.BUSY

    def test_unknown(self) -> None:
        """Unlisted codes map to UNKNOWN."""
        assert ResultCode.from_code(99) is ResultCode.UNKNOWN


@pytest.mark.unit
class TestStatementState:
    """Tests for StatementState."""

    def test_terminal_states(self) -> None:
        """Only DONE and FAILED are terminal."""
        assert StatementState.DONE.is_terminal()
        assert StatementState.FAILED.is_terminal()
        assert not StatementState.READY.is_terminal()
        assert not StatementState.EXECUTING.is_terminal()


@pytest.mark.unit
def test_change_summary_defaults() -> None:
    """ChangeSummary has no row id unless one was assigned."""
    summary = ChangeSummary(rows_affected=3)
    assert summary.last_row_id is None
