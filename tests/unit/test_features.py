"""Unit tests for the feature probe model."""

from __future__ import annotations

import pytest

from typed_sqlite.application.features import Features, Flag, Version, option_name
from typed_sqlite.domain.errors import LibraryLoadError
from typed_sqlite.domain.value_objects import ThreadingMode

PROBE_OUTPUT = """3045000
1

COMPILER=gcc-12.2.0
ENABLE_FTS5
ENABLE_RTREE
THREADSAFE=1
"""


class StubEngine:
    """Minimal engine answering only the probe calls."""

    def __init__(self, init_code: int = 0) -> None:
        self.init_code = init_code
        self.options = ["ENABLE_FTS5", "THREADSAFE=2"]

    def initialize(self) -> int:
        return self.init_code

    def errstr(self, code: int) -> str:
        return "out of memory"

    def libversion_number(self) -> int:
        return 3039004

    def threadsafe(self) -> int:
        return 2

    def compileoption_get(self, index: int) -> str | None:
        return self.options[index] if index < len(self.options) else None


@pytest.mark.unit
class TestVersion:
    """Tests for Version."""

    def test_from_number(self) -> None:
        """Numbers decode as major*1e6 + minor*1e3 + patch."""
        assert Version.from_number(3045000) == Version(3, 45, 0)
        assert Version.from_number(3039004) == Version(3, 39, 4)

    def test_number_roundtrip(self) -> None:
        """The number form is stable."""
        assert Version(3, 45, 1).number == 3045001

    def test_parse(self) -> None:
        """Dotted strings parse, missing parts are zero."""
        assert Version.parse("3.45.1") == Version(3, 45, 1)
        assert Version.parse("3.45") == Version(3, 45, 0)
        assert str(Version(3, 45, 1)) == "3.45.1"

    def test_ordering(self) -> None:
        """Versions order numerically."""
        assert Version(3, 9, 0) < Version(3, 10, 0)


@pytest.mark.unit
class TestFeatures:
    """Tests for parsing and rendering the probe stream."""

    def test_parse(self) -> None:
        """All three sections are read."""
        features = Features.parse(PROBE_OUTPUT)
        assert features.version == Version(3, 45, 0)
        assert features.threading_mode is ThreadingMode.SERIALIZED
        assert features.compile_options == (
            "COMPILER=gcc-12.2.0",
            "ENABLE_FTS5",
            "ENABLE_RTREE",
            "THREADSAFE=1",
        )

    def test_render_matches_stream(self) -> None:
        """render() produces the same stream parse() reads."""
        assert Features.parse(PROBE_OUTPUT).render() == PROBE_OUTPUT

    def test_parse_strips_prefix(self) -> None:
        """SQLITE_ prefixes are dropped from option names."""
        features = Features.parse("3045000\n0\n\nSQLITE_ENABLE_JSON1\n")
        assert features.compile_options == ("ENABLE_JSON1",)
        assert features.threading_mode is ThreadingMode.SINGLE_THREAD

    def test_parse_without_options(self) -> None:
        """A stream with no options is valid."""
        features = Features.parse("3045000\n2\n")
        assert features.compile_options == ()
        assert features.threading_mode is ThreadingMode.MULTI_THREAD

    @pytest.mark.parametrize(
        "text",
        ["", "3045000\n", "abc\n1\n\n", "3045000\n7\n\n", "3045000\n1\nENABLE_FTS5\n"],
    )
    def test_parse_malformed(self, text: str) -> None:
        """Truncated or malformed streams are rejected."""
        with pytest.raises(ValueError):
            Features.parse(text)

    def test_flags(self) -> None:
        """Well-known options are recognized."""
        features = Features.parse(PROBE_OUTPUT)
        assert features.is_enabled(Flag.ENABLE_FTS5)
        assert not features.is_enabled(Flag.ENABLE_JSON1)
        assert features.is_enabled("SQLITE_ENABLE_RTREE")
        assert features.flags == frozenset({Flag.ENABLE_FTS5, Flag.ENABLE_RTREE})

    def test_option_values(self) -> None:
        """NAME=value options expose their value."""
        features = Features.parse(PROBE_OUTPUT)
        assert features.option("THREADSAFE") == "1"
        assert features.option("ENABLE_FTS5") == ""
        assert features.option("OMIT_JSON") is None

    def test_option_name(self) -> None:
        """option_name drops prefix and value."""
        assert option_name("SQLITE_THREADSAFE=1") == "THREADSAFE"
        assert Flag.parse("SQLITE_OMIT_UTF16") is Flag.OMIT_UTF16
        assert Flag.parse("MAX_PAGE_SIZE=65536") is None

    def test_probe(self) -> None:
        """probe() reads every value from the engine."""
        features = Features.probe(StubEngine())  # type: ignore[arg-type]
        assert features.version == Version(3, 39, 4)
        assert features.threading_mode is ThreadingMode.MULTI_THREAD
        assert features.compile_options == ("ENABLE_FTS5", "THREADSAFE=2")

    def test_probe_initialize_failure(self) -> None:
        """A failing sqlite3_initialize is a load error."""
        with pytest.raises(LibraryLoadError, match="out of memory"):
            Features.probe(StubEngine(init_code=7))  # type: ignore[arg-type]
