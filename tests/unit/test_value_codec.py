"""Unit tests for the value codec."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Annotated, Any, Optional

import pytest
from pydantic import BaseModel

from typed_sqlite.domain.errors import (
    TypeMismatchError,
    UnexpectedNullError,
    UnsupportedValueError,
    ValueOverflowError,
)
from typed_sqlite.domain.services import (
    AsJson,
    Int8,
    Int32,
    Json,
    UInt8,
    decode,
    encode,
)
from typed_sqlite.domain.value_objects import (
    NULL,
    Blob,
    Integer,
    Null,
    Real,
    Reservation,
    RowId,
    Text,
    ValueKind,
)


class Settings(BaseModel):
    theme: str
    retries: int


@pytest.mark.unit
class TestBoundValue:
    """Tests for Bound value variants."""

    def test_kinds(self) -> None:
        """Each variant carries its storage class."""
        assert Integer(1).kind is ValueKind.INTEGER
        assert Real(1.0).kind is ValueKind.REAL
        assert Text("a").kind is ValueKind.TEXT
        assert Blob(b"a").kind is ValueKind.BLOB
        assert NULL.kind is ValueKind.NULL

    def test_integer_range(self) -> None:
        """Integer holds exactly a signed 64-bit value."""
        Integer(2**63 - 1)
        with pytest.raises(OverflowError):
            Integer(2**63)

    def test_variant_type_checks(self) -> None:
        """Variants reject payloads of the wrong type."""
        with pytest.raises(TypeError):
            Real(1)  # type: ignore[arg-type]
        with pytest.raises(TypeError):
            Blob("text")  # type: ignore[arg-type]

    def test_reservation_length(self) -> None:
        """Reservations hold a non-negative 32-bit byte count."""
        assert len(Reservation(16)) == 16
        assert Reservation(0).kind is ValueKind.BLOB
        with pytest.raises(OverflowError):
            Reservation(-1)
        with pytest.raises(OverflowError):
            Reservation(2**31)
        with pytest.raises(TypeError):
            Reservation(True)


@pytest.mark.unit
class TestEncode:
    """Tests for application value -> Bound value."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, NULL),
            (True, Integer(1)),
            (False, Integer(0)),
            (42, Integer(42)),
            (-(2**63), Integer(-(2**63))),
            (0.69, Real(0.69)),
            ("boo", Text("boo")),
            (b"\x00\x01", Blob(b"\x00\x01")),
            (bytearray(b"ab"), Blob(b"ab")),
            (memoryview(b"cd"), Blob(b"cd")),
            (RowId(9), Integer(9)),
            (Text("raw"), Text("raw")),
        ],
    )
    def test_supported(self, value: Any, expected: Any) -> None:
        """Supported values map to one variant."""
        assert encode(value) == expected

    def test_int_overflow(self) -> None:
        """Ints beyond signed 64 bits are unsupported."""
        with pytest.raises(UnsupportedValueError) as exc_info:
            encode(2**63)
        assert exc_info.value.type_description == "int"

    def test_unsupported_type(self) -> None:
        """Types without a mapping name themselves in the error."""
        with pytest.raises(UnsupportedValueError) as exc_info:
            encode(object())
        assert exc_info.value.type_description == "object"

    def test_json_wrapper(self) -> None:
        """Json values are serialized to compact text."""
        assert encode(Json({"a": [1, 2]})) == Text('{"a":[1,2]}')

    def test_json_model(self) -> None:
        """Pydantic models serialize through Json."""
        assert encode(Json(Settings(theme="dark", retries=3))) == Text(
            '{"theme":"dark","retries":3}'
        )

    def test_datetime_and_uuid(self) -> None:
        """Dates become ISO text, UUIDs become 16-byte blobs."""
        moment = datetime(2024, 1, 2, 3, 4, 5)
        assert encode(moment) == Text("2024-01-02T03:04:05")
        assert encode(date(2024, 1, 2)) == Text("2024-01-02")
        ident = uuid.UUID("12345678-1234-5678-1234-567812345678")
        assert encode(ident) == Blob(ident.bytes)

    def test_reservation_passes_through(self) -> None:
        """Reservations reach the statement unchanged."""
        reservation = Reservation(8)
        assert encode(reservation) is reservation


@pytest.mark.unit
class TestDecode:
    """Tests for Bound value -> target type."""

    def test_exact_matches(self) -> None:
        """Values decode into their natural Python types."""
        assert decode(Integer(5), int, "c") == 5
        assert decode(Real(0.69), float, "c") == 0.69
        assert decode(Text("boo"), str, "c") == "boo"
        assert decode(Blob(b"\x01"), bytes, "c") == b"\x01"

    def test_null_into_required(self) -> None:
        """NULL into a non-optional target fails."""
        with pytest.raises(UnexpectedNullError) as exc_info:
            decode(NULL, int, "score")
        assert exc_info.value.column == "score"

    def test_null_into_optional(self) -> None:
        """NULL into an Optional target is None."""
        assert decode(NULL, Optional[int], "c") is None
        assert decode(NULL, int | None, "c") is None
        assert decode(NULL, Any, "c") is None

    def test_optional_with_value(self) -> None:
        """Optional targets still decode present values."""
        assert decode(Integer(3), Optional[int], "c") == 3

    def test_text_into_int(self) -> None:
        """Text is never coerced into an integer."""
        with pytest.raises(TypeMismatchError) as exc_info:
            decode(Text("12"), int, "id")
        assert exc_info.value.expected == "int"
        assert exc_info.value.actual == "TEXT"

    def test_integral_real_into_int(self) -> None:
        """An integral Real converts losslessly."""
        assert decode(Real(7.0), int, "c") == 7

    def test_fractional_real_into_int(self) -> None:
        """A fractional Real would lose precision."""
        with pytest.raises(ValueOverflowError):
            decode(Real(7.5), int, "c")

    def test_integer_into_float(self) -> None:
        """Integers widen to float only while exact."""
        assert decode(Integer(2**53), float, "c") == float(2**53)
        with pytest.raises(ValueOverflowError):
            decode(Integer(2**53 + 1), float, "c")

    def test_narrow_int_targets(self) -> None:
        """Range-checked targets accept in-range values only."""
        assert decode(Integer(-128), Int8, "c") == -128
        assert decode(Integer(2**31 - 1), Int32, "c") == 2**31 - 1
        with pytest.raises(ValueOverflowError):
            decode(Integer(128), Int8, "c")
        with pytest.raises(ValueOverflowError):
            decode(Integer(-1), UInt8, "c")

    def test_optional_narrow_int(self) -> None:
        """Optional wraps range-checked targets."""
        assert decode(NULL, Optional[Int8], "c") is None
        with pytest.raises(ValueOverflowError):
            decode(Integer(1000), Optional[Int8], "c")

    def test_bool(self) -> None:
        """Nonzero integers are True."""
        assert decode(Integer(2), bool, "c") is True
        assert decode(Integer(0), bool, "c") is False
        with pytest.raises(TypeMismatchError):
            decode(Text("true"), bool, "c")

    def test_row_id(self) -> None:
        """RowId targets reject zero."""
        assert decode(Integer(3), RowId, "id") == RowId(3)
        with pytest.raises(ValueOverflowError):
            decode(Integer(0), RowId, "id")

    def test_text_into_bytes(self) -> None:
        """Text reads as UTF-8 bytes."""
        assert decode(Text("hé"), bytes, "c") == "hé".encode()

    def test_blob_into_str(self) -> None:
        """Blobs are not silently decoded as text."""
        with pytest.raises(TypeMismatchError):
            decode(Blob(b"abc"), str, "c")

    def test_json(self) -> None:
        """Json targets parse the document."""
        assert decode(Text('{"a":1}'), Json, "c") == Json({"a": 1})
        with pytest.raises(TypeMismatchError):
            decode(Text("{not json"), Json, "c")

    def test_json_model(self) -> None:
        """AsJson validates into a pydantic model."""
        target = Annotated[Settings, AsJson()]
        result = decode(Text('{"theme":"dark","retries":3}'), target, "c")
        assert result == Settings(theme="dark", retries=3)
        with pytest.raises(TypeMismatchError):
            decode(Text('{"theme":"dark"}'), target, "c")

    def test_datetime(self) -> None:
        """ISO text decodes into datetimes and dates."""
        assert decode(Text("2024-01-02T03:04:05"), datetime, "c") == datetime(2024, 1, 2, 3, 4, 5)
        assert decode(Text("2024-01-02"), date, "c") == date(2024, 1, 2)
        with pytest.raises(TypeMismatchError):
            decode(Text("yesterday"), datetime, "c")

    def test_uuid(self) -> None:
        """UUIDs decode from 16-byte blobs or text."""
        ident = uuid.uuid4()
        assert decode(Blob(ident.bytes), uuid.UUID, "c") == ident
        assert decode(Text(str(ident)), uuid.UUID, "c") == ident
        with pytest.raises(TypeMismatchError):
            decode(Blob(b"short"), uuid.UUID, "c")

    def test_raw_variants(self) -> None:
        """Bound value targets return the variant itself."""
        assert decode(Integer(1), Integer, "c") == Integer(1)
        assert decode(NULL, Null, "c") == NULL
        with pytest.raises(TypeMismatchError):
            decode(Text("x"), Integer, "c")

    def test_any(self) -> None:
        """Any returns the plain payload."""
        assert decode(Blob(b"x"), Any, "c") == b"x"
        assert decode(Real(1.5), object, "c") == 1.5

    def test_unsupported_target(self) -> None:
        """Targets without a decoding rule are a mismatch."""
        with pytest.raises(TypeMismatchError):
            decode(Integer(1), list, "c")
