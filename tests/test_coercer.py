"""Tests for strict coercion of JSON nodes and overlay strings."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from dataknobs_view import (
    Coercer,
    FieldType,
    FormatError,
    JsonKind,
    JsonNumber,
    NumericOverflowError,
    TypeMismatchError,
    decode_document,
    parse_timestamp,
    to_python,
)


@pytest.fixture
def coercer():
    return Coercer()


def coerce_json(coercer, text, field_type):
    return coercer.coerce(decode_document(text), field_type)


class TestDecodeDocument:
    """Test JSON decoding with raw number tokens."""

    def test_numbers_keep_raw_text(self):
        doc = decode_document('{"a": 1, "b": 1.0, "c": 1e3}')
        assert doc["a"] == JsonNumber("1")
        assert doc["b"].raw == "1.0"
        assert doc["c"].raw == "1e3"
        assert doc["a"].is_integral
        assert not doc["b"].is_integral

    def test_invalid_json_raises_value_error(self):
        with pytest.raises(ValueError):
            decode_document('{"a": ')

    def test_non_standard_constants_rejected(self):
        with pytest.raises(ValueError):
            decode_document('{"a": NaN}')

    def test_deep_nesting_is_value_error(self):
        with pytest.raises(ValueError, match="nesting too deep"):
            decode_document("[" * 100000 + "]" * 100000)

    def test_to_python(self):
        doc = decode_document('{"a": 2.5, "b": [3, {"c": null}]}')
        assert to_python(doc) == {"a": 2.5, "b": [3, {"c": None}]}

    def test_to_python_deep_nesting(self):
        depth = 5000
        node = [JsonNumber("1")]
        for _ in range(depth):
            node = [node]
        converted = to_python(node)
        for _ in range(depth):
            converted = converted[0]
        assert converted == [1]

    def test_json_kind(self):
        doc = decode_document('{"n": null, "b": true, "i": 2, "s": "x", "o": {}, "a": []}')
        assert JsonKind.of(doc["n"]) is JsonKind.NULL
        assert JsonKind.of(doc["b"]) is JsonKind.BOOLEAN
        assert JsonKind.of(doc["i"]) is JsonKind.NUMBER
        assert JsonKind.of(doc["s"]) is JsonKind.STRING
        assert JsonKind.of(doc["o"]) is JsonKind.OBJECT
        assert JsonKind.of(doc["a"]) is JsonKind.ARRAY


class TestIntegerCoercion:
    """Test integer ranges and formats."""

    @pytest.mark.parametrize("field_type", [FieldType.INT8, FieldType.INT16, FieldType.INT32, FieldType.INT64])
    def test_signed_boundaries(self, coercer, field_type):
        bits = field_type.bits
        high = 2 ** (bits - 1) - 1
        low = -(2 ** (bits - 1))
        assert coerce_json(coercer, str(high), field_type).value == high
        assert coerce_json(coercer, str(low), field_type).value == low
        assert not coerce_json(coercer, str(high + 1), field_type).valid
        assert not coerce_json(coercer, str(low - 1), field_type).valid

    @pytest.mark.parametrize(
        "field_type", [FieldType.UINT8, FieldType.UINT16, FieldType.UINT32, FieldType.UINT64]
    )
    def test_unsigned_boundaries(self, coercer, field_type):
        high = 2 ** field_type.bits - 1
        assert coerce_json(coercer, str(high), field_type).value == high
        assert coerce_json(coercer, "0", field_type).value == 0
        assert not coerce_json(coercer, str(high + 1), field_type).valid
        assert not coerce_json(coercer, "-1", field_type).valid

    def test_overflow_error(self, coercer):
        result = coerce_json(coercer, "128", FieldType.INT8)
        assert not result.valid
        assert isinstance(result.exception, NumericOverflowError)
        assert result.errors == ["for type int8: integer overflow"]

    def test_float_token_rejected(self, coercer):
        result = coerce_json(coercer, "30.0", FieldType.INT)
        assert isinstance(result.exception, FormatError)
        assert result.errors == ["cannot assign float value 30.0 to int type"]

    def test_exponent_token_rejected(self, coercer):
        result = coerce_json(coercer, "1e3", FieldType.INT64)
        assert isinstance(result.exception, FormatError)

    def test_string_node_is_mismatch(self, coercer):
        result = coerce_json(coercer, '"5"', FieldType.INT)
        assert isinstance(result.exception, TypeMismatchError)
        assert result.errors == ["type mismatch: expected int but got raw type string"]

    def test_null_is_mismatch(self, coercer):
        result = coerce_json(coercer, "null", FieldType.INT)
        assert result.errors == ["type mismatch: expected int but got raw type null"]

    def test_bool_is_not_integer(self, coercer):
        assert not coerce_json(coercer, "true", FieldType.INT).valid

    def test_from_string(self, coercer):
        assert coercer.coerce_string("42", FieldType.INT16).value == 42
        assert coercer.coerce_string("+5", FieldType.INT).value == 5
        assert coercer.coerce_string("-5", FieldType.INT).value == -5

    def test_from_string_format_error(self, coercer):
        result = coercer.coerce_string("abc", FieldType.INT16)
        assert isinstance(result.exception, FormatError)
        assert result.errors == ["could not parse 'abc' as int16"]

    def test_from_string_negative_unsigned(self, coercer):
        result = coercer.coerce_string("-1", FieldType.UINT)
        assert isinstance(result.exception, NumericOverflowError)
        assert result.errors == ["for type uint: integer overflow"]

    @pytest.mark.parametrize("raw", ["١٢", "１２", "1٢", "-٣"])
    def test_from_string_ascii_digits_only(self, coercer, raw):
        result = coercer.coerce_string(raw, FieldType.INT)
        assert isinstance(result.exception, FormatError)


class TestFloatCoercion:
    """Test float widths and sources."""

    def test_json_number(self, coercer):
        assert coerce_json(coercer, "1.5", FieldType.FLOAT64).value == 1.5
        assert coerce_json(coercer, "3", FieldType.FLOAT64).value == 3.0

    def test_json_string_accepted(self, coercer):
        assert coerce_json(coercer, '"2.5"', FieldType.FLOAT64).value == 2.5

    def test_float64_saturates(self, coercer):
        assert coerce_json(coercer, "1e400", FieldType.FLOAT64).value == math.inf
        assert coercer.coerce_string("-1e400", FieldType.FLOAT64).value == -math.inf

    def test_float32_overflow(self, coercer):
        result = coerce_json(coercer, "1e39", FieldType.FLOAT32)
        assert isinstance(result.exception, NumericOverflowError)
        assert result.errors == ["for type float32: float overflow"]

    def test_float32_overflow_to_infinity(self, coercer):
        assert isinstance(coerce_json(coercer, "1e400", FieldType.FLOAT32).exception, NumericOverflowError)
        assert isinstance(coercer.coerce_string("-1e400", FieldType.FLOAT32).exception, NumericOverflowError)

    def test_float32_infinity_literal(self, coercer):
        assert coercer.coerce_string("inf", FieldType.FLOAT32).value == math.inf
        assert coercer.coerce_string("-Infinity", FieldType.FLOAT32).value == -math.inf

    def test_float32_rounds(self, coercer):
        value = coerce_json(coercer, "0.1", FieldType.FLOAT32).value
        assert value != 0.1
        assert abs(value - 0.1) < 1e-7

    def test_string_format_error(self, coercer):
        result = coercer.coerce_string("abc", FieldType.FLOAT64)
        assert result.errors == ["could not parse string 'abc' as float"]

    def test_ascii_digits_only(self, coercer):
        assert isinstance(coercer.coerce_string("١.٥", FieldType.FLOAT64).exception, FormatError)
        assert isinstance(coerce_json(coercer, '"٢.5"', FieldType.FLOAT32).exception, FormatError)

    def test_bool_is_mismatch(self, coercer):
        assert isinstance(coerce_json(coercer, "false", FieldType.FLOAT32).exception, TypeMismatchError)


class TestBoolAndStringCoercion:
    """Test bool and string targets."""

    def test_json_bool(self, coercer):
        assert coerce_json(coercer, "true", FieldType.BOOL).value is True
        assert coerce_json(coercer, "false", FieldType.BOOL).value is False

    def test_json_string_is_not_bool(self, coercer):
        result = coerce_json(coercer, '"true"', FieldType.BOOL)
        assert result.errors == ["type mismatch: expected bool but got raw type string"]

    @pytest.mark.parametrize("raw", ["1", "t", "T", "TRUE", "true", "True"])
    def test_true_tokens(self, coercer, raw):
        assert coercer.coerce_string(raw, FieldType.BOOL).value is True

    @pytest.mark.parametrize("raw", ["0", "f", "F", "FALSE", "false", "False"])
    def test_false_tokens(self, coercer, raw):
        assert coercer.coerce_string(raw, FieldType.BOOL).value is False

    def test_unknown_bool_token(self, coercer):
        result = coercer.coerce_string("yes", FieldType.BOOL)
        assert result.errors == ["could not parse 'yes' as bool"]

    def test_string(self, coercer):
        assert coerce_json(coercer, '"hello"', FieldType.STRING).value == "hello"
        assert coercer.coerce_string("hello", FieldType.STRING).value == "hello"

    def test_number_is_not_string(self, coercer):
        result = coerce_json(coercer, "12", FieldType.STRING)
        assert result.errors == ["type mismatch: expected string but got raw type number"]


class TestTimestampCoercion:
    """Test the accepted timestamp layouts."""

    def test_rfc3339(self):
        assert parse_timestamp("2024-01-02T03:04:05Z") == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_fractional_with_offset(self):
        value = parse_timestamp("2024-01-02T03:04:05.123456789+02:00")
        assert value.microsecond == 123456
        assert value.utcoffset() == timedelta(hours=2)

    def test_local_layout_is_utc(self):
        value = parse_timestamp("2024-01-02T03:04:05")
        assert value == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_date_layout(self):
        assert parse_timestamp("2024-01-02") == datetime(2024, 1, 2, tzinfo=timezone.utc)

    def test_unknown_layout(self):
        with pytest.raises(FormatError) as exc_info:
            parse_timestamp("01/02/2024")
        assert str(exc_info.value) == "incorrect date format for string '01/02/2024'"

    def test_out_of_range_date(self):
        with pytest.raises(FormatError):
            parse_timestamp("2024-13-01")

    @pytest.mark.parametrize(
        "raw",
        ["٢٠٢٤-01-01", "2024-01-01T10:00:00+٠٢:00", "2024-01-01T10:00:00.٥Z"],
    )
    def test_ascii_digits_only(self, raw):
        with pytest.raises(FormatError):
            parse_timestamp(raw)

    def test_coercion_sources(self, coercer):
        assert coerce_json(coercer, '"2024-01-02"', FieldType.DATETIME).valid
        assert coercer.coerce_string("2024-01-02T03:04:05Z", FieldType.DATETIME).valid
        result = coerce_json(coercer, "20240102", FieldType.DATETIME)
        assert isinstance(result.exception, TypeMismatchError)
