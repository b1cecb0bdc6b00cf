"""Strict type coercion from raw JSON nodes and overlay strings.

JSON documents are decoded with number tokens kept verbatim (``JsonNumber``)
so integer targets can tell ``1`` from ``1.0`` and check ranges against the
exact text the client sent. Coercion never raises; it returns a
``ValidationResult`` whose ``exception`` is a ``CoercionError`` on failure.
"""

from __future__ import annotations

import json
import re
import struct
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable

from .exceptions import (
    CoercionError,
    FormatError,
    NumericOverflowError,
    TypeMismatchError,
)
from .fields import FieldType
from .result import ValidationResult

FLOAT32_MAX = 3.4028234663852886e38

# Tokens accepted for booleans in overlay strings.
BOOL_TOKENS: dict[str, bool] = {
    "1": True, "t": True, "T": True, "TRUE": True, "true": True, "True": True,
    "0": False, "f": False, "F": False, "FALSE": False, "false": False, "False": False,
}

_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf|infinity|nan)",
    re.IGNORECASE | re.ASCII,
)
_INFINITY_RE = re.compile(r"[+-]?inf(?:inity)?", re.IGNORECASE | re.ASCII)

_CLOCK = r"(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})T(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})"
_ZONE = r"(?P<zone>Z|[+-]\d{2}:\d{2})"

# Ordered; the first layout that parses wins.
TIME_LAYOUTS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("rfc3339-fractional", re.compile(_CLOCK + r"\.(?P<fraction>\d{1,9})" + _ZONE, re.ASCII)),
    ("rfc3339", re.compile(_CLOCK + _ZONE, re.ASCII)),
    ("local", re.compile(_CLOCK, re.ASCII)),
    ("date", re.compile(r"(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})", re.ASCII)),
)


class JsonNumber:
    """A JSON number token kept as its raw text."""

    __slots__ = ("raw",)

    def __init__(self, raw: str):
        self.raw = raw

    @property
    def is_integral(self) -> bool:
        """True when the token has no fraction or exponent part."""
        return not any(c in self.raw for c in ".eE")

    def to_python(self) -> int | float:
        if self.is_integral:
            return int(self.raw)
        return float(self.raw)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, JsonNumber):
            return self.raw == other.raw
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.raw)

    def __repr__(self) -> str:
        return f"JsonNumber({self.raw!r})"


class JsonKind(Enum):
    """Raw structural kind of a decoded JSON node."""

    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    OBJECT = "object"
    ARRAY = "array"

    @classmethod
    def of(cls, node: Any) -> JsonKind:
        if node is None:
            return cls.NULL
        if isinstance(node, bool):
            return cls.BOOLEAN
        if isinstance(node, (JsonNumber, int, float)):
            return cls.NUMBER
        if isinstance(node, str):
            return cls.STRING
        if isinstance(node, dict):
            return cls.OBJECT
        if isinstance(node, (list, tuple)):
            return cls.ARRAY
        raise TypeError(f"Not a JSON node: {type(node).__name__}")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON literal {name}")


def decode_document(text: str | bytes) -> Any:
    """Decode JSON text keeping number tokens as ``JsonNumber``.

    Raises:
        ValueError: If the text is not valid JSON or nests too deeply to
            decode
    """
    try:
        return json.loads(
            text,
            parse_int=JsonNumber,
            parse_float=JsonNumber,
            parse_constant=_reject_constant,
        )
    except RecursionError:
        raise ValueError("nesting too deep") from None


def to_python(node: Any) -> Any:
    """Convert a decoded node to plain Python values.

    Containers are walked with an explicit stack, so any document that
    ``decode_document`` accepts can be converted.
    """
    if isinstance(node, JsonNumber):
        return node.to_python()
    if not isinstance(node, (dict, list)):
        return node
    root: Any = {} if isinstance(node, dict) else []
    pending = [(node, root)]
    while pending:
        source, target = pending.pop()
        items = source.items() if isinstance(source, dict) else enumerate(source)
        for key, value in items:
            if isinstance(value, JsonNumber):
                converted = value.to_python()
            elif isinstance(value, dict):
                converted = {}
                pending.append((value, converted))
            elif isinstance(value, list):
                converted = []
                pending.append((value, converted))
            else:
                converted = value
            if isinstance(target, dict):
                target[key] = converted
            else:
                target.append(converted)
    return root


def parse_timestamp(text: str) -> datetime:
    """Parse a timestamp with the first matching layout of ``TIME_LAYOUTS``.

    Layouts without a zone are read as UTC.

    Raises:
        FormatError: If no layout matches
    """
    for _name, pattern in TIME_LAYOUTS:
        match = pattern.fullmatch(text)
        if match is None:
            continue
        parts = match.groupdict()
        try:
            return datetime(
                int(parts["year"]),
                int(parts["month"]),
                int(parts["day"]),
                int(parts.get("hour") or 0),
                int(parts.get("minute") or 0),
                int(parts.get("second") or 0),
                # Sub-microsecond digits are dropped
                int((parts.get("fraction") or "0")[:6].ljust(6, "0")),
                tzinfo=_zone(parts.get("zone")),
            )
        except ValueError:
            continue
    raise FormatError(f"incorrect date format for string '{text}'", target="datetime", raw=text)


def _zone(zone: str | None) -> timezone:
    if zone is None or zone == "Z":
        return timezone.utc
    sign = -1 if zone[0] == "-" else 1
    hours, minutes = zone[1:].split(":")
    return timezone(sign * timedelta(hours=int(hours), minutes=int(minutes)))


class Coercer:
    """Type coercion with strict format and range rules.

    One coercer is registered per ``FieldType`` for each source: decoded
    JSON nodes and raw overlay strings. Always returns ValidationResult,
    never raises exceptions.

    Example:
        ```python
        coercer = Coercer()
        coercer.coerce(decode_document("127"), FieldType.INT8).value   # 127
        coercer.coerce(decode_document("128"), FieldType.INT8).valid   # False
        coercer.coerce_string("true", FieldType.BOOL).value             # True
        ```
    """

    def __init__(self) -> None:
        self._json_coercers: dict[FieldType, Callable[[Any, FieldType], Any]] = {
            FieldType.STRING: self._string_from_json,
            FieldType.BOOL: self._bool_from_json,
            FieldType.FLOAT32: self._float_from_json,
            FieldType.FLOAT64: self._float_from_json,
            FieldType.DATETIME: self._datetime_from_json,
        }
        self._string_coercers: dict[FieldType, Callable[[str, FieldType], Any]] = {
            FieldType.STRING: lambda raw, _: raw,
            FieldType.BOOL: self._bool_from_string,
            FieldType.FLOAT32: self._float_from_string,
            FieldType.FLOAT64: self._float_from_string,
            FieldType.DATETIME: lambda raw, _: parse_timestamp(raw),
        }
        for field_type in FieldType:
            if field_type.is_integer:
                self._json_coercers[field_type] = self._int_from_json
                self._string_coercers[field_type] = self._int_from_string

    def coerce(self, node: Any, field_type: FieldType) -> ValidationResult:
        """Coerce a decoded JSON node to the target type.

        Args:
            node: Decoded JSON node (see ``decode_document``)
            field_type: Target type

        Returns:
            ValidationResult with coerced value or error
        """
        return self._run(self._json_coercers[field_type], node, field_type)

    def coerce_string(self, raw: str, field_type: FieldType) -> ValidationResult:
        """Coerce a raw overlay string to the target type.

        Args:
            raw: Raw string, e.g. a URL parameter value
            field_type: Target type

        Returns:
            ValidationResult with coerced value or error
        """
        return self._run(self._string_coercers[field_type], raw, field_type)

    @staticmethod
    def _run(coercer: Callable[[Any, FieldType], Any], raw: Any, field_type: FieldType) -> ValidationResult:
        try:
            return ValidationResult.success(coercer(raw, field_type))
        except CoercionError as e:
            return ValidationResult.from_exception(raw, e)

    def _string_from_json(self, node: Any, field_type: FieldType) -> str:
        if isinstance(node, str):
            return node
        raise _mismatch(field_type, node)

    def _bool_from_json(self, node: Any, field_type: FieldType) -> bool:
        if isinstance(node, bool):
            return node
        raise _mismatch(field_type, node)

    def _int_from_json(self, node: Any, field_type: FieldType) -> int:
        if isinstance(node, bool) or not isinstance(node, (JsonNumber, int, float)):
            raise _mismatch(field_type, node)
        raw = node.raw if isinstance(node, JsonNumber) else repr(node)
        if any(c in raw for c in ".eE"):
            raise FormatError(
                f"cannot assign float value {raw} to {field_type.value} type",
                target=field_type.value,
                raw=raw,
            )
        return self._fit_int(raw, field_type)

    def _int_from_string(self, raw: str, field_type: FieldType) -> int:
        if field_type.is_unsigned and raw.startswith("-"):
            raise NumericOverflowError(field_type.value, raw)
        if not _INT_RE.fullmatch(raw):
            raise FormatError(f"could not parse '{raw}' as {field_type.value}", target=field_type.value, raw=raw)
        return self._fit_int(raw, field_type)

    @staticmethod
    def _fit_int(raw: str, field_type: FieldType) -> int:
        if field_type.is_unsigned and raw.startswith("-"):
            raise NumericOverflowError(field_type.value, raw)
        try:
            value = int(raw)
        except ValueError as e:
            # Digit strings beyond the interpreter's conversion limit
            raise NumericOverflowError(field_type.value, raw) from e
        low, high = field_type.bounds  # type: ignore[misc]
        if value < low or value > high:
            raise NumericOverflowError(field_type.value, raw)
        return value

    def _float_from_json(self, node: Any, field_type: FieldType) -> float:
        if isinstance(node, JsonNumber):
            return _fit_float(float(node.raw), field_type, node.raw)
        if isinstance(node, (int, float)) and not isinstance(node, bool):
            return _fit_float(float(node), field_type, repr(node))
        if isinstance(node, str):
            return self._float_from_string(node, field_type)
        raise _mismatch(field_type, node)

    def _float_from_string(self, raw: str, field_type: FieldType) -> float:
        if not _FLOAT_RE.fullmatch(raw):
            raise FormatError(f"could not parse string '{raw}' as float", target=field_type.value, raw=raw)
        return _fit_float(float(raw), field_type, raw)

    def _bool_from_string(self, raw: str, field_type: FieldType) -> bool:
        try:
            return BOOL_TOKENS[raw]
        except KeyError:
            raise FormatError(f"could not parse '{raw}' as bool", target=field_type.value, raw=raw) from None

    def _datetime_from_json(self, node: Any, field_type: FieldType) -> datetime:
        if isinstance(node, str):
            return parse_timestamp(node)
        raise _mismatch(field_type, node)


def _fit_float(value: float, field_type: FieldType, raw: str) -> float:
    """Apply the float width rules.

    FLOAT64 has no range check: magnitudes beyond the double range are
    already +/-inf. FLOAT32 rejects every magnitude outside its range,
    including tokens that only overflow to +/-inf when parsed, and rounds the
    rest to single precision. Explicit infinity literals pass.
    """
    if field_type is FieldType.FLOAT64:
        return value
    if abs(value) > FLOAT32_MAX and not _INFINITY_RE.fullmatch(raw):
        raise NumericOverflowError(field_type.value, raw, kind="float")
    return struct.unpack("f", struct.pack("f", value))[0]


def _mismatch(field_type: FieldType, node: Any) -> TypeMismatchError:
    return TypeMismatchError(field_type.value, JsonKind.of(node).value)
