"""Constraint implementations with a small, consistent API.

Every constraint has a ``name`` and a ``check`` method. The name identifies
the constraint family on a field (a field may carry at most one constraint
per name) and the check runs against a value that has already been coerced
to the field's type.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import parseaddr
from enum import Enum
from numbers import Real
from typing import Any, TYPE_CHECKING
from urllib.parse import urlsplit

from .exceptions import SchemaDefinitionError
from .fields import FieldType
from .result import ValidationResult

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

STRING_TYPES = frozenset({FieldType.STRING})
BOOL_TYPES = frozenset({FieldType.BOOL})
NUMERIC_TYPES = frozenset(t for t in FieldType if t.is_numeric)
ORDERED_TYPES = NUMERIC_TYPES | {FieldType.DATETIME}
ALL_TYPES = frozenset(FieldType)


class Constraint(ABC):
    """Base class for all constraints."""

    #: Constraint name, unique per field
    name: str = ""
    #: Field types the constraint can be attached to
    applies_to: frozenset[FieldType] = ALL_TYPES

    def accepts(self, field_type: FieldType) -> bool:
        """Return True if the constraint can validate values of this type."""
        return field_type in self.applies_to

    @abstractmethod
    def check(self, value: Any) -> ValidationResult:
        """Validate a value against this constraint.

        Args:
            value: Coerced value to validate

        Returns:
            ValidationResult with validation outcome
        """

    def _fail(self, value: Any, message: str) -> ValidationResult:
        return ValidationResult.failure(value, [message])

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


# --- Length ---


class MinLength(Constraint):
    """String length must be at least ``min``."""

    name = "min_length"
    applies_to = STRING_TYPES

    def __init__(self, min: int):
        if min < 0:
            raise SchemaDefinitionError(f"min length cannot be negative: {min}")
        self.min = min

    def check(self, value: str) -> ValidationResult:
        if len(value) < self.min:
            return self._fail(value, f"length must be at least {self.min}")
        return ValidationResult.success(value)


class MaxLength(Constraint):
    """String length must be at most ``max``."""

    name = "max_length"
    applies_to = STRING_TYPES

    def __init__(self, max: int):
        if max < 0:
            raise SchemaDefinitionError(f"max length cannot be negative: {max}")
        self.max = max

    def check(self, value: str) -> ValidationResult:
        if len(value) > self.max:
            return self._fail(value, f"length must be at most {self.max}")
        return ValidationResult.success(value)


class ExactLength(Constraint):
    """String length must equal ``length``."""

    name = "exact_length"
    applies_to = STRING_TYPES

    def __init__(self, length: int):
        if length < 0:
            raise SchemaDefinitionError(f"length cannot be negative: {length}")
        self.length = length

    def check(self, value: str) -> ValidationResult:
        if len(value) != self.length:
            return self._fail(value, f"length must be exactly {self.length} characters")
        return ValidationResult.success(value)


class LengthBetween(Constraint):
    """String length must be within ``[min, max]``."""

    name = "length_between"
    applies_to = STRING_TYPES

    def __init__(self, min: int, max: int):
        if min < 0 or max < 0:
            raise SchemaDefinitionError(f"length bounds cannot be negative: {min}, {max}")
        if min > max:
            raise SchemaDefinitionError(f"min length ({min}) cannot be greater than max ({max})")
        self.min = min
        self.max = max

    def check(self, value: str) -> ValidationResult:
        if not self.min <= len(value) <= self.max:
            return self._fail(value, f"length must be between {self.min} and {self.max} characters")
        return ValidationResult.success(value)


# --- Character sets ---


class CharSet(Enum):
    """Character classes used by the charset constraints."""

    LOWER = ("abcdefghijklmnopqrstuvwxyz", "lower case characters")
    UPPER = ("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "upper case characters")
    DIGIT = ("0123456789", "numbers")
    SPECIAL = ("!@#$%^&*()_+-=[]{}|;':\",./<>?", "special characters")

    @property
    def chars(self) -> str:
        return self.value[0]

    @property
    def label(self) -> str:
        return self.value[1]


class _CharSetConstraint(Constraint):
    applies_to = STRING_TYPES

    def __init__(self, *charsets: CharSet):
        if not charsets:
            raise SchemaDefinitionError(f"{self.name} requires at least one character set")
        self.charsets = charsets
        self.chars = frozenset("".join(c.chars for c in charsets))
        self.labels = ", ".join(c.label for c in charsets)


class CharSetOnly(_CharSetConstraint):
    """Every character must belong to one of the sets."""

    name = "only_contains"

    def check(self, value: str) -> ValidationResult:
        if any(ch not in self.chars for ch in value):
            return self._fail(value, f"can only contain characters from: {self.labels}")
        return ValidationResult.success(value)


class CharSetAny(_CharSetConstraint):
    """At least one character must belong to one of the sets."""

    name = "contains_any"

    def check(self, value: str) -> ValidationResult:
        if not any(ch in self.chars for ch in value):
            return self._fail(value, f"must contain at least one character from: {self.labels}")
        return ValidationResult.success(value)


class CharSetAll(_CharSetConstraint):
    """Each set must contribute at least one character."""

    name = "contains_all"

    def check(self, value: str) -> ValidationResult:
        for charset in self.charsets:
            if not any(ch in charset.chars for ch in value):
                return self._fail(value, f"must contain characters from: {charset.label}")
        return ValidationResult.success(value)


class CharSetNone(_CharSetConstraint):
    """No character may belong to any of the sets."""

    name = "not_contains"

    def check(self, value: str) -> ValidationResult:
        for charset in self.charsets:
            if any(ch in charset.chars for ch in value):
                return self._fail(value, f"must not contain any characters from: {charset.label}")
        return ValidationResult.success(value)


# --- Formats ---


class Match(Constraint):
    """String must match a glob pattern.

    ``*`` matches any sequence of characters and ``?`` matches exactly one
    character; everything else matches literally.

    Example:
        ```python
        Match("foo*").check("foobar").valid  # True
        Match("a?c").check("abbc").valid     # False
        ```
    """

    name = "match"
    applies_to = STRING_TYPES

    def __init__(self, pattern: str):
        if "*" not in pattern and "?" not in pattern:
            raise SchemaDefinitionError(
                f"invalid pattern `{pattern}`: `?` stands for one character, "
                "`*` stands for any number of characters"
            )
        self.pattern = pattern
        translated = "".join(
            ".*" if ch == "*" else "." if ch == "?" else re.escape(ch) for ch in pattern
        )
        self.regex = re.compile(translated, re.DOTALL)

    def check(self, value: str) -> ValidationResult:
        if not self.regex.fullmatch(value):
            return self._fail(value, f"does not match pattern {self.pattern}")
        return ValidationResult.success(value)


class Email(Constraint):
    """String must be an email address, optionally with a display name."""

    name = "email"
    applies_to = STRING_TYPES

    def check(self, value: str) -> ValidationResult:
        if not _is_email(value):
            return self._fail(value, f"not valid email address: {value}")
        return ValidationResult.success(value)


def _is_email(value: str) -> bool:
    display, address = parseaddr(value)
    if not address or any(ch.isspace() for ch in address):
        return False
    if "<" not in value and address != value.strip():
        return False
    local, sep, domain = address.rpartition("@")
    return bool(sep and local and domain and "@" not in local)


class URL(Constraint):
    """String must be an absolute URL with a scheme and a host."""

    name = "url"
    applies_to = STRING_TYPES

    def check(self, value: str) -> ValidationResult:
        try:
            parts = urlsplit(value)
            valid = bool(parts.scheme and parts.netloc and parts.hostname)
        except ValueError:
            valid = False
        if not valid:
            return self._fail(value, f"not valid url: {value}")
        return ValidationResult.success(value)


class Decimal(Constraint):
    """Decimal string must fit ``precision`` total and ``scale`` fraction digits.

    Empty strings pass (presence is checked elsewhere). An optional sign and
    a leading bare decimal point (``.5``) are accepted; exponent notation is
    not.
    """

    applies_to = STRING_TYPES

    def __init__(self, precision: int, scale: int):
        if precision <= 0 or scale < 0 or scale > precision:
            raise SchemaDefinitionError(f"invalid decimal precision/scale: {precision},{scale}")
        self.precision = precision
        self.scale = scale
        self.name = f"decimal({precision},{scale})"

    def check(self, value: str) -> ValidationResult:
        text = value.strip()
        if not text:
            return ValidationResult.success(value)
        if text[0] in "+-":
            text = text[1:]
        if "e" in text or "E" in text:
            return self._fail(value, "invalid decimal precision/scale: unsupported format")
        parts = text.split(".")
        if len(parts) > 2:
            return self._fail(value, "invalid decimal precision/scale: invalid format")
        int_part = parts[0] or "0"
        frac_part = parts[1] if len(parts) == 2 else ""
        if not _all_digits(int_part) or not _all_digits(frac_part):
            return self._fail(value, "invalid decimal precision/scale: contains non-digit characters")
        if len(int_part) + len(frac_part) > self.precision or len(frac_part) > self.scale:
            return self._fail(value, f"invalid decimal precision/scale {self.precision},{self.scale}")
        return ValidationResult.success(value)


def _all_digits(text: str) -> bool:
    return all("0" <= ch <= "9" for ch in text)


# --- Membership and comparisons ---


class OneOf(Constraint):
    """Value must be one of the allowed values."""

    name = "one_of"

    def __init__(self, *allowed: Any):
        if not allowed:
            raise SchemaDefinitionError("one_of requires at least one allowed value")
        self.allowed = tuple(_normalize_bound(v) for v in allowed)

    def check(self, value: Any) -> ValidationResult:
        if not any(_same_value(a, value) for a in self.allowed):
            return self._fail(value, f"value must be one of: {', '.join(str(a) for a in self.allowed)}")
        return ValidationResult.success(value)


def _same_value(a: Any, b: Any) -> bool:
    # bool is an int subclass; keep True distinct from 1
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    return a == b


def _normalize_bound(bound: Any) -> Any:
    # Coerced timestamps are always aware; naive bounds are read as UTC
    if isinstance(bound, datetime) and bound.tzinfo is None:
        return bound.replace(tzinfo=timezone.utc)
    return bound


class _Comparison(Constraint):
    applies_to = ORDERED_TYPES

    def __init__(self, *bounds: Any):
        normalized = [_normalize_bound(b) for b in bounds]
        for bound in normalized:
            if isinstance(bound, bool) or not isinstance(bound, (Real, datetime)):
                raise SchemaDefinitionError(
                    f"{self.name} bound must be a number or datetime, got {type(bound).__name__}"
                )
        if len({isinstance(b, datetime) for b in normalized}) > 1:
            raise SchemaDefinitionError(f"{self.name} bounds must all be numbers or all datetimes")
        self.bounds = tuple(normalized)

    def accepts(self, field_type: FieldType) -> bool:
        if isinstance(self.bounds[0], datetime):
            return field_type is FieldType.DATETIME
        return field_type in NUMERIC_TYPES


class Gt(_Comparison):
    """Value must be greater than ``min``."""

    name = "gt"

    def __init__(self, min: Any):
        super().__init__(min)
        self.min = self.bounds[0]

    def check(self, value: Any) -> ValidationResult:
        if not value > self.min:
            return self._fail(value, f"must be greater than {self.min}")
        return ValidationResult.success(value)


class Gte(_Comparison):
    """Value must be greater than or equal to ``min``."""

    name = "gte"

    def __init__(self, min: Any):
        super().__init__(min)
        self.min = self.bounds[0]

    def check(self, value: Any) -> ValidationResult:
        if value < self.min:
            return self._fail(value, f"must be greater than or equal to {self.min}")
        return ValidationResult.success(value)


class Lt(_Comparison):
    """Value must be less than ``max``."""

    name = "lt"

    def __init__(self, max: Any):
        super().__init__(max)
        self.max = self.bounds[0]

    def check(self, value: Any) -> ValidationResult:
        if not value < self.max:
            return self._fail(value, f"must be less than {self.max}")
        return ValidationResult.success(value)


class Lte(_Comparison):
    """Value must be less than or equal to ``max``."""

    name = "lte"

    def __init__(self, max: Any):
        super().__init__(max)
        self.max = self.bounds[0]

    def check(self, value: Any) -> ValidationResult:
        if value > self.max:
            return self._fail(value, f"must be less than or equal to {self.max}")
        return ValidationResult.success(value)


class Between(_Comparison):
    """Value must be within ``[min, max]``."""

    name = "between"

    def __init__(self, min: Any, max: Any):
        super().__init__(min, max)
        self.min, self.max = self.bounds
        if self.min > self.max:
            raise SchemaDefinitionError(f"min ({min}) cannot be greater than max ({max})")

    def check(self, value: Any) -> ValidationResult:
        if value < self.min or value > self.max:
            return self._fail(value, f"must be between {self.min} and {self.max}")
        return ValidationResult.success(value)


# --- Booleans ---


class BeTrue(Constraint):
    name = "be_true"
    applies_to = BOOL_TYPES

    def check(self, value: bool) -> ValidationResult:
        return ValidationResult.success(value) if value else self._fail(value, "must be true")


class BeFalse(Constraint):
    name = "be_false"
    applies_to = BOOL_TYPES

    def check(self, value: bool) -> ValidationResult:
        return self._fail(value, "must be false") if value else ValidationResult.success(value)


class Custom(Constraint):
    """Custom constraint using a callable.

    Code generators use this to attach validators that are not part of the
    library. The predicate returns True for valid values; exceptions raised
    by the predicate are reported as validation failures.
    """

    def __init__(
        self,
        name: str,
        predicate: Callable[[Any], bool],
        error_message: str = "custom validation failed",
        types: Iterable[FieldType] | None = None,
    ):
        if not name:
            raise SchemaDefinitionError("custom constraint requires a name")
        self.name = name
        self.predicate = predicate
        self.error_message = error_message
        self.applies_to = frozenset(types) if types is not None else ALL_TYPES

    def check(self, value: Any) -> ValidationResult:
        try:
            ok = self.predicate(value)
        except Exception as e:
            return self._fail(value, f"custom validation error: {e!s}")
        if ok:
            return ValidationResult.success(value)
        return self._fail(value, self.error_message)
