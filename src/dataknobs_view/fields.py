"""Field type definitions and persistent field metadata.

This module defines the closed set of value types a view field may carry,
the multiplicity of a field (scalar, array, embedded object or array of
objects), and ``PersistentField``, the read-only description of a database
column produced by code generators and consumed by view schemas.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from .exceptions import SchemaDefinitionError

if TYPE_CHECKING:
    from .constraints import Constraint


class FieldType(Enum):
    """Enumeration of supported field value types.

    Integer types carry their bit width; ``INT`` and ``UINT`` are 64 bits
    wide. All integer types produce Python ``int`` values, both float types
    produce ``float`` values and ``DATETIME`` produces timezone-aware
    ``datetime`` values.

    Example:
        ```python
        FieldType.INT8.bounds      # (-128, 127)
        FieldType.UINT16.bounds    # (0, 65535)
        FieldType.FLOAT32.python_type  # float
        FieldType.from_name("integer") # FieldType.INT
        ```
    """

    STRING = "string"
    BOOL = "bool"
    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT = "uint"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    DATETIME = "datetime"

    @property
    def python_type(self) -> type:
        """The Python type of coerced values."""
        if self is FieldType.STRING:
            return str
        if self is FieldType.BOOL:
            return bool
        if self is FieldType.DATETIME:
            return datetime
        if self.is_float:
            return float
        return int

    @property
    def is_integer(self) -> bool:
        return self in _INTEGER_WIDTHS

    @property
    def is_unsigned(self) -> bool:
        return self.is_integer and self.value.startswith("uint")

    @property
    def is_float(self) -> bool:
        return self in (FieldType.FLOAT32, FieldType.FLOAT64)

    @property
    def is_numeric(self) -> bool:
        return self.is_integer or self.is_float

    @property
    def bits(self) -> int | None:
        """Bit width of numeric types, None otherwise."""
        if self.is_integer:
            return _INTEGER_WIDTHS[self]
        if self is FieldType.FLOAT32:
            return 32
        if self is FieldType.FLOAT64:
            return 64
        return None

    @property
    def bounds(self) -> tuple[int, int] | None:
        """Inclusive value range of integer types, None otherwise."""
        if not self.is_integer:
            return None
        bits = _INTEGER_WIDTHS[self]
        if self.is_unsigned:
            return 0, 2**bits - 1
        return -(2 ** (bits - 1)), 2 ** (bits - 1) - 1

    @classmethod
    def from_name(cls, name: str | FieldType) -> FieldType:
        """Resolve a type name (or alias) used in configuration.

        Raises:
            SchemaDefinitionError: If the name is not a known type
        """
        if isinstance(name, FieldType):
            return name
        key = str(name).strip().lower()
        key = _TYPE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError as e:
            raise SchemaDefinitionError(f"Invalid field type: {name}") from e


_INTEGER_WIDTHS: dict[FieldType, int] = {
    FieldType.INT: 64,
    FieldType.INT8: 8,
    FieldType.INT16: 16,
    FieldType.INT32: 32,
    FieldType.INT64: 64,
    FieldType.UINT: 64,
    FieldType.UINT8: 8,
    FieldType.UINT16: 16,
    FieldType.UINT32: 32,
    FieldType.UINT64: 64,
}

_TYPE_ALIASES = {
    "str": "string",
    "text": "string",
    "boolean": "bool",
    "integer": "int",
    "long": "int64",
    "float": "float64",
    "double": "float64",
    "timestamp": "datetime",
    "date": "datetime",
    "time": "datetime",
}


class Multiplicity(Enum):
    """Shape of a field's value."""

    SCALAR = "scalar"
    ARRAY = "array"
    OBJECT = "object"
    ARRAY_OF_OBJECT = "array_of_object"

    @property
    def is_array(self) -> bool:
        return self in (Multiplicity.ARRAY, Multiplicity.ARRAY_OF_OBJECT)

    @property
    def is_object(self) -> bool:
        return self in (Multiplicity.OBJECT, Multiplicity.ARRAY_OF_OBJECT)


# Characters reserved for paths ('.'), generator tags ('#') and array indexes.
RESERVED_NAME_CHARS = frozenset(".#[]")


def check_name(name: str, kind: str = "field name") -> str:
    """Validate a leaf name and return it.

    Raises:
        SchemaDefinitionError: If the name is empty or holds reserved characters
    """
    if not isinstance(name, str) or not name.strip():
        raise SchemaDefinitionError(f"{kind} must be a non-empty string, got {name!r}")
    bad = sorted(RESERVED_NAME_CHARS.intersection(name))
    if bad:
        raise SchemaDefinitionError(
            f"{kind} '{name}' cannot contain {', '.join(repr(c) for c in bad)}",
            field_name=name,
        )
    return name


@dataclass(frozen=True)
class PersistentField:
    """Persistence metadata of a generated field.

    Code generators emit one ``PersistentField`` per entity attribute. The
    table name may itself be schema-qualified (``public.accounts``); the
    column and view names are plain identifiers.

    Attributes:
        table: Table (scope) the column belongs to
        column: Database column name
        view: JSON/view key of the field
        field_type: Value type of the column
        constraints: Validators attached by the generator

    Example:
        ```python
        email = PersistentField("accounts", "email", "Email", FieldType.STRING, (Email(),))
        email.qualified_name  # "accounts.email.Email"
        ```
    """

    table: str
    column: str
    view: str
    field_type: FieldType
    constraints: tuple[Constraint, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.table, str) or not self.table.strip():
            raise SchemaDefinitionError("table must not be empty")
        check_name(self.column, "column")
        check_name(self.view, "view")
        object.__setattr__(self, "constraints", tuple(self.constraints))

    @property
    def scope(self) -> str:
        return self.table

    @property
    def qualified_name(self) -> str:
        """The composite ``table.column.view`` identifier."""
        return f"{self.table}.{self.column}.{self.view}"
