"""View validation for JSON request documents.

This package validates JSON documents and flat string overlays (such as URL
parameters) against declarative schemas:
- Strict coercion of raw JSON and string values to typed fields
- Reusable constraints for strings, numbers, booleans and timestamps
- Embedded objects and arrays with per-element error paths
- Aggregated, path-keyed error reports
- Validated values exposed through dot-notation lookups

Example:
    ```python
    from dataknobs_view import Between, FieldType, MinLength, Schema, field

    schema = Schema(
        field("name", FieldType.STRING, MinLength(3)),
        field("age", FieldType.INT, Between(18, 120)),
    )
    result = schema.validate('{"name": "Alice"}', {"age": "30"})
    if result:
        result.value.get_int("age")  # 30
    ```
"""

from .coercer import Coercer, JsonKind, JsonNumber, decode_document, parse_timestamp, to_python
from .constraints import (
    URL,
    Between,
    BeFalse,
    BeTrue,
    CharSet,
    CharSetAll,
    CharSetAny,
    CharSetNone,
    CharSetOnly,
    Constraint,
    Custom,
    Decimal,
    Email,
    ExactLength,
    Gt,
    Gte,
    LengthBetween,
    Lt,
    Lte,
    Match,
    MaxLength,
    MinLength,
    OneOf,
)
from .exceptions import (
    CoercionError,
    DataknobsViewError,
    FieldNotFoundError,
    FieldTypeError,
    FormatError,
    InvalidPathError,
    NumericOverflowError,
    SchemaDefinitionError,
    TypeMismatchError,
    ValidationError,
)
from .factory import SchemaFactory, load_schema, schema_factory
from .fields import FieldType, Multiplicity, PersistentField
from .result import ValidationResult
from .schema import (
    Field,
    Schema,
    array_field,
    array_of_object_field,
    field,
    object_field,
    wrap_field,
)
from .values import ValueObject

__version__ = "0.1.0"

__all__ = [
    # Result types
    "ValidationResult",
    "ValueObject",
    # Fields
    "FieldType",
    "Multiplicity",
    "PersistentField",
    "Field",
    "field",
    "array_field",
    "object_field",
    "array_of_object_field",
    "wrap_field",
    # Schema
    "Schema",
    # Constraints
    "Constraint",
    "MinLength",
    "MaxLength",
    "ExactLength",
    "LengthBetween",
    "CharSet",
    "CharSetOnly",
    "CharSetAny",
    "CharSetAll",
    "CharSetNone",
    "Match",
    "Email",
    "URL",
    "Decimal",
    "OneOf",
    "Gt",
    "Gte",
    "Lt",
    "Lte",
    "Between",
    "BeTrue",
    "BeFalse",
    "Custom",
    # Coercion
    "Coercer",
    "JsonKind",
    "JsonNumber",
    "decode_document",
    "parse_timestamp",
    "to_python",
    # Factories
    "SchemaFactory",
    "schema_factory",
    "load_schema",
    # Exceptions
    "DataknobsViewError",
    "SchemaDefinitionError",
    "CoercionError",
    "FormatError",
    "NumericOverflowError",
    "TypeMismatchError",
    "ValidationError",
    "InvalidPathError",
    "FieldTypeError",
    "FieldNotFoundError",
    "__version__",
]
