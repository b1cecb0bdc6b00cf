"""Schema definition and two-phase validation of JSON documents.

A ``Schema`` is an ordered, immutable set of ``Field`` descriptors. Its
``validate`` method checks a JSON document plus optional overlays (flat
string maps such as URL parameters) and returns a ``ValidationResult``
holding either a ``ValueObject`` or an aggregated ``ValidationError``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, TYPE_CHECKING

from .coercer import Coercer, JsonKind, decode_document, to_python
from .constraints import Constraint
from .exceptions import SchemaDefinitionError, ValidationError
from .fields import FieldType, Multiplicity, PersistentField, check_name
from .result import ValidationResult
from .values import PATH_SEPARATOR, ValueObject

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)

# Path used for errors about the document as a whole
DOCUMENT_PATH = "$"

_coercer = Coercer()


@dataclass(frozen=True)
class Field:
    """Field definition for schema validation.

    Fields are immutable; use ``optional()`` or ``with_constraints()`` to
    derive variants. Prefer the factory functions (``field``,
    ``array_field``, ``object_field``, ``array_of_object_field``,
    ``wrap_field``) over calling the constructor directly.

    Attributes:
        name: JSON key of the field; no '.', '#', '[' or ']'
        field_type: Value type of scalars and array elements
        multiplicity: Scalar, array, embedded object or array of objects
        required: Whether absence is an error
        qualified_name: Optional persistence key (e.g. "table.column.view")
        scope: Optional persistence scope (table)
        schema: Embedded schema of object fields
        constraints: Validators applied to coerced values, names unique
        description: Free-form description
    """

    name: str
    field_type: FieldType = FieldType.STRING
    multiplicity: Multiplicity = Multiplicity.SCALAR
    required: bool = True
    qualified_name: str = ""
    scope: str = ""
    schema: Schema | None = None
    constraints: tuple[Constraint, ...] = ()
    description: str | None = None

    def __post_init__(self) -> None:
        check_name(self.name)
        object.__setattr__(self, "constraints", tuple(self.constraints))
        if self.multiplicity.is_object:
            if self.schema is None:
                raise SchemaDefinitionError(f"Nested schema is missing for object field '{self.name}'", self.name)
            if self.constraints:
                raise SchemaDefinitionError(f"Object field '{self.name}' cannot carry constraints", self.name)
        elif self.schema is not None:
            raise SchemaDefinitionError(f"Field '{self.name}' is not an object field but has a nested schema", self.name)

        names: set[str] = set()
        for constraint in self.constraints:
            if constraint.name in names:
                raise SchemaDefinitionError(
                    f"duplicate validator '{constraint.name}' for field '{self.name}'", self.name
                )
            names.add(constraint.name)
            if not constraint.accepts(self.field_type):
                raise SchemaDefinitionError(
                    f"validator '{constraint.name}' cannot be applied to {self.field_type.value} field '{self.name}'",
                    self.name,
                )

    @property
    def unique_name(self) -> str:
        """Storage key of the field's value: qualified name if set, else name."""
        return self.qualified_name or self.name

    @property
    def is_array(self) -> bool:
        return self.multiplicity.is_array

    @property
    def is_object(self) -> bool:
        return self.multiplicity.is_object

    def optional(self) -> Field:
        """Return a copy of this field that may be absent."""
        return replace(self, required=False)

    def with_constraints(self, *constraints: Constraint) -> Field:
        """Return a copy with additional constraints."""
        return replace(self, constraints=self.constraints + constraints)

    def validate(self, node: Any) -> ValidationResult:
        """Validate a decoded JSON node against this field.

        Scalar failures carry one message prefixed with the field name.
        Array and object failures carry a ``ValidationError`` keyed by path
        (``tags[1]``, ``user``, ``items[0].id``).
        """
        if self.multiplicity is Multiplicity.OBJECT:
            return self._validate_object(node)
        if self.multiplicity is Multiplicity.ARRAY_OF_OBJECT:
            return self._validate_object_array(node)
        if self.multiplicity is Multiplicity.ARRAY:
            return self._validate_array(node)
        return self._validate_scalar(_coercer.coerce(node, self.field_type))

    def validate_raw(self, raw: str) -> ValidationResult:
        """Validate a raw overlay string against this (scalar) field."""
        if self.multiplicity is not Multiplicity.SCALAR:
            return ValidationResult.failure(
                raw, [f"field '{self.name}': overlay values cannot populate {self.multiplicity.value} fields"]
            )
        return self._validate_scalar(_coercer.coerce_string(raw, self.field_type))

    def _violation(self, value: Any) -> str | None:
        for constraint in self.constraints:
            result = constraint.check(value)
            if not result.valid:
                return result.errors[0]
        return None

    def _validate_scalar(self, coerced: ValidationResult) -> ValidationResult:
        if not coerced.valid:
            return ValidationResult.failure(
                coerced.value, [f"field '{self.name}': {coerced.errors[0]}"], coerced.exception
            )
        violation = self._violation(coerced.value)
        if violation is not None:
            return ValidationResult.failure(coerced.value, [f"field '{self.name}': {violation}"])
        return coerced

    def _validate_array(self, node: Any) -> ValidationResult:
        if not isinstance(node, list):
            return self._kind_failure(node, "a JSON array")
        report = ValidationError()
        values = []
        for index, element in enumerate(node):
            path = f"{self.name}[{index}]"
            coerced = _coercer.coerce(element, self.field_type)
            if not coerced.valid:
                report.add(path, coerced.errors[0])
                continue
            violation = self._violation(coerced.value)
            if violation is not None:
                report.add(path, violation)
                continue
            values.append(coerced.value)
        if report:
            return ValidationResult.from_report(report)
        return ValidationResult.success(values)

    def _validate_object(self, node: Any) -> ValidationResult:
        if not isinstance(node, dict):
            return self._kind_failure(node, "a JSON object")
        nested = self.schema._validate_node(node)  # type: ignore[union-attr]
        if nested.valid:
            return nested
        return ValidationResult.from_report(_contextualize(nested.exception, self.name))  # type: ignore[arg-type]

    def _validate_object_array(self, node: Any) -> ValidationResult:
        if not isinstance(node, list):
            return self._kind_failure(node, "a JSON array")
        report = ValidationError()
        values = []
        for index, element in enumerate(node):
            path = f"{self.name}[{index}]"
            if not isinstance(element, dict):
                report.add(path, f"expected a JSON object but got {JsonKind.of(element).value}")
                continue
            nested = self.schema._validate_node(element)  # type: ignore[union-attr]
            if nested.valid:
                values.append(nested.value)
            else:
                report.merge(_contextualize(nested.exception, path))  # type: ignore[arg-type]
        if report:
            return ValidationResult.from_report(report)
        return ValidationResult.success(values)

    def _kind_failure(self, node: Any, expected: str) -> ValidationResult:
        return ValidationResult.failure(
            node, [f"field '{self.name}': expected {expected} but got {JsonKind.of(node).value}"]
        )


def _contextualize(report: ValidationError, path: str) -> ValidationError:
    """Place a nested report under ``path``.

    A single nested error is unwrapped and keyed by ``path`` itself; larger
    reports keep their inner paths behind a ``path.`` prefix.
    """
    if len(report) == 1:
        return ValidationError({path: report.single()})
    return ValidationError().merge(report, prefix=path)


def field(
    name: str,
    field_type: FieldType | str = FieldType.STRING,
    *constraints: Constraint,
    required: bool = True,
    qualified_name: str = "",
    description: str | None = None,
) -> Field:
    """Create a scalar field.

    Example:
        ```python
        name = field("name", FieldType.STRING, MinLength(3))
        age = field("age", FieldType.INT, Between(18, 120))
        email = field("email", FieldType.STRING, Email(), required=False)
        ```
    """
    return Field(
        name=name,
        field_type=FieldType.from_name(field_type),
        constraints=constraints,
        required=required,
        qualified_name=qualified_name,
        description=description,
    )


def array_field(
    name: str,
    field_type: FieldType | str = FieldType.STRING,
    *constraints: Constraint,
    required: bool = True,
    qualified_name: str = "",
    description: str | None = None,
) -> Field:
    """Create an array field; constraints apply to every element."""
    return Field(
        name=name,
        field_type=FieldType.from_name(field_type),
        multiplicity=Multiplicity.ARRAY,
        constraints=constraints,
        required=required,
        qualified_name=qualified_name,
        description=description,
    )


def object_field(name: str, schema: Schema, required: bool = True, description: str | None = None) -> Field:
    """Create an embedded object field validated by ``schema``."""
    return Field(
        name=name,
        multiplicity=Multiplicity.OBJECT,
        schema=schema,
        required=required,
        description=description,
    )


def array_of_object_field(
    name: str, schema: Schema, required: bool = True, description: str | None = None
) -> Field:
    """Create an array field whose elements are objects validated by ``schema``."""
    return Field(
        name=name,
        multiplicity=Multiplicity.ARRAY_OF_OBJECT,
        schema=schema,
        required=required,
        description=description,
    )


def wrap_field(persistent: PersistentField, *constraints: Constraint, required: bool = True) -> Field:
    """Create a view field from generated persistence metadata.

    The view key becomes the field name and the ``table.column.view``
    identifier becomes the qualified name, so validated values are stored
    under their persistence key. Generator constraints run before the
    extra ones given here.
    """
    return Field(
        name=persistent.view,
        field_type=persistent.field_type,
        qualified_name=persistent.qualified_name,
        scope=persistent.scope,
        constraints=persistent.constraints + constraints,
        required=required,
    )


class Schema:
    """Ordered, immutable set of fields with validation.

    Leaf names must be unique, and so must non-empty qualified names. By
    default any JSON key or overlay key that does not name a field is
    rejected; ``allow_unknown_fields()`` returns a permissive copy that
    passes unknown keys through to the result.

    A schema holds no per-call state and can be shared between threads.

    Example:
        ```python
        schema = Schema(
            field("name", FieldType.STRING, MinLength(3)),
            field("age", FieldType.INT, Between(18, 120)),
        )
        result = schema.validate('{"name": "Alice", "age": 30}')
        result.value.get_str("name")   # "Alice"

        result = schema.validate('{"name": "Al"}')
        print(result.exception)
        # validation failed with the following errors:
        # - age: age is required but not found
        # - name: field 'name': length must be at least 3
        ```
    """

    def __init__(self, *fields: Field, allow_unknown: bool = False, name: str | None = None):
        """Initialize schema.

        Args:
            *fields: Field definitions, in validation order
            allow_unknown: If True, accept and keep keys no field declares
            name: Schema name for identification

        Raises:
            SchemaDefinitionError: On duplicate names or qualified names, or when
                one field's storage key is nested under another's
        """
        self._fields: tuple[Field, ...] = tuple(fields)
        self._allow_unknown = allow_unknown
        self._name = name or "schema"
        self._by_name: dict[str, Field] = {}

        qualified: set[str] = set()
        for f in self._fields:
            if not isinstance(f, Field):
                raise SchemaDefinitionError(f"Schema '{self._name}' expects Field values, got {type(f).__name__}")
            if f.name in self._by_name:
                raise SchemaDefinitionError(f"duplicate field name '{f.name}' in schema definition", f.name)
            self._by_name[f.name] = f
            if f.qualified_name:
                if f.qualified_name in qualified:
                    raise SchemaDefinitionError(
                        f"duplicate qualified name '{f.qualified_name}' in schema definition", f.name
                    )
                qualified.add(f.qualified_name)
        _check_storage_keys(self._fields)
        logger.debug(f"Defined schema '{self._name}' with {len(self._fields)} fields")

    @classmethod
    def from_persistent(cls, *fields: PersistentField, name: str | None = None) -> Schema:
        """Build a schema from generated persistence metadata."""
        return cls(*(wrap_field(f) for f in fields), name=name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def fields(self) -> tuple[Field, ...]:
        return self._fields

    @property
    def allow_unknown(self) -> bool:
        return self._allow_unknown

    def get_field(self, name: str) -> Field | None:
        return self._by_name.get(name)

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[Field]:
        return iter(self._fields)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __repr__(self) -> str:
        return f"Schema({self._name!r}, fields={[f.name for f in self._fields]}, allow_unknown={self._allow_unknown})"

    def allow_unknown_fields(self) -> Schema:
        """Return a copy of this schema that accepts unknown keys."""
        return Schema(*self._fields, allow_unknown=True, name=self._name)

    def extend(self, other: Schema) -> Schema:
        """Return a schema with the fields of both schemas.

        The result is permissive if either schema is.

        Raises:
            SchemaDefinitionError: If both schemas declare the same name
        """
        return Schema(
            *self._fields,
            *other._fields,
            allow_unknown=self._allow_unknown or other._allow_unknown,
            name=self._name,
        )

    def validate(self, document: str | bytes = "", *overlays: Mapping[str, str]) -> ValidationResult:
        """Validate a JSON document and optional overlays.

        Validation runs in two phases. The structural phase checks the
        document syntax, unknown keys and key conflicts; if it finds
        anything the result fails with those errors only. The field phase
        then coerces and checks every field, collecting all failures.

        Args:
            document: JSON object text; empty means no body
            *overlays: Flat string maps (e.g. URL parameters), in order

        Returns:
            ValidationResult holding a ValueObject, or failing with a
            ValidationError in ``exception``
        """
        logger.debug(f"Validating input against schema '{self._name}' with {len(overlays)} overlay(s)")
        errors = ValidationError()
        node: dict[str, Any] = {}
        if len(document) > 0:
            try:
                decoded = decode_document(document)
            except ValueError as e:
                errors.add(DOCUMENT_PATH, f"invalid json: {e}")
            else:
                if isinstance(decoded, dict):
                    node = decoded
                else:
                    errors.add(DOCUMENT_PATH, f"json document must be an object, got {JsonKind.of(decoded).value}")
        overlay = self._merge_overlays(overlays, errors)
        return self._validate_node(node, overlay, errors)

    def _merge_overlays(self, overlays: Iterable[Mapping[str, str]], errors: ValidationError) -> dict[str, str]:
        merged: dict[str, str] = {}
        for overlay in overlays:
            for key, value in overlay.items():
                if key in merged:
                    errors.add(key, f"duplicated url parameter '{key}'")
                f = self._by_name.get(key)
                if f is None:
                    if not self._allow_unknown:
                        errors.add(key, f"unknown url parameter '{key}'")
                elif f.multiplicity is not Multiplicity.SCALAR:
                    errors.add(key, f"url parameter '{key}' is mapped to an embedded object or array")
                merged[key] = value
        return merged

    def _validate_node(
        self,
        node: dict[str, Any],
        overlay: dict[str, str] | None = None,
        errors: ValidationError | None = None,
    ) -> ValidationResult:
        overlay = overlay or {}
        errors = errors if errors is not None else ValidationError()
        for key in node:
            if key in overlay:
                errors.add(key, f"duplicate parameter in url and json '{key}'")
            if not self._allow_unknown and key not in self._by_name:
                errors.add(key, f"unknown json field '{key}'")
        if errors:
            return self._reject(errors)

        data: dict[str, Any] = {}
        for f in self._fields:
            if f.name in node:
                result = f.validate(node[f.name])
            elif f.name in overlay:
                result = f.validate_raw(overlay[f.name])
            else:
                if f.required:
                    errors.add(f.name, f"{f.name} is required but not found")
                continue
            if not result.valid:
                if isinstance(result.exception, ValidationError):
                    errors.merge(result.exception)
                else:
                    errors.add(f.name, result.errors[0])
                continue
            _set_nested(data, f.unique_name, result.value)
        if errors:
            return self._reject(errors)

        if self._allow_unknown:
            for key, value in node.items():
                if key not in self._by_name and key not in data:
                    data[key] = to_python(value)
            for key, raw in overlay.items():
                if key not in self._by_name and key not in data:
                    data[key] = raw
        return ValidationResult.success(ValueObject(data))

    def _reject(self, errors: ValidationError) -> ValidationResult:
        logger.debug(f"Schema '{self._name}' rejected input with {len(errors)} error(s)")
        return ValidationResult.from_report(errors)

    def to_dict(self) -> dict[str, Any]:
        """Convert schema to dictionary representation.

        Returns:
            Dictionary representation of schema
        """
        return {
            "name": self._name,
            "allow_unknown": self._allow_unknown,
            "fields": [_field_to_dict(f) for f in self._fields],
        }


def _field_to_dict(f: Field) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": f.name,
        "multiplicity": f.multiplicity.value,
        "required": f.required,
    }
    if f.is_object:
        data["fields"] = [_field_to_dict(inner) for inner in f.schema.fields]  # type: ignore[union-attr]
    else:
        data["type"] = f.field_type.value
        data["constraints"] = [c.name for c in f.constraints]
    if f.qualified_name:
        data["qualified_name"] = f.qualified_name
    if f.description:
        data["description"] = f.description
    return data


def _check_storage_keys(fields: tuple[Field, ...]) -> None:
    """Reject fields whose values would be stored under the same key.

    A dotted unique name is stored in nested containers, so a field stored
    at any of its prefixes would be overwritten.
    """
    keys: dict[str, Field] = {}
    for f in fields:
        if f.unique_name in keys:
            raise SchemaDefinitionError(
                f"fields '{keys[f.unique_name].name}' and '{f.name}' share storage key '{f.unique_name}'", f.name
            )
        keys[f.unique_name] = f
    for key, f in keys.items():
        parts = key.split(PATH_SEPARATOR)
        for end in range(1, len(parts)):
            owner = keys.get(PATH_SEPARATOR.join(parts[:end]))
            if owner is not None:
                raise SchemaDefinitionError(
                    f"storage key '{key}' of field '{f.name}' is nested under field '{owner.name}'", f.name
                )


def _set_nested(data: dict[str, Any], key: str, value: Any) -> None:
    """Store ``value`` under a possibly dotted key, creating containers."""
    parts = key.split(PATH_SEPARATOR)
    current = data
    for part in parts[:-1]:
        existing = current.get(part)
        if isinstance(existing, dict):
            nxt = existing
        elif isinstance(existing, ValueObject):
            nxt = dict(existing)
        else:
            nxt = {}
        current[part] = nxt
        current = nxt
    current[parts[-1]] = ValueObject(value) if isinstance(value, dict) else value
