"""Custom exceptions for the dataknobs_view package.

This module defines exception types for the view package,
built on the common exception framework from dataknobs_common.

Three families are defined here:

- Definition errors (``SchemaDefinitionError``) are programmer errors raised
  while fields and schemas are being built.
- Input errors (``CoercionError`` subclasses and the aggregated
  ``ValidationError``) describe bad data. They are carried by
  ``ValidationResult`` objects rather than raised from ``Schema.validate``.
- Query errors (``InvalidPathError``, ``FieldTypeError``,
  ``FieldNotFoundError``) are raised when a ``ValueObject`` is asked for
  something that does not fit the data it holds.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dataknobs_common import (
    ConfigurationError,
    DataknobsError,
    NotFoundError,
    OperationError,
    ValidationError as BaseValidationError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

# Create DataknobsViewError as alias to DataknobsError, mirroring the other packages
DataknobsViewError = DataknobsError

ERROR_HEADER = "validation failed with the following errors:"


class SchemaDefinitionError(ConfigurationError):
    """Raised when a field or schema definition breaks an invariant."""

    def __init__(self, message: str, field_name: str | None = None):
        self.field_name = field_name
        super().__init__(message, context={"field_name": field_name} if field_name else None)


class CoercionError(BaseValidationError):
    """Raised when a raw value cannot be converted to a field type."""

    def __init__(self, message: str, target: str | None = None, raw: str | None = None):
        self.target = target
        self.raw = raw
        context = {}
        if target is not None:
            context["target"] = target
        if raw is not None:
            context["raw"] = raw
        super().__init__(message, context=context or None)


class FormatError(CoercionError):
    """The raw value has the right kind but an unparseable format."""

    pass


class NumericOverflowError(CoercionError):
    """The raw value does not fit the numeric range of the target type."""

    def __init__(self, target: str, raw: str | None = None, kind: str = "integer"):
        super().__init__(f"for type {target}: {kind} overflow", target=target, raw=raw)


class TypeMismatchError(CoercionError):
    """The raw value's kind does not match the requested type."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"type mismatch: expected {expected} but got raw type {actual}",
            target=expected,
        )


class ValidationError(BaseValidationError):
    """Aggregated validation failure, at most one message per field path.

    Entries are kept in a dictionary keyed by path; adding a message for a
    path that already has one replaces it. Rendering is sorted by path so
    messages are deterministic.

    Example:
        ```python
        errors = ValidationError()
        errors.add("name", "field 'name': length must be at least 3")
        errors.add("tags[1]", "length must be at least 2")
        print(errors)
        # validation failed with the following errors:
        # - name: field 'name': length must be at least 3
        # - tags[1]: length must be at least 2
        ```
    """

    def __init__(self, errors: dict[str, str] | None = None):
        self.errors: dict[str, str] = dict(errors or {})
        super().__init__(ERROR_HEADER, context={"errors": self.errors})

    def add(self, path: str, message: str) -> ValidationError:
        """Record a message for a path (fluent API)."""
        self.errors[path] = message
        return self

    def merge(self, other: ValidationError, prefix: str | None = None) -> ValidationError:
        """Copy every entry of another aggregate into this one.

        Args:
            other: Aggregate to merge
            prefix: Optional path prefix; entries become ``prefix.path``

        Returns:
            Self for chaining
        """
        for path, message in other.errors.items():
            self.add(f"{prefix}.{path}" if prefix else path, message)
        return self

    def single(self) -> str:
        """Return the only message of a single-entry aggregate."""
        if len(self.errors) != 1:
            raise ValueError(f"expected exactly one error, found {len(self.errors)}")
        return next(iter(self.errors.values()))

    def items(self) -> list[tuple[str, str]]:
        """Return ``(path, message)`` pairs sorted by path."""
        return sorted(self.errors.items())

    def messages(self) -> list[str]:
        """Return ``"path: message"`` lines sorted by path."""
        return [f"{path}: {message}" for path, message in self.items()]

    def __bool__(self) -> bool:
        return bool(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def __contains__(self, path: object) -> bool:
        return path in self.errors

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.errors))

    def __getitem__(self, path: str) -> str:
        return self.errors[path]

    def __str__(self) -> str:
        lines = [ERROR_HEADER]
        lines.extend(f"- {line}" for line in self.messages())
        return "\n".join(lines)


class InvalidPathError(OperationError):
    """Raised when a lookup path cannot address the data it is applied to."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Invalid path '{path}': {message}", context={"path": path})


class FieldTypeError(BaseValidationError):
    """Raised when a stored value does not have the requested type."""

    def __init__(self, field_name: str, expected_type: str, actual_type: str):
        self.field_name = field_name
        self.expected_type = expected_type
        self.actual_type = actual_type
        super().__init__(
            f"Field '{field_name}' type mismatch: expected {expected_type}, got {actual_type}",
            context={
                "field_name": field_name,
                "expected_type": expected_type,
                "actual_type": actual_type,
            },
        )


class FieldNotFoundError(NotFoundError):
    """Raised when a required lookup finds nothing at the path."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Field '{path}' not found", context={"path": path})
