"""Validation result types with consistent, predictable behavior.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .exceptions import DataknobsViewError, ValidationError


@dataclass
class ValidationResult:
    """Unified result object for coercion and validation operations.

    A result is either valid, holding the (possibly coerced) value, or
    invalid, holding the error messages and the typed exception describing
    the failure. Missing input is never represented here: absence is decided
    by the caller before any coercion takes place.
    """

    valid: bool
    value: Any
    errors: list[str] = field(default_factory=list)
    exception: DataknobsViewError | None = None

    def __bool__(self) -> bool:
        """Allow 'if result:' usage to check validity."""
        return self.valid

    def unwrap(self) -> Any:
        """Return the value of a valid result or raise its exception.

        Returns:
            The validated value

        Raises:
            DataknobsViewError: The failure carried by an invalid result
        """
        if self.valid:
            return self.value
        if self.exception is not None:
            raise self.exception
        raise ValidationError({"$": "; ".join(self.errors)})

    @classmethod
    def success(cls, value: Any) -> ValidationResult:
        """Create a successful validation result.

        Args:
            value: The validated value

        Returns:
            Successful ValidationResult
        """
        return cls(valid=True, value=value)

    @classmethod
    def failure(
        cls,
        value: Any,
        errors: list[str],
        exception: DataknobsViewError | None = None,
    ) -> ValidationResult:
        """Create a failed validation result.

        Args:
            value: The value that failed validation
            errors: List of error messages
            exception: Optional typed exception describing the failure

        Returns:
            Failed ValidationResult
        """
        return cls(valid=False, value=value, errors=errors, exception=exception)

    @classmethod
    def from_exception(cls, value: Any, exception: DataknobsViewError) -> ValidationResult:
        """Create a failed result whose single message is the exception text."""
        return cls.failure(value, [str(exception)], exception)

    @classmethod
    def from_report(cls, report: ValidationError) -> ValidationResult:
        """Create a failed result from an aggregated report."""
        return cls.failure(None, report.messages(), report)
