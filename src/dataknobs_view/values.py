"""Validated value containers with dot-notation path lookup.

A ``ValueObject`` is what a successful ``Schema.validate`` call returns. It
maps each field's unique name to its coerced value. Values are primitives,
nested ``ValueObject``s (embedded objects), plain dictionaries (containers
created for dotted qualified names) or lists.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, TYPE_CHECKING

from .exceptions import FieldNotFoundError, FieldTypeError, InvalidPathError

if TYPE_CHECKING:
    from collections.abc import Iterator

PATH_SEPARATOR = "."

_MISSING = object()


class ValueObject(Mapping[str, Any]):
    """Hierarchical, read-mostly container of validated values.

    Paths use dot notation; list elements are addressed by integer segments.
    Lookups distinguish three outcomes: a value, absence (``None`` or the
    given default), and a malformed query (an exception).

    Example:
        ```python
        vo = schema.validate('{"user": {"email": "a@b.co"}, "items": [{"id": 7}]}').unwrap()

        vo.get_str("user.email")   # "a@b.co"
        vo.get_int("items.0.id")   # 7
        vo.get_str("user.phone")   # None (absent)
        vo.must_int("items.0.id")  # 7
        vo.get_int("user.email")   # raises FieldTypeError
        vo.get("items.x.id")       # raises InvalidPathError
        ```
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None):
        self._data: dict[str, Any] = dict(data or {})

    # --- Mapping protocol ---

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"ValueObject({self._data!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ValueObject):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def fields(self) -> list[str]:
        """Return the top-level keys, sorted."""
        return sorted(self._data)

    # --- Mutation ---

    def add(self, name: str, value: Any) -> None:
        """Add a new top-level entry.

        Raises:
            InvalidPathError: If the name exists already or contains '.'
        """
        if name in self._data:
            raise InvalidPathError(name, "property already exists")
        if PATH_SEPARATOR in name:
            raise InvalidPathError(name, "property name contains '.'")
        self._data[name] = value

    def update(self, name: str, value: Any) -> None:
        """Replace an existing top-level entry.

        Raises:
            FieldNotFoundError: If the name does not exist
        """
        if name not in self._data:
            raise FieldNotFoundError(name)
        self._data[name] = value

    # --- Lookup ---

    def get(self, path: str, default: Any = None) -> Any:  # type: ignore[override]
        """Get a value by literal key or dot-notation path.

        A key stored verbatim (for instance a dotted qualified name kept
        flat) wins over path traversal.

        Args:
            path: Literal key or dot-notation path (e.g., "items.0.id")
            default: Value returned when nothing is found

        Returns:
            The value at the path or default

        Raises:
            InvalidPathError: If a list is indexed by a non-integer or
                out-of-range segment
        """
        value = self._lookup(path)
        return default if value is _MISSING else value

    def _lookup(self, path: str) -> Any:
        if path in self._data:
            return self._data[path]
        current: Any = self
        for part in path.split(PATH_SEPARATOR):
            if current is None:
                return _MISSING
            if isinstance(current, ValueObject):
                current = current._lookup(part)
                if current is _MISSING:
                    return _MISSING
            elif isinstance(current, Mapping):
                if part not in current:
                    return _MISSING
                current = current[part]
            elif isinstance(current, (list, tuple)):
                current = _index(current, part, path)
            else:
                # Traversing into a scalar
                return _MISSING
        return current

    def get_typed(self, path: str, expected: type | tuple[type, ...], type_name: str | None = None) -> Any:
        """Get a value and assert its runtime type.

        Returns:
            The value, or None when absent

        Raises:
            FieldTypeError: If a value is present but has another type
        """
        value = self._lookup(path)
        if value is _MISSING:
            return None
        if not _is_instance(value, expected):
            raise FieldTypeError(path, type_name or _type_label(expected), type(value).__name__)
        return value

    def get_list(self, path: str, item_type: type, type_name: str) -> list[Any] | None:
        """Get a homogeneous list and assert every element's type."""
        value = self._lookup(path)
        if value is _MISSING:
            return None
        if not isinstance(value, list) or not all(_is_instance(item, item_type) for item in value):
            raise FieldTypeError(path, type_name, _describe(value))
        return value

    def must(self, path: str) -> Any:
        """Get a value that must be present.

        Raises:
            FieldNotFoundError: If nothing is found at the path
        """
        value = self._lookup(path)
        if value is _MISSING:
            raise FieldNotFoundError(path)
        return value

    def get_str(self, path: str) -> str | None:
        return self.get_typed(path, str)

    def get_int(self, path: str) -> int | None:
        return self.get_typed(path, int)

    def get_float(self, path: str) -> float | None:
        return self.get_typed(path, float)

    def get_bool(self, path: str) -> bool | None:
        return self.get_typed(path, bool)

    def get_datetime(self, path: str) -> datetime | None:
        return self.get_typed(path, datetime)

    def get_object(self, path: str) -> ValueObject | None:
        """Get an embedded object; plain dict containers are wrapped."""
        value = self.get_typed(path, Mapping, "object")
        if value is None or isinstance(value, ValueObject):
            return value
        return ValueObject(value)

    def get_str_list(self, path: str) -> list[str] | None:
        return self.get_list(path, str, "list[str]")

    def get_int_list(self, path: str) -> list[int] | None:
        return self.get_list(path, int, "list[int]")

    def get_float_list(self, path: str) -> list[float] | None:
        return self.get_list(path, float, "list[float]")

    def get_bool_list(self, path: str) -> list[bool] | None:
        return self.get_list(path, bool, "list[bool]")

    def get_datetime_list(self, path: str) -> list[datetime] | None:
        return self.get_list(path, datetime, "list[datetime]")

    def get_object_list(self, path: str) -> list[ValueObject] | None:
        return self.get_list(path, ValueObject, "list[ValueObject]")

    def must_str(self, path: str) -> str:
        return _present(path, self.get_str(path))

    def must_int(self, path: str) -> int:
        return _present(path, self.get_int(path))

    def must_float(self, path: str) -> float:
        return _present(path, self.get_float(path))

    def must_bool(self, path: str) -> bool:
        return _present(path, self.get_bool(path))

    def must_datetime(self, path: str) -> datetime:
        return _present(path, self.get_datetime(path))

    def must_object(self, path: str) -> ValueObject:
        return _present(path, self.get_object(path))

    def must_str_list(self, path: str) -> list[str]:
        return _present(path, self.get_str_list(path))

    def must_int_list(self, path: str) -> list[int]:
        return _present(path, self.get_int_list(path))

    def must_float_list(self, path: str) -> list[float]:
        return _present(path, self.get_float_list(path))

    def must_bool_list(self, path: str) -> list[bool]:
        return _present(path, self.get_bool_list(path))

    def must_datetime_list(self, path: str) -> list[datetime]:
        return _present(path, self.get_datetime_list(path))

    def must_object_list(self, path: str) -> list[ValueObject]:
        return _present(path, self.get_object_list(path))

    # --- Export ---

    def flatten(self) -> dict[str, Any]:
        """Flatten nested containers into dot-joined keys.

        Embedded objects and dictionaries are recursed into; lists and
        scalars are terminal values stored as-is. This is the shape consumed
        by statement builders keyed by qualified column names.

        Example:
            ```python
            ValueObject({"accounts": {"email": {"Email": "a@b.co"}}, "tags": ["x"]}).flatten()
            # {"accounts.email.Email": "a@b.co", "tags": ["x"]}
            ```
        """
        flat: dict[str, Any] = {}
        _flatten_into(flat, "", self._data)
        return flat

    def to_dict(self) -> dict[str, Any]:
        """Convert to plain nested dictionaries and lists."""
        return {key: _plain(value) for key, value in self._data.items()}


def _index(items: list[Any] | tuple[Any, ...], part: str, path: str) -> Any:
    try:
        index = int(part)
    except ValueError:
        raise InvalidPathError(path, f"segment '{part}' is not a valid integer index for a list") from None
    if index < 0 or index >= len(items) or not part.lstrip("+").isdigit():
        raise InvalidPathError(path, f"index {part} is out of range for list of length {len(items)}")
    return items[index]


def _is_instance(value: Any, expected: type | tuple[type, ...]) -> bool:
    # bool is an int subclass but never satisfies an int request
    if isinstance(value, bool):
        return expected is bool or (isinstance(expected, tuple) and bool in expected)
    return isinstance(value, expected)


def _type_label(expected: type | tuple[type, ...]) -> str:
    if isinstance(expected, tuple):
        return " | ".join(t.__name__ for t in expected)
    return expected.__name__


def _describe(value: Any) -> str:
    if isinstance(value, list):
        kinds = sorted({type(item).__name__ for item in value})
        return f"list[{' | '.join(kinds)}]" if kinds else "list"
    return type(value).__name__


def _present(path: str, value: Any) -> Any:
    if value is None:
        raise FieldNotFoundError(path)
    return value


def _flatten_into(flat: dict[str, Any], prefix: str, data: Mapping[str, Any]) -> None:
    for key, value in data.items():
        path = f"{prefix}{PATH_SEPARATOR}{key}" if prefix else key
        if isinstance(value, Mapping):
            _flatten_into(flat, path, value)
        else:
            flat[path] = value


def _plain(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value
