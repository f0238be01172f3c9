"""
Partially populated, typed property storage.

ModemManager only reports values the hardware actually knows about. A
PropertyBag keeps whatever was reported, tags every value with its kind and
lets readers state which kind they expect. Absent keys and wrong kinds fail
with distinct errors.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Mapping, Optional, Union

from .exceptions import KeyNotFoundError, TypeMismatchError

logger = logging.getLogger(__name__)


class ValueKind(Enum):
    """Kinds of values a PropertyBag can hold."""
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    RECORD = "record"

    @classmethod
    def of(cls, value: Any) -> Optional["ValueKind"]:
        """
        Classify a Python value.

        Args:
            value: Value to classify

        Returns:
            The matching ValueKind, or None for unsupported values
        """
        # bool before int: bool is a subclass of int
        if isinstance(value, bool):
            return cls.BOOLEAN
        if isinstance(value, int):
            return cls.INTEGER
        if isinstance(value, float):
            return cls.FLOAT
        if isinstance(value, str):
            return cls.STRING
        if isinstance(value, PropertyBag):
            return cls.RECORD
        return None


# What readers may pass as the expected type
Expected = Union[ValueKind, type]

_KIND_BY_TYPE = {
    bool: ValueKind.BOOLEAN,
    int: ValueKind.INTEGER,
    float: ValueKind.FLOAT,
    str: ValueKind.STRING,
}


def _expected_kind(expected: Expected) -> ValueKind:
    if isinstance(expected, ValueKind):
        return expected
    if expected in _KIND_BY_TYPE:
        return _KIND_BY_TYPE[expected]
    if isinstance(expected, type) and issubclass(expected, PropertyBag):
        return ValueKind.RECORD
    raise TypeError(f"Unsupported expected type: {expected!r}")


@dataclass(frozen=True)
class PropertyValue:
    """A value together with its kind."""
    kind: ValueKind
    value: Any

    @classmethod
    def wrap(cls, key: str, value: Any) -> "PropertyValue":
        """
        Wrap a raw value.

        Raises:
            TypeMismatchError: If the value has no supported kind
        """
        kind = ValueKind.of(value)
        if kind is None:
            raise TypeMismatchError(key, "a supported value kind", type(value).__name__)
        return cls(kind=kind, value=value)

    def matches(self, expected: Expected) -> bool:
        """Check whether this value satisfies the expected type."""
        if self.kind is not _expected_kind(expected):
            return False
        # records must also be of the requested record class
        if isinstance(expected, type) and issubclass(expected, PropertyBag):
            return isinstance(self.value, expected)
        return True


class PropertyBag:
    """
    String-keyed mapping of optional, typed values.

    A key is either absent ("not reported") or present with exactly one
    kind. Readers pass the expected type:

    .. code-block:: python

        bag = PropertyBag({"rsrp": -95.0})
        bag.get("rsrp", float)                # -95.0
        bag.get("rsrq", float)                # raises KeyNotFoundError
        bag.get("rsrp", int)                  # raises TypeMismatchError
        bag.get_or_default("rsrq", 0.0)       # 0.0
    """

    def __init__(self, values: Optional[Mapping[str, Any]] = None) -> None:
        self._values: dict[str, PropertyValue] = {}
        if values:
            for key, value in values.items():
                self.insert(key, value)

    def insert(self, key: str, value: Any) -> None:
        """
        Add a value or overwrite an existing one.

        Args:
            key: Property name
            value: bool, int, float, str or nested PropertyBag
        """
        self._values[key] = PropertyValue.wrap(key, value)

    def get(self, key: str, expected: Expected = str) -> Any:
        """
        Get a value of the expected type.

        Args:
            key: Property name
            expected: Python type (bool, int, float, str, PropertyBag
                      subclass) or ValueKind

        Returns:
            The stored value

        Raises:
            KeyNotFoundError: If the key is absent
            TypeMismatchError: If the stored value has another type
        """
        try:
            stored = self._values[key]
        except KeyError:
            raise KeyNotFoundError(key) from None

        if not stored.matches(expected):
            raise TypeMismatchError(key, _describe(expected), stored.kind.value)

        return stored.value

    def get_or_default(self, key: str, default: Any, expected: Optional[Expected] = None) -> Any:
        """
        Get a value or fall back to a default.

        Absent keys and type mismatches both yield the default; use get()
        when the two cases must be told apart.

        Args:
            key: Property name
            default: Fallback value
            expected: Expected type, derived from ``default`` when omitted.
                A default no value can match (e.g. a list) is returned as is.

        Returns:
            The stored value or ``default``
        """
        if expected is None:
            if default is None:
                stored = self._values.get(key)
                return default if stored is None else stored.value
            if ValueKind.of(default) is None:
                return default
            expected = type(default)

        try:
            return self.get(key, expected)
        except (KeyNotFoundError, TypeMismatchError):
            return default

    def has_key(self, key: str) -> bool:
        """Whether a value for key is present."""
        return key in self._values

    def kind_of(self, key: str) -> ValueKind:
        """
        Get the kind of a present value.

        Raises:
            KeyNotFoundError: If the key is absent
        """
        try:
            return self._values[key].kind
        except KeyError:
            raise KeyNotFoundError(key) from None

    def keys(self) -> list[str]:
        """Keys of all present values."""
        return list(self._values)

    def maybe_insert_from(
        self,
        source: Union[Mapping[str, Any], "PropertyBag"],
        key: str,
        rename_to: Optional[str] = None,
        expected: Optional[Expected] = None,
        convert: Optional[Callable[[Any], Any]] = None
    ) -> bool:
        """
        Copy a single value from another representation, if present.

        Args:
            source: Raw mapping (e.g. decoded D-Bus dictionary) or PropertyBag
            key: Key in the source
            rename_to: Key in this bag (defaults to ``key``)
            expected: Type the source value must have
            convert: Conversion applied before inserting (errors propagate)

        Returns:
            True if a value was copied, False if the key was absent

        Raises:
            TypeMismatchError: If the source value is not of ``expected`` type
        """
        if isinstance(source, PropertyBag):
            if not source.has_key(key):
                return False
            value = source._values[key].value
        else:
            if key not in source:
                return False
            value = source[key]

        if expected is not None and not PropertyValue.wrap(key, value).matches(expected):
            raise TypeMismatchError(key, _describe(expected), type(value).__name__)

        if convert is not None:
            value = convert(value)

        self.insert(rename_to or key, value)
        return True

    def as_dict(self) -> dict[str, Any]:
        """Plain dictionary of present values, nested records included."""
        result = {}
        for key, stored in self._values.items():
            if stored.kind is ValueKind.RECORD:
                result[key] = stored.value.as_dict()
            else:
                result[key] = stored.value
        return result

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PropertyBag):
            return NotImplemented
        return type(self) is type(other) and self._values == other._values

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.as_dict()!r})"


def _describe(expected: Expected) -> str:
    if isinstance(expected, ValueKind):
        return expected.value
    if isinstance(expected, type) and issubclass(expected, PropertyBag):
        return expected.__name__
    return _KIND_BY_TYPE[expected].value
