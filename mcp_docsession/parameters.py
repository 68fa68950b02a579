"""
Typed, validating access to per-call operation parameters.

Tool arguments arrive as a loosely typed JSON-like mapping. ParameterBag wraps
that mapping once per call and exposes get_required/get_optional accessors
that coerce to the requested type or fail with a structured UsageError.

Coercions:
- str -> int/float/bool ("12", "3.5", "true"/"false"/"yes"/"no"/"1"/"0")
- int -> float
- Enum: member name or value (case-insensitive), or integer index
- list/dict: native value, or JSON text that decodes to one
"""

import json
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping, TypeVar

from .errors import InvalidParameterType, MissingParameter

T = TypeVar("T")

_MISSING = object()

_TRUE_STRINGS = {"true", "yes", "1", "on"}
_FALSE_STRINGS = {"false", "no", "0", "off"}


class ParameterBag:
    """Immutable, case-insensitive view over operation parameters.

    None values count as absent, so an explicit null behaves like an
    omitted argument.
    """

    __slots__ = ("_values", "_names")

    def __init__(self, values: Mapping[str, Any] | None = None):
        folded: dict[str, Any] = {}
        names: dict[str, str] = {}
        for name, value in (values or {}).items():
            key = name.casefold()
            folded[key] = value
            names[key] = name
        self._values = MappingProxyType(folded)
        self._names = MappingProxyType(names)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names[key] for key, value in self._values.items() if value is not None)

    def __len__(self) -> int:
        return sum(1 for value in self._values.values() if value is not None)

    def __repr__(self) -> str:
        return f"ParameterBag({sorted(self)})"

    def has(self, name: str) -> bool:
        """Return True if the parameter is present and not None."""
        return self._values.get(name.casefold()) is not None

    def raw(self, name: str, default: Any = None) -> Any:
        """Return the uncoerced value, or default if absent."""
        value = self._values.get(name.casefold())
        return default if value is None else value

    def get_required(self, name: str, type_: type[T] = str) -> T:
        """Return a required parameter coerced to type_.

        Args:
            name: Parameter name (case-insensitive)
            type_: Target type (str, int, float, bool, list, dict, or an Enum)

        Returns:
            Coerced value

        Raises:
            MissingParameter: If absent, None, or an empty string
            InvalidParameterType: If present but not coercible
        """
        value = self._values.get(name.casefold(), _MISSING)
        if value is _MISSING or value is None:
            raise MissingParameter(name)
        if type_ is str and isinstance(value, str) and not value.strip():
            raise MissingParameter(name)
        return coerce(name, value, type_)

    def get_optional(self, name: str, type_: type[T] = str, default: Any = None) -> T | Any:
        """Return an optional parameter coerced to type_, or default if absent.

        Raises:
            InvalidParameterType: If present but not coercible
        """
        value = self._values.get(name.casefold())
        if value is None:
            return default
        return coerce(name, value, type_)

    def get_list(self, name: str, item_type: type[T] | None = None, required: bool = True) -> list[T]:
        """Return a list parameter, optionally coercing every item.

        Items are reported as ``name[i]`` when they fail coercion.
        """
        if required:
            items = self.get_required(name, list)
        else:
            items = self.get_optional(name, list, default=[])
        if item_type is None:
            return list(items)
        return [coerce(f"{name}[{i}]", item, item_type) for i, item in enumerate(items)]

    def to_dict(self) -> dict[str, Any]:
        """Return present parameters under their original names."""
        return {self._names[key]: value for key, value in self._values.items() if value is not None}


def coerce(name: str, value: Any, type_: type[T]) -> T:
    """Coerce a loosely typed value to type_ or raise InvalidParameterType."""
    if isinstance(type_, type) and issubclass(type_, Enum):
        return _coerce_enum(name, value, type_)
    if type_ is bool:
        return _coerce_bool(name, value)
    if type_ is int:
        return _coerce_int(name, value)
    if type_ is float:
        return _coerce_float(name, value)
    if type_ is str:
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            return str(value)
        raise InvalidParameterType(name, "a string", value)
    if type_ in (list, dict):
        return _coerce_structured(name, value, type_)
    if isinstance(value, type_):
        return value
    raise InvalidParameterType(name, type_.__name__, value)


def _coerce_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise InvalidParameterType(name, "a boolean", value)


def _coerce_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidParameterType(name, "an integer", value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise InvalidParameterType(name, "an integer", value)


def _coerce_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidParameterType(name, "a number", value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            pass
    raise InvalidParameterType(name, "a number", value)


def _coerce_enum(name: str, value: Any, enum_type: type[Enum]) -> Enum:
    if isinstance(value, enum_type):
        return value
    members = list(enum_type)
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value < len(members):
            return members[value]
    elif isinstance(value, str):
        wanted = value.strip().casefold()
        for member in members:
            if member.name.casefold() == wanted or str(member.value).casefold() == wanted:
                return member
    choices = ", ".join(str(member.value) for member in members)
    raise InvalidParameterType(name, f"one of [{choices}]", value)


def _coerce_structured(name: str, value: Any, type_: type) -> Any:
    expected = "an array" if type_ is list else "an object"
    if isinstance(value, type_):
        return value
    if type_ is list and isinstance(value, tuple):
        return list(value)
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            raise InvalidParameterType(name, expected, value) from None
        if isinstance(decoded, type_):
            return decoded
    raise InvalidParameterType(name, expected, value)
