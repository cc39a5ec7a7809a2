"""Attribute type variants: primitive delegates, arrays and enums."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, Protocol, runtime_checkable

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .model import Host


@runtime_checkable
class TypeImplementation(Protocol):
    """Casting capability supplied by the primitive type system."""

    def cast(self, value: Any) -> Any: ...

    def deserialize(self, value: Any) -> Any: ...

    def serialize(self, value: Any) -> Any: ...

    def changed_in_place(self, raw_old_value: Any, new_value: Any) -> bool: ...


class Clear:
    """Cast result asking for an attribute to be removed from its value set."""

    _instance: Clear | None = None

    def __new__(cls) -> Clear:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CLEAR"

    def __bool__(self) -> bool:
        return False


class Unset:
    """Marks an attribute that is absent from a value set."""

    _instance: Unset | None = None

    def __new__(cls) -> Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


CLEAR: Final = Clear()
UNSET: Final = Unset()


@dataclass(frozen=True, slots=True)
class Value:
    """Cast result carrying the value to store."""

    value: Any


CastResult = Value | Clear


class AttributeType(ABC):
    """Common surface of every attribute type variant."""

    type_name: str = "value"

    @abstractmethod
    def cast(self, value: Any) -> Any:
        """Convert caller input into the canonical in-memory value."""

    @abstractmethod
    def deserialize(self, value: Any) -> Any:
        """Convert a stored value into the canonical in-memory value."""

    @abstractmethod
    def serialize(self, value: Any) -> Any:
        """Convert an in-memory value into its stored representation."""

    def changed_in_place(self, raw_old_value: Any, new_value: Any) -> bool:
        return raw_old_value != self.serialize(new_value)

    def unwrap(self) -> AttributeType:
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.type_name})"


class Primitive(AttributeType):
    """Delegates every operation to a primitive type implementation."""

    def __init__(self, impl: Any, type_name: str | None = None) -> None:
        missing = [
            op
            for op in ("cast", "deserialize", "serialize", "changed_in_place")
            if not callable(getattr(impl, op, None))
        ]
        if missing:
            raise ConfigurationError(
                f"{type(impl).__name__} cannot be used as an attribute type; "
                f"missing {', '.join(missing)}"
            )
        self.impl = impl
        self.type_name = type_name or getattr(impl, "type_name", None) or type(impl).__name__

    def cast(self, value: Any) -> Any:
        return self.impl.cast(value)

    def deserialize(self, value: Any) -> Any:
        return self.impl.deserialize(value)

    def serialize(self, value: Any) -> Any:
        return self.impl.serialize(value)

    def changed_in_place(self, raw_old_value: Any, new_value: Any) -> bool:
        return self.impl.changed_in_place(raw_old_value, new_value)


def as_list(value: Any) -> list[Any]:
    """Coerce ``value`` into a list without touching its elements."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, (str, bytes, bytearray, Mapping)):
        return [value]
    if isinstance(value, Iterable):
        return list(value)
    return [value]


class ArrayWrapper(AttributeType):
    """List-valued attribute whose elements share one inner type.

    ``cast(None)`` returns :data:`CLEAR` so the setter can drop the key and let
    the attribute fall back to its default. Elements are only typed on the
    ``deserialize`` path.
    """

    def __init__(self, inner: AttributeType) -> None:
        if isinstance(inner, EnumType):
            raise ConfigurationError("Enum-arrays not currently supported")
        self.inner = inner
        self.type_name = inner.type_name

    def cast(self, value: Any) -> Any:
        if value is None:
            return CLEAR
        return as_list(value)

    def deserialize(self, value: Any) -> Any:
        if value is None:
            return None
        return [self.inner.deserialize(item) for item in as_list(value)]

    def serialize(self, value: Any) -> Any:
        if value is None:
            return None
        return [self.inner.serialize(item) for item in as_list(value)]

    def unwrap(self) -> AttributeType:
        return self.inner.unwrap()

    def __repr__(self) -> str:
        return f"ArrayWrapper({self.inner!r})"


class EnumType(AttributeType):
    """Attribute restricted to a fixed, ordered set of options.

    >>> status = EnumType([None, "placed", "confirmed"])
    >>> status.cast("placed")
    'placed'

    With an inner type, input is cast by that type first, so an enum of
    ``[True]`` over ``boolean`` accepts ``"t"``.
    """

    type_name = "enum"

    def __init__(self, options: Iterable[Any] = (), inner: AttributeType | None = None) -> None:
        self._options = tuple(options)
        self.inner = inner

    @property
    def options(self) -> tuple[Any, ...]:
        return self._options

    def cast(self, value: Any) -> Any:
        if self.inner is None:
            return value
        return self.inner.cast(value)

    def deserialize(self, value: Any) -> Any:
        if self.inner is None:
            return value
        return self.inner.deserialize(value)

    def serialize(self, value: Any) -> Any:
        if self.inner is None:
            return value
        return self.inner.serialize(value)

    def attach_validations_to(self, model: type, attribute_name: str, host: Host) -> None:
        host.attach_validation(model, attribute_name, self._options)

    def __repr__(self) -> str:
        return f"EnumType({list(self._options)!r})"


__all__ = [
    "CLEAR",
    "UNSET",
    "ArrayWrapper",
    "AttributeType",
    "CastResult",
    "Clear",
    "EnumType",
    "Primitive",
    "TypeImplementation",
    "Unset",
    "Value",
    "as_list",
]
