"""Per-attribute getters, setters and predicates, exposed through descriptors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .adapter import AttributeSet
from .settings import get_settings
from .types import CLEAR, UNSET

if TYPE_CHECKING:
    from .store import Store


def is_present(value: Any) -> bool:
    """Truthiness used by predicates: ``None``, ``False`` and blank strings are false."""
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


@dataclass(frozen=True, slots=True)
class AttributeAccessor:
    """Reads and writes one attribute through its record's raw column."""

    store: Store
    name: str

    @property
    def has_predicate(self) -> bool:
        return not self.store.is_array(self.name)

    def values(self, record: Any) -> AttributeSet:
        """Return the record's value set, building a detached one if the column is empty."""
        raw = getattr(record, self.store.column_name)
        if isinstance(raw, AttributeSet):
            return raw
        return AttributeSet.from_blob(self.store, raw or {})

    def get(self, record: Any) -> Any:
        value = self.values(record).get(self.name, UNSET)
        if value is UNSET:
            return self.store.default(self.name, record)
        return value

    def set(self, record: Any, value: Any) -> None:
        result = self.store.cast_assignment(self.name, value)
        values = self.values(record).copy()
        if result is CLEAR:
            values.pop(self.name, None)
        else:
            values[self.name] = result.value
        setattr(record, self.store.column_name, values)

    def predicate(self, record: Any) -> bool:
        return is_present(self.get(record))


class SerializedAttribute:
    """Descriptor exposing one serialized attribute as a plain instance attribute."""

    def __init__(self, accessor: AttributeAccessor) -> None:
        self.accessor = accessor

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return self.accessor.get(instance)

    def __set__(self, instance: Any, value: Any) -> None:
        self.accessor.set(instance, value)

    def __repr__(self) -> str:
        return f"<SerializedAttribute {self.accessor.store.column_name}.{self.accessor.name}>"


class SerializedPredicate:
    """Read-only descriptor answering whether an attribute holds a present value."""

    def __init__(self, accessor: AttributeAccessor) -> None:
        self.accessor = accessor

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return self.accessor.predicate(instance)

    def __set__(self, instance: Any, value: Any) -> None:
        raise AttributeError(f"{self.accessor.name} predicate is read-only")


def predicate_name(name: str) -> str:
    return get_settings().predicate_name_template.format(name=name)


def install_accessors(model: type, store: Store) -> list[str]:
    """Install descriptors for every attribute of ``store`` and return their names."""
    installed: list[str] = []
    for name, accessor in store.accessors.items():
        setattr(model, name, SerializedAttribute(accessor))
        installed.append(name)
        if accessor.has_predicate:
            predicate = predicate_name(name)
            setattr(model, predicate, SerializedPredicate(accessor))
            installed.append(predicate)
    return installed


def uninstall_accessors(model: type, names: list[str]) -> None:
    """Remove descriptors previously installed on ``model`` itself."""
    for name in names:
        if isinstance(model.__dict__.get(name), (SerializedAttribute, SerializedPredicate)):
            delattr(model, name)


__all__ = [
    "AttributeAccessor",
    "SerializedAttribute",
    "SerializedPredicate",
    "install_accessors",
    "is_present",
    "predicate_name",
    "uninstall_accessors",
]
