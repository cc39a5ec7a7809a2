"""Column adapter: turns a whole blob into typed values and back."""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, SupportsIndex

from .exceptions import UnknownAttributeError
from .logging import log_context
from .settings import get_settings

if TYPE_CHECKING:
    from .store import Store

logger = logging.getLogger(__name__)


class ColumnCodec(Protocol):
    """The host column's own handling of its raw value."""

    def cast(self, value: Any) -> Any: ...

    def deserialize(self, value: Any) -> Any: ...

    def serialize(self, value: Any) -> Any: ...

    def changed_in_place(self, raw_old_value: Any, new_value: Any) -> bool: ...


class PassthroughCodec:
    """Codec for columns whose driver already hands back a decoded mapping."""

    def cast(self, value: Any) -> Any:
        return value

    def deserialize(self, value: Any) -> Any:
        return value

    def serialize(self, value: Any) -> Any:
        return value

    def changed_in_place(self, raw_old_value: Any, new_value: Any) -> bool:
        return raw_old_value != new_value


class TrackedList(list):
    """List value that tells its owning value set about in-place changes."""

    def __init__(self, iterable: Iterable[Any] = (), owner: AttributeSet | None = None) -> None:
        super().__init__(iterable)
        self._owner = owner

    def changed(self) -> None:
        if self._owner is not None:
            self._owner.changed()

    def __reduce_ex__(self, protocol: SupportsIndex) -> Any:
        return (list, (list(self),))

    def __setitem__(self, index: Any, value: Any) -> None:
        super().__setitem__(index, value)
        self.changed()

    def __delitem__(self, index: Any) -> None:
        super().__delitem__(index)
        self.changed()

    def __iadd__(self, other: Iterable[Any]) -> TrackedList:  # type: ignore[override]
        super().__iadd__(other)
        self.changed()
        return self

    def __imul__(self, count: SupportsIndex) -> TrackedList:  # type: ignore[override]
        super().__imul__(count)
        self.changed()
        return self

    def append(self, value: Any) -> None:
        super().append(value)
        self.changed()

    def extend(self, values: Iterable[Any]) -> None:
        super().extend(values)
        self.changed()

    def insert(self, index: SupportsIndex, value: Any) -> None:
        super().insert(index, value)
        self.changed()

    def pop(self, index: SupportsIndex = -1) -> Any:
        value = super().pop(index)
        self.changed()
        return value

    def remove(self, value: Any) -> None:
        super().remove(value)
        self.changed()

    def clear(self) -> None:
        super().clear()
        self.changed()

    def sort(self, **kwargs: Any) -> None:
        super().sort(**kwargs)
        self.changed()

    def reverse(self) -> None:
        super().reverse()
        self.changed()


class AttributeSet(dict):
    """Typed values decomposed from one blob column.

    ``original`` is the decoded blob the set was built from; it is what
    ``changed_in_place`` compares the current values against. Lists are held
    as :class:`TrackedList` so appending to an array attribute is noticed
    without reassigning it.
    """

    def __init__(
        self,
        values: Mapping[str, Any] | Iterable[tuple[str, Any]] = (),
        *,
        original: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self.original: dict[str, Any] = dict(original or {})
        for name, value in dict(values).items():
            dict.__setitem__(self, name, self._track(value))

    @classmethod
    def from_blob(cls, store: Store, blob: Mapping[str, Any]) -> AttributeSet:
        """Build the value set for ``blob``, filling absent attributes with defaults.

        Deferred (callable) defaults are not evaluated here; the accessor
        resolves them against the record when the attribute is read.
        """
        blob = dict(blob)
        values = cls(original=copy.deepcopy(blob))
        for name in store.attribute_names():
            raw = blob.get(name)
            if name in blob and not (raw is None and store.is_array(name)):
                dict.__setitem__(values, name, values._track(store.deserialize(name, raw)))
            elif not store.has_deferred_default(name):
                dict.__setitem__(values, name, values._track(store.default(name)))

        unknown = [key for key in blob if key not in store]
        if unknown:
            policy = get_settings().unknown_keys
            if policy == "error":
                raise UnknownAttributeError(unknown[0], store.model_class)
            if policy == "preserve":
                for key in unknown:
                    dict.__setitem__(values, key, blob[key])
            else:
                logger.debug(
                    "serialize_attributes.blob.unknown_key",
                    extra=log_context(
                        model=store.model_class, column=store.column_name, keys=unknown
                    ),
                )
        return values

    def to_blob(self, store: Store) -> dict[str, Any]:
        return {
            name: store.serialize(name, value) if name in store else value
            for name, value in self.items()
        }

    def changed(self) -> None:
        """Hook called on every mutation; hosts override it to flag their record."""

    def copy(self) -> AttributeSet:
        return type(self)(self, original=self.original)

    def __reduce__(self) -> Any:
        return (type(self), (dict(self),), {"original": self.original})

    def _track(self, value: Any) -> Any:
        if isinstance(value, list) and not (
            isinstance(value, TrackedList) and value._owner is self
        ):
            return TrackedList(value, owner=self)
        return value

    def __setitem__(self, name: str, value: Any) -> None:
        dict.__setitem__(self, name, self._track(value))
        self.changed()

    def __delitem__(self, name: str) -> None:
        dict.__delitem__(self, name)
        self.changed()

    def pop(self, name: str, *default: Any) -> Any:
        result = dict.pop(self, name, *default)
        self.changed()
        return result

    def popitem(self) -> tuple[str, Any]:
        result = dict.popitem(self)
        self.changed()
        return result

    def setdefault(self, name: str, value: Any = None) -> Any:
        if name in self:
            return self[name]
        self[name] = value
        return self[name]

    def update(self, *args: Any, **kwargs: Any) -> None:
        for name, value in dict(*args, **kwargs).items():
            dict.__setitem__(self, name, self._track(value))
        self.changed()

    def clear(self) -> None:
        dict.clear(self)
        self.changed()


class StoreColumnAdapter:
    """Wraps a column's original codec so its blob reads and writes go through a store."""

    def __init__(
        self,
        original: ColumnCodec,
        store: Store,
        value_set_class: type[AttributeSet] = AttributeSet,
    ) -> None:
        self.original = original
        self.store = store
        self.value_set_class = value_set_class

    def deserialize(self, value: Any) -> Any:
        result = self.original.deserialize(value)
        if isinstance(result, AttributeSet) or not isinstance(result, Mapping):
            return result
        return self.value_set_class.from_blob(self.store, result)

    def serialize(self, value: Any) -> Any:
        if not isinstance(value, AttributeSet):
            value = self.cast(value)
        if isinstance(value, AttributeSet):
            value = value.to_blob(self.store)
        return self.original.serialize(value)

    def cast(self, value: Any) -> Any:
        if isinstance(value, AttributeSet):
            return value
        value = self.original.cast(value)
        if isinstance(value, Mapping) and not isinstance(value, AttributeSet):
            return self.value_set_class.from_blob(self.store, value)
        return value

    def changed_in_place(self, raw_old_value: Any, new_value: Any) -> bool:
        if not isinstance(new_value, AttributeSet):
            return self.original.changed_in_place(raw_old_value, new_value)
        if self.deserialize(raw_old_value) != new_value:
            return True
        old_blob = self.original.deserialize(raw_old_value)
        if not isinstance(old_blob, Mapping):
            return False
        return any(
            self.store.changed_in_place(name, old_blob[name], value)
            for name, value in new_value.items()
            if name in self.store and name in old_blob
        )


__all__ = [
    "AttributeSet",
    "ColumnCodec",
    "PassthroughCodec",
    "StoreColumnAdapter",
    "TrackedList",
]
