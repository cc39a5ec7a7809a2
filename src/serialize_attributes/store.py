"""The per-column attribute registry.

A :class:`Store` is built once per (model, column) by running a builder
callable against a :class:`StoreBuilder`::

    def data_attributes(attrs):
        attrs.attribute("flag", "boolean", default=False)
        attrs.attribute("tags", "string", array=True)
        attrs.attribute("status", "enum", of=[None, "placed", "confirmed"])

    store = build_store(Order, "data", data_attributes)

The resulting store is frozen: it cannot gain attributes and its attributes
cannot be reassigned.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from .accessors import AttributeAccessor
from .exceptions import ConfigurationError, FrozenStoreError, UnknownAttributeError
from .logging import log_context
from .primitives import TypeRegistry, default_registry
from .types import CLEAR, ArrayWrapper, AttributeType, CastResult, EnumType, Value

logger = logging.getLogger(__name__)

_MISSING = object()
_builtin_type = type

Builder = Callable[["StoreBuilder"], Any]


class StoreBuilder:
    """Registration context handed to a store's builder callable."""

    def __init__(
        self,
        model_class: type,
        column_name: str,
        registry: TypeRegistry | None = None,
    ) -> None:
        self.model_class = model_class
        self.column_name = column_name
        self.registry = registry or default_registry
        self._attribute_types: dict[str, AttributeType] = {}
        self._defaults: dict[str, Any] = {}
        self._frozen = False

    def attribute(
        self,
        name: str,
        type_: Any,
        *,
        default: Any = _MISSING,
        array: bool = False,
        **type_options: Any,
    ) -> AttributeType:
        """Register ``name`` with the given type.

        ``type_`` is usually an identifier resolved through the registry
        (``"string"``, ``"decimal"``, ``"enum"``); any ``type_options`` are
        passed to it, e.g. ``of=[...]`` for enums or ``limit=`` for strings.
        ``array=True`` makes the attribute list-valued with a default of
        ``[]`` unless ``default`` says otherwise. ``default`` may be a
        callable, in which case it is evaluated with the record on every
        read where the attribute is absent.
        """
        if self._frozen:
            raise FrozenStoreError(
                f"Store for {self.model_class.__name__}.{self.column_name} is frozen; "
                "attributes can only be registered while the builder runs"
            )
        name = str(name)
        if name == self.column_name:
            raise ConfigurationError(
                f"Attribute {name!r} clashes with the column it is stored in"
            )

        attribute_type = self.registry.resolve(type_, **type_options)
        if array:
            if isinstance(attribute_type, EnumType):
                raise ConfigurationError("Enum-arrays not currently supported")
            attribute_type = ArrayWrapper(attribute_type)

        if name in self._attribute_types:
            logger.debug(
                "serialize_attributes.attribute.redefined",
                extra=log_context(
                    model=self.model_class, column=self.column_name, attribute=name
                ),
            )
        self._attribute_types[name] = attribute_type

        if default is not _MISSING:
            self._defaults[name] = default
        elif array:
            self._defaults[name] = []
        else:
            self._defaults.pop(name, None)
        return attribute_type

    def build(self) -> Store:
        self._frozen = True
        return Store(
            self.model_class,
            self.column_name,
            attribute_types=self._attribute_types,
            defaults=self._defaults,
            registry=self.registry,
        )


class Store:
    """Frozen registry of the attributes serialized into one column."""

    def __init__(
        self,
        model_class: type,
        column_name: str,
        *,
        attribute_types: Mapping[str, AttributeType],
        defaults: Mapping[str, Any],
        registry: TypeRegistry | None = None,
    ) -> None:
        self.model_class = model_class
        self.column_name = column_name
        self.registry = registry or default_registry
        self.attribute_types = MappingProxyType(dict(attribute_types))
        self.defaults = MappingProxyType(dict(defaults))
        self.accessors = MappingProxyType(
            {name: AttributeAccessor(self, name) for name in self.attribute_types}
        )
        self._frozen = True

        logger.debug(
            "serialize_attributes.store.frozen",
            extra=log_context(
                model=model_class, column=column_name, attributes=list(self.attribute_types)
            ),
        )

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_frozen", False):
            raise FrozenStoreError(
                f"Cannot set {name!r}: store for "
                f"{self.model_class.__name__}.{self.column_name} is frozen"
            )
        super().__setattr__(name, value)

    def __delattr__(self, name: str) -> None:
        raise FrozenStoreError(
            f"Cannot delete {name!r}: store for "
            f"{self.model_class.__name__}.{self.column_name} is frozen"
        )

    def __contains__(self, name: object) -> bool:
        return name in self.attribute_types

    def __repr__(self) -> str:
        return (
            f"<Store {self.model_class.__name__}.{self.column_name} "
            f"attributes={list(self.attribute_types)}>"
        )

    def attribute_names(
        self, type: Any = None, array: bool | None = None  # noqa: A002
    ) -> list[str]:
        """Return attribute names in registration order.

            store.attribute_names()
            => ["user_name", "subscribed", "subscriptions"]

            store.attribute_names(type="string", array=True)
            => ["subscriptions"]

        ``type`` matches the unwrapped type of each attribute, so array
        attributes match the type of their elements. It may be an identifier,
        an attribute type instance, or a class.
        """
        items = list(self.attribute_types.items())
        if array is not None:
            items = [(name, t) for name, t in items if isinstance(t, ArrayWrapper) == array]
        if type is not None:
            wanted = type if _is_variant_class(type) else self._resolve_filter(type)
            items = [(name, t) for name, t in items if _matches(t.unwrap(), wanted)]
        return [name for name, _ in items]

    def attribute_type(self, name: str) -> AttributeType:
        try:
            return self.attribute_types[str(name)]
        except KeyError:
            raise UnknownAttributeError(str(name), self.model_class) from None

    def cast(self, name: str, value: Any) -> Any:
        """Cast caller input for ``name``.

            store.cast("user_name", 42)
            => "42"
        """
        return self.attribute_type(name).cast(value)

    def cast_assignment(self, name: str, value: Any) -> CastResult:
        """Cast input for an assignment, separating "clear" from real values."""
        result = self.cast(name, value)
        if result is CLEAR:
            return CLEAR
        return Value(result)

    def deserialize(self, name: str, value: Any) -> Any:
        """Deserialize a stored value for ``name``.

            store.deserialize("subscribed", "0")
            => False
        """
        return self.attribute_type(name).deserialize(value)

    def serialize(self, name: str, value: Any) -> Any:
        return self.attribute_type(name).serialize(value)

    def changed_in_place(self, name: str, raw_old_value: Any, new_value: Any) -> bool:
        return self.attribute_type(name).changed_in_place(raw_old_value, new_value)

    def default(self, name: str, context: Any = None) -> Any:
        """Return the default for ``name``.

        Callable defaults are evaluated with ``context`` (normally the record),
        or with the store itself when no context is given. Literal defaults
        are copied so records never share a mutable default.
        """
        given = self.defaults.get(str(name))
        if callable(given):
            return given(self if context is None else context)
        return copy.deepcopy(given)

    def has_deferred_default(self, name: str) -> bool:
        return callable(self.defaults.get(str(name)))

    def is_array(self, name: str) -> bool:
        return isinstance(self.attribute_type(name), ArrayWrapper)

    def enum_options(self, name: str) -> tuple[Any, ...]:
        attribute_type = self.attribute_type(name)
        if not isinstance(attribute_type, EnumType):
            raise ConfigurationError(f"`{name}` attribute is not an enum type")
        return attribute_type.options

    def _resolve_filter(self, wanted: Any) -> AttributeType:
        if isinstance(wanted, AttributeType):
            return wanted.unwrap()
        return self.registry.resolve(wanted).unwrap()


def _is_variant_class(wanted: Any) -> bool:
    return isinstance(wanted, _builtin_type) and (
        issubclass(wanted, AttributeType) or callable(getattr(wanted, "cast", None))
    )


def _matches(attribute_type: AttributeType, wanted: Any) -> bool:
    if _is_variant_class(wanted):
        impl = getattr(attribute_type, "impl", None)
        return isinstance(attribute_type, wanted) or isinstance(impl, wanted)
    return (
        _builtin_type(attribute_type) is _builtin_type(wanted)
        and attribute_type.type_name == wanted.type_name
    )


def build_store(
    model_class: type,
    column_name: str,
    builder: Builder,
    *,
    registry: TypeRegistry | None = None,
) -> Store:
    """Run ``builder`` against a fresh registration context and freeze the result."""
    context = StoreBuilder(model_class, column_name, registry)
    builder(context)
    return context.build()


__all__ = ["Builder", "Store", "StoreBuilder", "build_store"]
