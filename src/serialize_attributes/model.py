"""Column registration and the class-level API shared by every host.

Registration runs in two phases. *Declare* builds the store, binds it to the
class, installs the accessor descriptors and attaches validations; this always
happens synchronously. *Finalize* wraps the host column with a
:class:`~serialize_attributes.adapter.StoreColumnAdapter`, either straight away
when the host can already see the column, or later through ``host.defer``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Protocol

from .accessors import install_accessors, uninstall_accessors
from .adapter import AttributeSet, ColumnCodec, StoreColumnAdapter
from .exceptions import ConfigurationError
from .logging import log_context
from .primitives import TypeRegistry
from .store import Builder, Store, build_store
from .validation import InclusionWithOptionsValidator, attach_validation, detach_validation

logger = logging.getLogger(__name__)

_BINDINGS_ATTR = "__serialized_attribute_bindings__"


class Host(Protocol):
    """What a record framework must provide for serialized attributes to plug in."""

    def metadata_available(self, model: type, column_name: str) -> bool: ...

    def original_codec(self, model: type, column_name: str) -> ColumnCodec: ...

    def install_adapter(
        self, model: type, column_name: str, adapter: StoreColumnAdapter
    ) -> None: ...

    def defer(self, model: type, column_name: str, finalize: Callable[[], None]) -> None: ...

    def attach_validation(self, model: type, attribute: str, options: Any) -> None: ...

    def detach_validation(self, model: type, attribute: str) -> None: ...


class BaseHost:
    """Validation wiring shared by the bundled hosts."""

    value_set_class: ClassVar[type[AttributeSet]] = AttributeSet

    def attach_validation(self, model: type, attribute: str, options: Any) -> None:
        attach_validation(model, InclusionWithOptionsValidator(attribute, tuple(options)))

    def detach_validation(self, model: type, attribute: str) -> None:
        detach_validation(model, attribute)


@dataclass
class ColumnBinding:
    store: Store
    host: Host
    accessor_names: list[str] = field(default_factory=list)
    validated_attributes: list[str] = field(default_factory=list)
    adapter: StoreColumnAdapter | None = None


def bindings_for(model: type) -> Mapping[str, ColumnBinding]:
    return getattr(model, _BINDINGS_ATTR, {})


def binding_for(model: type, column_name: str) -> ColumnBinding | None:
    return bindings_for(model).get(column_name)


def _own_bindings(model: type) -> dict[str, ColumnBinding]:
    if _BINDINGS_ATTR not in model.__dict__:
        setattr(model, _BINDINGS_ATTR, dict(bindings_for(model)))
    return model.__dict__[_BINDINGS_ATTR]


def _unbind(model: type, binding: ColumnBinding) -> None:
    uninstall_accessors(model, binding.accessor_names)
    for attribute in binding.validated_attributes:
        binding.host.detach_validation(model, attribute)


def register_column(
    model: type,
    column_name: str,
    builder: Builder,
    *,
    host: Host,
    registry: TypeRegistry | None = None,
) -> Store:
    """Declare the serialized attributes of ``model.<column_name>`` and wrap the column.

    A second registration for the same column replaces the first one: its
    accessors are removed, its validators detached and the adapter rebuilt
    over the column's original codec.
    """
    store = build_store(model, column_name, builder, registry=registry)

    bindings = _own_bindings(model)
    previous = bindings.get(column_name)
    if previous is not None:
        _unbind(model, previous)
        logger.info(
            "serialize_attributes.column.replaced",
            extra=log_context(model=model, column=column_name),
        )

    binding = ColumnBinding(store=store, host=host)
    bindings[column_name] = binding
    binding.accessor_names = install_accessors(model, store)
    for name, attribute_type in store.attribute_types.items():
        attach = getattr(attribute_type, "attach_validations_to", None)
        if attach is not None:
            attach(model, name, host)
            binding.validated_attributes.append(name)

    def finalize() -> None:
        if binding_for(model, column_name) is not binding:
            return
        value_set_class = getattr(host, "value_set_class", AttributeSet)
        adapter = StoreColumnAdapter(
            host.original_codec(model, column_name), store, value_set_class
        )
        host.install_adapter(model, column_name, adapter)
        binding.adapter = adapter

    if host.metadata_available(model, column_name):
        phase = "immediate"
        finalize()
    else:
        phase = "deferred"
        host.defer(model, column_name, finalize)

    logger.debug(
        "serialize_attributes.column.registered",
        extra=log_context(
            model=model,
            column=column_name,
            phase=phase,
            attributes=list(store.attribute_types),
        ),
    )
    return store


class SerializedAttributesMixin:
    """Class and instance API for models with serialized attribute columns.

    Concrete hosts set ``__serialized_attributes_host__``::

        class Person(AttributeModel):
            settings = RawColumn()

        @Person.serialize_attributes("settings")
        def settings_store(attrs):
            attrs.attribute("user_name", "string", default="Christian")
            attrs.attribute("subscribed", "boolean", default=False)

        Person().serialized_attributes_on("settings")
        => {"user_name": "Christian", "subscribed": False}
    """

    __serialized_attributes_host__: ClassVar[Host]

    @classmethod
    def serialize_attributes(
        cls,
        column_name: str,
        builder: Builder | None = None,
        *,
        registry: TypeRegistry | None = None,
    ) -> Any:
        """Register ``builder`` for ``column_name``; usable directly or as a decorator."""
        if builder is None:

            def decorator(fn: Builder) -> Store:
                return cls.serialize_attributes(column_name, fn, registry=registry)

            return decorator

        return register_column(
            cls,
            column_name,
            builder,
            host=cls.__serialized_attributes_host__,
            registry=registry,
        )

    @classmethod
    def serialized_attributes_store(cls, column_name: str) -> Store:
        binding = binding_for(cls, column_name)
        if binding is None:
            raise ConfigurationError(
                f"{cls.__name__}.{column_name} does not serialize any attributes"
            )
        return binding.store

    @classmethod
    def serialized_attribute_names(
        cls, column_name: str, type: Any = None, array: bool | None = None  # noqa: A002
    ) -> list[str]:
        return cls.serialized_attributes_store(column_name).attribute_names(
            type=type, array=array
        )

    def serialized_attributes_on(self, column_name: str) -> dict[str, Any]:
        """Every attribute of ``column_name`` with its current value, defaults included."""
        store = type(self).serialized_attributes_store(column_name)
        return {name: accessor.get(self) for name, accessor in store.accessors.items()}

    def serialized_attributes_changed(self, column_name: str | None = None) -> bool:
        """Whether any serialized column differs from the blob it was built from."""
        names = [column_name] if column_name is not None else list(bindings_for(type(self)))
        return any(self._serialized_column_changed(name) for name in names)

    def _serialized_column_changed(self, column_name: str) -> bool:
        binding = binding_for(type(self), column_name)
        if binding is None:
            raise ConfigurationError(
                f"{type(self).__name__}.{column_name} does not serialize any attributes"
            )
        values = getattr(self, column_name)
        if binding.adapter is None or not isinstance(values, AttributeSet):
            return False
        raw_old = binding.adapter.original.serialize(values.original)
        return binding.adapter.changed_in_place(raw_old, values)


__all__ = [
    "BaseHost",
    "ColumnBinding",
    "Host",
    "SerializedAttributesMixin",
    "binding_for",
    "bindings_for",
    "register_column",
]
