"""SQLAlchemy host: serialized attributes on declarative models.

The blob column keeps its own type (usually ``JSON``); registration swaps in a
:class:`StoreColumnType` that wraps it, so rows decode straight into a
:class:`MutableAttributeSet`. In-place changes to that set, or to the lists it
holds, flag the owning record as modified through ``sqlalchemy.ext.mutable``::

    class Order(SerializeAttributes, Base):
        __tablename__ = "orders"

        id: Mapped[int] = mapped_column(primary_key=True)
        data: Mapped[dict | None] = mapped_column(JSON)

    @Order.serialize_attributes("data")
    def data_store(attrs):
        attrs.attribute("flag", "boolean", default=False)
        attrs.attribute("tags", "string", array=True)
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping
from typing import Any

from sqlalchemy import JSON, event
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.mutable import Mutable
from sqlalchemy.orm import Mapper, Session
from sqlalchemy.types import TypeDecorator, TypeEngine

from .adapter import AttributeSet, PassthroughCodec, StoreColumnAdapter
from .model import BaseHost, SerializedAttributesMixin, binding_for, bindings_for
from .settings import get_settings
from .validation import ValidatesMixin

__all__ = [
    "MutableAttributeSet",
    "SQLAlchemyHost",
    "SerializeAttributes",
    "StoreColumnType",
    "sqlalchemy_host",
]

_LISTENERS_ATTR = "__serialized_attribute_listeners__"


class MutableAttributeSet(Mutable, AttributeSet):
    """Value set that flags its parent records as modified when it changes."""

    @classmethod
    def coerce(cls, key: str, value: Any) -> Any:
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, AttributeSet):
            return cls(value, original=value.original)
        return super().coerce(key, value)


class StoreColumnType(TypeDecorator):
    """Wraps a column's original type so values pass through a store adapter."""

    impl = JSON
    cache_ok = True

    def __init__(self, original: TypeEngine, adapter: StoreColumnAdapter) -> None:
        super().__init__()
        if isinstance(original, StoreColumnType):
            original = original.original
        self.original = original
        self.impl = original
        self.adapter = adapter

    def load_dialect_impl(self, dialect):
        return self.original

    def process_bind_param(self, value: Any, dialect):
        return self.adapter.serialize(value)

    def process_result_value(self, value: Any, dialect):
        return self.adapter.deserialize(value)

    @property
    def python_type(self) -> type[dict]:
        return dict


def _validate_before_flush(session: Session, flush_context: Any, instances: Any) -> None:
    if not get_settings().validate_on_flush:
        return
    for record in (*session.new, *session.dirty):
        if isinstance(record, ValidatesMixin):
            record.validate_or_raise()


def _refresh_originals(mapper: Mapper, connection: Any, target: Any) -> None:
    for column_name, binding in bindings_for(type(target)).items():
        values = target.__dict__.get(column_name)
        if isinstance(values, AttributeSet):
            values.original = copy.deepcopy(values.to_blob(binding.store))


class SQLAlchemyHost(BaseHost):
    """Host for declarative SQLAlchemy models."""

    value_set_class = MutableAttributeSet

    def metadata_available(self, model: type, column_name: str) -> bool:
        mapper = sa_inspect(model, raiseerr=False)
        return (
            isinstance(mapper, Mapper)
            and mapper.class_ is model
            and column_name in mapper.columns
        )

    def original_codec(self, model: type, column_name: str) -> PassthroughCodec:
        return PassthroughCodec()

    def install_adapter(
        self, model: type, column_name: str, adapter: StoreColumnAdapter
    ) -> None:
        column = sa_inspect(model).columns[column_name]
        column.type = StoreColumnType(column.type, adapter)
        self._install_listeners(model, column_name)
        if not event.contains(Session, "before_flush", _validate_before_flush):
            event.listen(Session, "before_flush", _validate_before_flush)

    def defer(self, model: type, column_name: str, finalize: Callable[[], None]) -> None:
        pending = True

        def finalize_when_configured(mapper: Mapper, cls: type) -> None:
            nonlocal pending
            if pending and cls is model:
                pending = False
                finalize()

        event.listen(model, "before_mapper_configured", finalize_when_configured, propagate=True)

    def _install_listeners(self, model: type, column_name: str) -> None:
        installed: frozenset[str] = getattr(model, _LISTENERS_ATTR, frozenset())
        if column_name in installed:
            return

        def cast_on_set(target: Any, value: Any, oldvalue: Any, initiator: Any) -> Any:
            binding = binding_for(type(target), column_name)
            if binding is None or binding.adapter is None:
                return value
            if isinstance(value, Mapping) and not isinstance(value, AttributeSet):
                return binding.adapter.cast(value)
            return value

        def init_value_set(target: Any, value: Any, dict_: dict[str, Any]) -> Any:
            binding = binding_for(type(target), column_name)
            if binding is None or binding.adapter is None:
                return value
            values = binding.adapter.cast({})
            dict_[column_name] = values
            values._parents[sa_inspect(target)] = column_name
            return values

        attribute = getattr(model, column_name)
        # Must run before Mutable's own "set" listener, which only accepts value sets.
        event.listen(attribute, "set", cast_on_set, retval=True, propagate=True)
        event.listen(attribute, "init_scalar", init_value_set, retval=True, propagate=True)
        MutableAttributeSet.associate_with_attribute(attribute)

        if not installed:
            event.listen(model, "after_insert", _refresh_originals, propagate=True)
            event.listen(model, "after_update", _refresh_originals, propagate=True)
        setattr(model, _LISTENERS_ATTR, installed | {column_name})


sqlalchemy_host = SQLAlchemyHost()


class SerializeAttributes(SerializedAttributesMixin, ValidatesMixin):
    """Mixin for declarative models with serialized attribute columns.

    Columns can also be declared in the class body; they are registered before
    the class is mapped and wrapped once its mapper is configured::

        class Order(SerializeAttributes, Base):
            __serialized_attributes__ = {"data": data_attributes}
    """

    __serialized_attributes_host__ = sqlalchemy_host

    def __init_subclass__(cls, **kwargs: Any) -> None:
        for column_name, builder in cls.__dict__.get("__serialized_attributes__", {}).items():
            cls.serialize_attributes(column_name, builder)
        super().__init_subclass__(**kwargs)

    def _serialized_column_changed(self, column_name: str) -> bool:
        if sa_inspect(self).attrs[column_name].history.has_changes():
            return True
        return super()._serialized_column_changed(column_name)
