"""Plain host: serialized attributes on ordinary Python classes.

A class declares its blob columns with :class:`RawColumn`; the column's codec
decides what the stored form looks like::

    class Person(AttributeModel):
        settings = RawColumn(JsonTextCodec(), default=dict)

    @Person.serialize_attributes("settings")
    def settings_store(attrs):
        attrs.attribute("user_name", "string")
        attrs.attribute("height", "decimal")

    person = Person(user_name="Nick")
    person.serialized_column("settings")
    => '{"user_name": "Nick", "height": null}'
"""

from __future__ import annotations

import copy
import json
from collections.abc import Callable
from typing import Any

from .adapter import ColumnCodec, PassthroughCodec, StoreColumnAdapter
from .exceptions import ConfigurationError
from .model import BaseHost, SerializedAttributesMixin
from .validation import ValidatesMixin

__all__ = [
    "AttributeModel",
    "JsonTextCodec",
    "PlainHost",
    "RawColumn",
    "plain_host",
]


class JsonTextCodec:
    """Stores the blob as JSON text."""

    def __init__(self, **dumps_options: Any) -> None:
        self.dumps_options = dumps_options

    def cast(self, value: Any) -> Any:
        return self.deserialize(value)

    def deserialize(self, value: Any) -> Any:
        if isinstance(value, (str, bytes, bytearray)):
            return json.loads(value) if value.strip() else None
        return value

    def serialize(self, value: Any) -> Any:
        if value is None:
            return None
        return json.dumps(value, **self.dumps_options)

    def changed_in_place(self, raw_old_value: Any, new_value: Any) -> bool:
        return self.deserialize(raw_old_value) != new_value


class RawColumn:
    """Descriptor holding one blob column on a plain object.

    ``default`` is copied into each new :class:`AttributeModel`; a callable
    default is called instead. Every assignment passes through the column
    codec's ``cast``.
    """

    def __init__(self, codec: ColumnCodec | None = None, default: Any = None) -> None:
        self.codec: ColumnCodec = codec or PassthroughCodec()
        self.original: ColumnCodec = self.codec
        self.default = default
        self.name: str | None = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return instance.__dict__.get(self.name)

    def __set__(self, instance: Any, value: Any) -> None:
        instance.__dict__[self.name] = self.codec.cast(value)

    def initial_value(self) -> Any:
        if callable(self.default):
            return self.default()
        return copy.deepcopy(self.default)

    def with_codec(self, codec: ColumnCodec) -> RawColumn:
        """Return a copy of this column reading and writing through ``codec``."""
        clone = RawColumn(codec, self.default)
        clone.original = self.original
        clone.name = self.name
        return clone

    def __repr__(self) -> str:
        return f"<RawColumn {self.name} codec={type(self.codec).__name__}>"


def raw_columns(model: type) -> dict[str, RawColumn]:
    columns: dict[str, RawColumn] = {}
    for klass in reversed(model.__mro__):
        for name, value in vars(klass).items():
            if isinstance(value, RawColumn):
                columns[name] = value
    return columns


class PlainHost(BaseHost):
    """Host for classes that declare their blob columns with :class:`RawColumn`."""

    def metadata_available(self, model: type, column_name: str) -> bool:
        return column_name in raw_columns(model)

    def original_codec(self, model: type, column_name: str) -> ColumnCodec:
        return raw_columns(model)[column_name].original

    def install_adapter(
        self, model: type, column_name: str, adapter: StoreColumnAdapter
    ) -> None:
        column = raw_columns(model)[column_name]
        setattr(model, column_name, column.with_codec(adapter))

    def defer(self, model: type, column_name: str, finalize: Callable[[], None]) -> None:
        raise ConfigurationError(
            f"{model.__name__} has no raw column {column_name!r}; "
            "declare it with RawColumn before serializing attributes into it"
        )


plain_host = PlainHost()


class AttributeModel(SerializedAttributesMixin, ValidatesMixin):
    """Base class for plain objects with serialized attribute columns."""

    __serialized_attributes_host__ = plain_host

    def __init__(self, **kwargs: Any) -> None:
        for name, column in raw_columns(type(self)).items():
            setattr(self, name, column.initial_value())
        for name, value in kwargs.items():
            setattr(self, name, value)

    def serialized_column(self, column_name: str) -> Any:
        """The blob as the column's codec would store it."""
        column = raw_columns(type(self))[column_name]
        return column.codec.serialize(getattr(self, column_name))

    def __repr__(self) -> str:
        columns = ", ".join(
            f"{name}={getattr(self, name)!r}" for name in raw_columns(type(self))
        )
        return f"{type(self).__name__}({columns})"
