"""Primitive type implementations and the identifier resolver.

Primitive casting is delegated to pydantic ``TypeAdapter`` instances running
in lax mode, which gives the familiar ORM coercions (``"t"`` → ``True``,
``"12"`` → ``12``, ISO strings → ``datetime``) and a JSON-safe
``serialize`` for free. Identifiers are resolved through a
:class:`TypeRegistry`; :data:`default_registry` holds the built-in types and is
used whenever a registration does not inject its own registry.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime, time
from decimal import Decimal
from typing import Annotated, Any, Optional
from uuid import UUID

from pydantic import ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError

from .exceptions import AttributeCastError, ConfigurationError
from .types import AttributeType, EnumType, Primitive, TypeImplementation

TypeFactory = Callable[..., AttributeType]


class PydanticType:
    """Primitive type implementation backed by a pydantic ``TypeAdapter``."""

    def __init__(
        self,
        type_name: str,
        annotation: Any,
        *,
        blank_as_none: bool = True,
        config: ConfigDict | None = None,
    ) -> None:
        self.type_name = type_name
        self.annotation = annotation
        self.blank_as_none = blank_as_none
        try:
            self._adapter = TypeAdapter(Optional[annotation], config=config)  # noqa: UP007
        except PydanticSchemaGenerationError as exc:
            raise ConfigurationError(
                f"{annotation!r} cannot be used as an attribute type"
            ) from exc

    def cast(self, value: Any) -> Any:
        if value is None:
            return None
        if self.blank_as_none and isinstance(value, str) and not value.strip():
            return None
        try:
            return self._adapter.validate_python(value)
        except ValidationError as exc:
            errors = exc.errors()
            detail = errors[0]["msg"] if errors else None
            raise AttributeCastError(self.type_name, value, detail) from exc

    def deserialize(self, value: Any) -> Any:
        return self.cast(value)

    def serialize(self, value: Any) -> Any:
        if value is None:
            return None
        return self._adapter.dump_python(self.cast(value), mode="json")

    def changed_in_place(self, raw_old_value: Any, new_value: Any) -> bool:
        return raw_old_value != self.serialize(new_value)

    def __repr__(self) -> str:
        return f"PydanticType({self.type_name})"


class ValueType:
    """Untyped values: stored and returned exactly as given."""

    type_name = "value"

    def cast(self, value: Any) -> Any:
        return value

    def deserialize(self, value: Any) -> Any:
        return value

    def serialize(self, value: Any) -> Any:
        return value

    def changed_in_place(self, raw_old_value: Any, new_value: Any) -> bool:
        return raw_old_value != new_value


def _primitive_factory(
    type_name: str,
    python_type: Any,
    *,
    option_fields: Mapping[str, str] | None = None,
    blank_as_none: bool = True,
    config: ConfigDict | None = None,
) -> TypeFactory:
    """Build a factory whose options map onto pydantic ``Field`` constraints."""
    option_fields = dict(option_fields or {})

    def factory(**options: Any) -> AttributeType:
        unknown = sorted(set(options) - set(option_fields))
        if unknown:
            raise ConfigurationError(
                f"Unknown option(s) {', '.join(unknown)} for attribute type {type_name!r}"
            )
        constraints = {
            option_fields[key]: value for key, value in options.items() if value is not None
        }
        annotation = (
            Annotated[python_type, Field(**constraints)] if constraints else python_type
        )
        impl = PydanticType(
            type_name, annotation, blank_as_none=blank_as_none, config=config
        )
        return Primitive(impl)

    return factory


def _value_factory(**options: Any) -> AttributeType:
    if options:
        raise ConfigurationError(
            f"Unknown option(s) {', '.join(sorted(options))} for attribute type 'value'"
        )
    return Primitive(ValueType())


_PYTHON_TYPE_NAMES: dict[type, str] = {
    bool: "boolean",
    str: "string",
    int: "integer",
    float: "float",
    Decimal: "decimal",
    datetime: "datetime",
    date: "date",
    time: "time",
    UUID: "uuid",
}


class TypeRegistry:
    """Resolves type identifiers (``"boolean"``, ``"enum"``, ...) to attribute types.

    Registries are plain objects: build a fresh one (or ``copy()`` the
    default) and pass it to ``serialize_attributes(..., registry=...)`` to add
    project-specific types without touching global state.
    """

    def __init__(self, *, builtins: bool = True) -> None:
        self._factories: dict[str, TypeFactory] = {}
        if builtins:
            self._register_builtins()

    def register(self, name: str, factory: TypeFactory, *, override: bool = False) -> None:
        if name in self._factories and not override:
            raise ConfigurationError(f"Attribute type {name!r} is already registered")
        self._factories[name] = factory

    def lookup(self, name: str, **options: Any) -> AttributeType:
        try:
            factory = self._factories[name]
        except KeyError:
            raise ConfigurationError(f"Unknown attribute type {name!r}") from None
        return factory(**options)

    def resolve(self, type_: Any, **options: Any) -> AttributeType:
        """Resolve an identifier, Python class, type implementation or attribute type."""
        if isinstance(type_, str):
            return self.lookup(type_, **options)
        if options:
            raise ConfigurationError(
                f"Type options ({', '.join(sorted(options))}) require a type identifier"
            )
        if isinstance(type_, AttributeType):
            return type_
        if isinstance(type_, type):
            return self.for_python_type(type_)
        if isinstance(type_, TypeImplementation):
            return Primitive(type_)
        raise ConfigurationError(f"{type_!r} cannot be used as an attribute type")

    def for_python_type(self, python_type: type) -> AttributeType:
        name = _PYTHON_TYPE_NAMES.get(python_type)
        if name is not None and name in self._factories:
            return self.lookup(name)
        return Primitive(PydanticType(python_type.__name__, python_type))

    def names(self) -> list[str]:
        return list(self._factories)

    def copy(self) -> TypeRegistry:
        clone = TypeRegistry(builtins=False)
        clone._factories = dict(self._factories)
        clone._factories["enum"] = clone._build_enum
        return clone

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def _build_enum(self, *, of: Iterable[Any] = (), type: Any = None) -> EnumType:  # noqa: A002
        inner = None if type is None else self.resolve(type)
        return EnumType(of, inner=inner)

    def _register_builtins(self) -> None:
        self._factories.update(
            {
                "value": _value_factory,
                "boolean": _primitive_factory("boolean", bool),
                "string": _primitive_factory(
                    "string",
                    str,
                    option_fields={"limit": "max_length"},
                    blank_as_none=False,
                    config=ConfigDict(coerce_numbers_to_str=True),
                ),
                "integer": _primitive_factory(
                    "integer", int, option_fields={"minimum": "ge", "maximum": "le"}
                ),
                "big_integer": _primitive_factory("big_integer", int),
                "float": _primitive_factory("float", float),
                "decimal": _primitive_factory(
                    "decimal",
                    Decimal,
                    option_fields={"precision": "max_digits", "scale": "decimal_places"},
                ),
                "date": _primitive_factory("date", date),
                "datetime": _primitive_factory("datetime", datetime),
                "time": _primitive_factory("time", time),
                "uuid": _primitive_factory("uuid", UUID),
                "enum": self._build_enum,
            }
        )


default_registry = TypeRegistry()


__all__ = [
    "PydanticType",
    "TypeRegistry",
    "ValueType",
    "default_registry",
]
