"""Store registration, lookups and immutability."""

from __future__ import annotations

from decimal import Decimal

import pytest

from serialize_attributes.exceptions import (
    ConfigurationError,
    FrozenStoreError,
    UnknownAttributeError,
)
from serialize_attributes.primitives import PydanticType
from serialize_attributes.store import Store, StoreBuilder, build_store
from serialize_attributes.types import CLEAR, ArrayWrapper, EnumType, Value
from tests.models import MyModel


@pytest.fixture()
def store() -> Store:
    return MyModel.serialized_attributes_store("data")


def test_attribute_names_keep_registration_order(store: Store) -> None:
    assert store.attribute_names() == [
        "booly",
        "booly_default",
        "stringy",
        "timestamp",
        "listy",
        "listy_default",
        "listy_integer",
        "enumy",
        "decy",
        "shouty",
    ]


def test_attribute_names_filtered_by_array(store: Store) -> None:
    assert store.attribute_names(array=True) == ["listy", "listy_default", "listy_integer"]


def test_attribute_names_filtered_by_type_and_array(store: Store) -> None:
    assert store.attribute_names(type="string", array=True) == ["listy", "listy_default"]
    assert store.attribute_names(type="string", array=False) == ["stringy", "shouty"]
    assert store.attribute_names(type="boolean") == ["booly", "booly_default"]
    assert store.attribute_names(type="enum") == ["enumy"]


def test_attribute_names_filtered_by_class(store: Store) -> None:
    assert store.attribute_names(type=str) == ["stringy", "listy", "listy_default", "shouty"]
    assert store.attribute_names(type=EnumType) == ["enumy"]
    assert "booly" in store.attribute_names(type=PydanticType)


def test_cast_and_deserialize_delegate_to_the_attribute_type(store: Store) -> None:
    assert store.cast("booly", "1") is True
    assert store.deserialize("booly", "0") is False
    assert store.cast("decy", "0.42") == Decimal("0.42")
    assert store.serialize("decy", Decimal("0.42")) == "0.42"


def test_unknown_attribute_names_the_attribute_and_model(store: Store) -> None:
    with pytest.raises(UnknownAttributeError) as excinfo:
        store.deserialize("chunky_bacon", 0)

    assert str(excinfo.value) == (
        "The attribute chunky_bacon is not defined in serialize_attributes "
        "for the MyModel class."
    )
    assert excinfo.value.attribute == "chunky_bacon"
    assert excinfo.value.model is MyModel


def test_cast_assignment_separates_clear_from_values(store: Store) -> None:
    assert store.cast_assignment("listy", None) is CLEAR
    assert store.cast_assignment("stringy", None) == Value(None)
    assert store.cast_assignment("listy", "a") == Value(["a"])


def test_literal_defaults_are_copied(store: Store) -> None:
    first = store.default("listy_default")
    first.append("mutated")

    assert store.default("listy_default") == ["hello"]
    assert store.default("listy") == []
    assert store.default("booly_default") is True
    assert store.default("stringy") is None


def test_deferred_defaults_receive_the_context(store: Store) -> None:
    class Context:
        stringy = "quiet"

    assert store.has_deferred_default("shouty") is True
    assert store.has_deferred_default("booly_default") is False
    assert store.default("shouty", Context()) == "QUIET"


def test_deferred_defaults_fall_back_to_the_store() -> None:
    def builder(attrs: StoreBuilder) -> None:
        attrs.attribute("where", "string", default=lambda context: context.column_name)

    store = build_store(MyModel, "elsewhere", builder)

    assert store.default("where") == "elsewhere"


def test_enum_options(store: Store) -> None:
    assert store.enum_options("enumy") == (None, "placed", "confirmed")

    with pytest.raises(ConfigurationError) as excinfo:
        store.enum_options("booly")

    assert str(excinfo.value) == "`booly` attribute is not an enum type"


def test_array_flags(store: Store) -> None:
    assert store.is_array("listy") is True
    assert store.is_array("stringy") is False
    assert isinstance(store.attribute_type("listy_integer"), ArrayWrapper)


def test_enum_and_array_together_is_rejected() -> None:
    def builder(attrs: StoreBuilder) -> None:
        attrs.attribute("foo", "enum", of=[1, 2, 3], array=True)

    with pytest.raises(ConfigurationError) as excinfo:
        build_store(MyModel, "settings", builder)

    assert str(excinfo.value) == "Enum-arrays not currently supported"


def test_redefining_an_attribute_overwrites_it_and_its_default() -> None:
    def builder(attrs: StoreBuilder) -> None:
        attrs.attribute("size", "string", default="small")
        attrs.attribute("other", "boolean")
        attrs.attribute("size", "integer")

    store = build_store(MyModel, "settings", builder)

    assert store.attribute_names() == ["size", "other"]
    assert store.cast("size", "3") == 3
    assert store.default("size") is None


def test_attribute_may_not_shadow_its_column() -> None:
    def builder(attrs: StoreBuilder) -> None:
        attrs.attribute("settings", "string")

    with pytest.raises(ConfigurationError, match="clashes with the column"):
        build_store(MyModel, "settings", builder)


def test_store_is_immutable_once_built(store: Store) -> None:
    with pytest.raises(FrozenStoreError):
        store.attribute_types = {}
    with pytest.raises(FrozenStoreError):
        store.model_class = "value"
    with pytest.raises(FrozenStoreError):
        del store.defaults
    with pytest.raises(TypeError):
        store.attribute_types["foo"] = None  # type: ignore[index]
    with pytest.raises(AttributeError):
        store.attribute("foo", "string")  # type: ignore[attr-defined]


def test_captured_builder_cannot_register_late() -> None:
    captured: list[StoreBuilder] = []

    def builder(attrs: StoreBuilder) -> None:
        captured.append(attrs)
        attrs.attribute("first", "string")

    store = build_store(MyModel, "settings", builder)

    with pytest.raises(FrozenStoreError):
        captured[0].attribute("second", "string")
    assert "second" not in store
