"""Descriptor accessors: getters, setters, predicates and their installation."""

from __future__ import annotations

import pytest

from serialize_attributes.accessors import (
    SerializedAttribute,
    SerializedPredicate,
    install_accessors,
    is_present,
    predicate_name,
    uninstall_accessors,
)
from serialize_attributes.adapter import AttributeSet
from serialize_attributes.settings import reload_settings
from serialize_attributes.store import StoreBuilder, build_store


class Record:
    def __init__(self, data=None) -> None:
        self.data = data


def scenario_builder(attrs: StoreBuilder) -> None:
    attrs.attribute("flag", "boolean", default=False)
    attrs.attribute("tags", "string", array=True, default=[])
    attrs.attribute("labels", "string", array=True, default=["new"])
    attrs.attribute("status", "enum", of=[None, "placed", "confirmed"])
    attrs.attribute("title", "string")
    attrs.attribute(
        "slug", "string", default=lambda record: ((record.data or {}).get("title") or "").lower()
    )


@pytest.fixture()
def accessors():
    store = build_store(Record, "data", scenario_builder)
    return store.accessors


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, False),
        (False, False),
        ("", False),
        ("  ", False),
        ("x", True),
        (0, False),
        ([], False),
        (True, True),
    ],
)
def test_is_present(value, expected) -> None:
    assert is_present(value) is expected


def test_getter_reads_defaults_without_inserting_keys(accessors) -> None:
    record = Record({})

    assert accessors["flag"].get(record) is False
    assert accessors["tags"].get(record) == []
    assert accessors["status"].get(record) is None
    assert record.data == {}


def test_getter_reads_a_missing_blob_as_defaults(accessors) -> None:
    record = Record(None)

    assert accessors["labels"].get(record) == ["new"]
    assert record.data is None


def test_getter_resolves_deferred_defaults_with_the_record(accessors) -> None:
    record = Record(AttributeSet({"title": "Hello"}))

    assert accessors["slug"].get(record) == "hello"
    assert "slug" not in record.data


def test_setter_writes_a_new_value_set(accessors) -> None:
    before = AttributeSet({"flag": False}, original={"flag": False})
    record = Record(before)

    accessors["flag"].set(record, "true")

    assert record.data is not before
    assert record.data["flag"] is True
    assert record.data.original == {"flag": False}
    assert before["flag"] is False


def test_clearing_an_array_falls_back_to_its_default(accessors) -> None:
    record = Record({})

    accessors["labels"].set(record, ["a", "b"])
    assert accessors["labels"].get(record) == ["a", "b"]

    accessors["labels"].set(record, None)

    assert "labels" not in record.data
    assert accessors["labels"].get(record) == ["new"]


def test_setting_none_on_a_scalar_stores_none(accessors) -> None:
    record = Record({})

    accessors["title"].set(record, None)

    assert record.data["title"] is None


def test_scenario_reads_and_writes(accessors) -> None:
    record = Record({})

    assert accessors["flag"].get(record) is False
    assert accessors["tags"].get(record) == []
    assert accessors["status"].get(record) is None

    accessors["tags"].set(record, ["a", "b"])
    assert accessors["tags"].get(record) == ["a", "b"]

    accessors["tags"].set(record, None)
    assert accessors["tags"].get(record) == []


def test_predicates(accessors) -> None:
    record = Record({})

    assert accessors["title"].predicate(record) is False
    accessors["title"].set(record, "  ")
    assert accessors["title"].predicate(record) is False
    accessors["title"].set(record, "Hi")
    assert accessors["title"].predicate(record) is True
    assert accessors["tags"].has_predicate is False


def test_install_and_uninstall_descriptors() -> None:
    class Host:
        def __init__(self) -> None:
            self.data = {}

    store = build_store(Host, "data", scenario_builder)
    installed = install_accessors(Host, store)

    assert "is_flag" in installed
    assert "is_tags" not in installed
    assert isinstance(Host.__dict__["flag"], SerializedAttribute)
    assert isinstance(Host.__dict__["is_flag"], SerializedPredicate)

    record = Host()
    record.flag = "1"
    assert record.flag is True
    assert record.is_flag is True
    with pytest.raises(AttributeError, match="read-only"):
        record.is_flag = False

    uninstall_accessors(Host, installed)

    assert "flag" not in Host.__dict__
    assert "is_flag" not in Host.__dict__


def test_predicate_name_follows_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    assert predicate_name("flag") == "is_flag"

    monkeypatch.setenv("SERIALIZE_ATTRIBUTES_PREDICATE_NAME_TEMPLATE", "has_{name}")
    reload_settings()

    assert predicate_name("flag") == "has_flag"
