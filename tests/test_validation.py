"""Error accumulation and the enum inclusion validator."""

from __future__ import annotations

import pytest

from serialize_attributes.exceptions import RecordInvalidError
from serialize_attributes.settings import reload_settings
from serialize_attributes.validation import (
    Errors,
    InclusionWithOptionsValidator,
    ValidatesMixin,
    attach_validation,
    detach_validation,
    humanize,
    humanize_options,
    validators_for,
)


class Shipment(ValidatesMixin):
    def __init__(self, status=None, carrier=None) -> None:
        self.status = status
        self.carrier = carrier


attach_validation(Shipment, InclusionWithOptionsValidator("status", (None, "placed", "confirmed")))


def test_humanize() -> None:
    assert humanize("booly_default") == "Booly default"
    assert humanize("enumy") == "Enumy"


def test_humanize_options_renders_none_with_the_placeholder() -> None:
    assert humanize_options([None, "placed", "confirmed"]) == "(null), placed, confirmed"


def test_errors_collection() -> None:
    errors = Errors()
    errors.add("status", "is bad")
    errors.add("status", "is worse")
    errors.add("carrier", "is missing")

    assert len(errors) == 3
    assert bool(errors) is True
    assert errors["status"] == ["is bad", "is worse"]
    assert errors["unknown"] == []
    assert errors.messages == {"status": ["is bad", "is worse"], "carrier": ["is missing"]}
    assert errors.full_messages() == ["Status is bad", "Status is worse", "Carrier is missing"]

    errors.clear()
    assert not errors


def test_valid_values_pass() -> None:
    assert Shipment("placed").is_valid() is True
    assert Shipment(None).is_valid() is True


def test_invalid_values_list_every_option() -> None:
    shipment = Shipment("unknown")

    assert shipment.validate() is False
    assert shipment.errors.full_messages() == [
        "Status unknown is not one of (null), placed, confirmed"
    ]
    detail = next(iter(shipment.errors))
    assert detail.type == "inclusion_with_options"
    assert detail.value == "unknown"
    assert detail.options == "(null), placed, confirmed"


def test_validate_replaces_previous_errors() -> None:
    shipment = Shipment("unknown")
    shipment.validate()

    shipment.status = "confirmed"

    assert shipment.is_valid() is True
    assert not shipment.errors


def test_validate_or_raise() -> None:
    shipment = Shipment("lost")

    with pytest.raises(RecordInvalidError) as excinfo:
        shipment.validate_or_raise()

    assert excinfo.value.record is shipment
    assert "Status lost is not one of (null), placed, confirmed" in str(excinfo.value)


def test_messages_follow_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SERIALIZE_ATTRIBUTES_NULL_PLACEHOLDER", "nothing")
    monkeypatch.setenv("SERIALIZE_ATTRIBUTES_OPTIONS_SEPARATOR", " | ")
    monkeypatch.setenv("SERIALIZE_ATTRIBUTES_INCLUSION_MESSAGE", "must be {options}, got {value}")
    reload_settings()

    shipment = Shipment("lost")
    shipment.validate()

    assert shipment.errors["status"] == ["must be nothing | placed | confirmed, got lost"]


def test_subclasses_extend_without_touching_parents() -> None:
    class TrackedShipment(Shipment):
        pass

    attach_validation(TrackedShipment, InclusionWithOptionsValidator("carrier", ("ups",)))

    assert set(validators_for(TrackedShipment)) == {"status", "carrier"}
    assert set(validators_for(Shipment)) == {"status"}

    detach_validation(TrackedShipment, "status")

    assert set(validators_for(TrackedShipment)) == {"carrier"}
    assert set(validators_for(Shipment)) == {"status"}
    assert TrackedShipment("lost", "ups").is_valid() is True
