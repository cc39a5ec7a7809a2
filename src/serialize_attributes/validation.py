"""Record validation: error accumulation and the enum inclusion validator."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from .exceptions import RecordInvalidError
from .logging import log_context
from .settings import get_settings

logger = logging.getLogger(__name__)

_VALIDATORS_ATTR = "__serialized_attribute_validators__"
_ERRORS_ATTR = "_serialized_attribute_errors"


class Validator(Protocol):
    attribute: str

    def validate(self, record: Any) -> None: ...


@dataclass(frozen=True, slots=True)
class ErrorDetail:
    attribute: str
    message: str
    type: str = "invalid"
    value: Any = None
    options: str | None = None


def humanize(attribute: str) -> str:
    """``"booly_default"`` → ``"Booly default"``."""
    text = attribute.replace("_", " ").strip()
    return text[:1].upper() + text[1:]


def humanize_options(options: Iterable[Any]) -> str:
    settings = get_settings()
    return settings.options_separator.join(
        settings.null_placeholder if option is None else str(option) for option in options
    )


class Errors:
    """Ordered collection of validation errors for one record."""

    def __init__(self) -> None:
        self._details: list[ErrorDetail] = []

    def add(self, attribute: str, message: str, **details: Any) -> ErrorDetail:
        detail = ErrorDetail(attribute=attribute, message=message, **details)
        self._details.append(detail)
        return detail

    def clear(self) -> None:
        self._details.clear()

    @property
    def details(self) -> list[ErrorDetail]:
        return list(self._details)

    @property
    def messages(self) -> dict[str, list[str]]:
        grouped: dict[str, list[str]] = {}
        for detail in self._details:
            grouped.setdefault(detail.attribute, []).append(detail.message)
        return grouped

    def full_messages(self) -> list[str]:
        return [f"{humanize(detail.attribute)} {detail.message}" for detail in self._details]

    def __getitem__(self, attribute: str) -> list[str]:
        return [detail.message for detail in self._details if detail.attribute == attribute]

    def __iter__(self) -> Iterator[ErrorDetail]:
        return iter(self._details)

    def __len__(self) -> int:
        return len(self._details)

    def __bool__(self) -> bool:
        return bool(self._details)

    def __repr__(self) -> str:
        return f"<Errors {self.full_messages()!r}>"


@dataclass(frozen=True, slots=True)
class InclusionWithOptionsValidator:
    """Inclusion check whose message lists every permitted option.

        record.status = "bogus"
        record.validate()
        record.errors.full_messages()
        => ["Status bogus is not one of (null), placed, confirmed"]
    """

    attribute: str
    options: Sequence[Any] = field(default_factory=tuple)

    def validate(self, record: Any) -> None:
        value = getattr(record, self.attribute)
        if value in self.options:
            return

        settings = get_settings()
        humanised_options = humanize_options(self.options)
        rendered_value = settings.null_placeholder if value is None else value
        record.errors.add(
            self.attribute,
            settings.inclusion_message.format(value=rendered_value, options=humanised_options),
            type="inclusion_with_options",
            value=value,
            options=humanised_options,
        )


def validators_for(model: type) -> dict[str, list[Validator]]:
    return getattr(model, _VALIDATORS_ATTR, {})


def attach_validation(model: type, validator: Validator) -> None:
    """Register ``validator`` on ``model``; subclasses inherit but never mutate parents."""
    own = dict(validators_for(model))
    own[validator.attribute] = [*own.get(validator.attribute, []), validator]
    setattr(model, _VALIDATORS_ATTR, own)


def detach_validation(model: type, attribute: str) -> None:
    own = dict(validators_for(model))
    if own.pop(attribute, None) is not None:
        setattr(model, _VALIDATORS_ATTR, own)


class ValidatesMixin:
    """Accumulating validation for records with serialized attributes."""

    @property
    def errors(self) -> Errors:
        errors = self.__dict__.get(_ERRORS_ATTR)
        if errors is None:
            errors = Errors()
            self.__dict__[_ERRORS_ATTR] = errors
        return errors

    def validate(self) -> bool:
        """Run every attached validator, replacing previous errors. Returns validity."""
        errors = self.errors
        errors.clear()
        for validators in validators_for(type(self)).values():
            for validator in validators:
                validator.validate(self)
        if errors:
            logger.debug(
                "serialize_attributes.validation.failed",
                extra=log_context(model=type(self), errors=errors.full_messages()),
            )
        return not errors

    def is_valid(self) -> bool:
        return self.validate()

    def validate_or_raise(self) -> None:
        if not self.validate():
            raise RecordInvalidError(self, self.errors)


__all__ = [
    "ErrorDetail",
    "Errors",
    "InclusionWithOptionsValidator",
    "ValidatesMixin",
    "Validator",
    "attach_validation",
    "detach_validation",
    "humanize",
    "humanize_options",
    "validators_for",
]
