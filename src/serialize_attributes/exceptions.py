"""Exceptions raised while registering, casting and validating serialized attributes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .validation import Errors


class SerializeAttributesError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(SerializeAttributesError, ValueError):
    """Raised when a store or attribute is declared in a way that cannot work."""


class UnknownAttributeError(SerializeAttributesError, LookupError):
    """Raised when a store is asked about an attribute it never registered."""

    def __init__(self, attribute: str, model: type) -> None:
        super().__init__(
            f"The attribute {attribute} is not defined in serialize_attributes "
            f"for the {model.__name__} class."
        )
        self.attribute = attribute
        self.model = model


class FrozenStoreError(SerializeAttributesError, AttributeError):
    """Raised when a store (or its builder) is mutated after it was frozen."""


class AttributeCastError(SerializeAttributesError, ValueError):
    """Raised when a primitive type cannot coerce the given value."""

    def __init__(self, type_name: str, value: Any, detail: str | None = None) -> None:
        message = f"Cannot cast {value!r} to {type_name}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.type_name = type_name
        self.value = value


class RecordInvalidError(SerializeAttributesError):
    """Raised by ``validate_or_raise`` when a record has validation errors."""

    def __init__(self, record: Any, errors: Errors) -> None:
        super().__init__(
            f"Validation failed for {type(record).__name__}: "
            + "; ".join(errors.full_messages())
        )
        self.record = record
        self.errors = errors


__all__ = [
    "AttributeCastError",
    "ConfigurationError",
    "FrozenStoreError",
    "RecordInvalidError",
    "SerializeAttributesError",
    "UnknownAttributeError",
]
