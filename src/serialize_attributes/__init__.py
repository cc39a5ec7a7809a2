"""Typed attributes serialized together into one blob column."""

from .adapter import AttributeSet, PassthroughCodec, StoreColumnAdapter, TrackedList
from .exceptions import (
    AttributeCastError,
    ConfigurationError,
    FrozenStoreError,
    RecordInvalidError,
    SerializeAttributesError,
    UnknownAttributeError,
)
from .model import Host, SerializedAttributesMixin, register_column
from .primitives import PydanticType, TypeRegistry, default_registry
from .store import Store, StoreBuilder, build_store
from .types import CLEAR, UNSET, ArrayWrapper, AttributeType, EnumType, Primitive, Value
from .validation import Errors, InclusionWithOptionsValidator, ValidatesMixin

__all__ = [
    "CLEAR",
    "UNSET",
    "ArrayWrapper",
    "AttributeCastError",
    "AttributeSet",
    "AttributeType",
    "ConfigurationError",
    "EnumType",
    "Errors",
    "FrozenStoreError",
    "Host",
    "InclusionWithOptionsValidator",
    "PassthroughCodec",
    "Primitive",
    "PydanticType",
    "RecordInvalidError",
    "SerializeAttributesError",
    "SerializedAttributesMixin",
    "Store",
    "StoreBuilder",
    "StoreColumnAdapter",
    "TrackedList",
    "TypeRegistry",
    "UnknownAttributeError",
    "ValidatesMixin",
    "Value",
    "build_store",
    "default_registry",
    "register_column",
]
