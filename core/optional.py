"""
Tri-state optional field for partial updates and filter queries.

An `OptionalField[T]` on a pydantic model tells apart three inputs:

- key absent             -> defined=False (the field default)
- key present with null  -> defined=True, value=None
- key present with value -> defined=True, value validated as T

Explicit null is always accepted by the decoder. When T itself does not
admit None, the null is rejected during validation with a field-level
"Cannot be null" error, so callers see it as a validation failure and not
as a malformed body.
"""

import types
from typing import Any, Generic, TypeVar, Union, get_args, get_origin

from pydantic_core import PydanticCustomError, core_schema

T = TypeVar("T")


def _admits_none(tp: Any) -> bool:
    """Whether the annotation accepts None (T | None, Optional[T], Any)."""
    if tp is Any or tp is None or tp is type(None):
        return True
    if get_origin(tp) in (Union, types.UnionType):
        return type(None) in get_args(tp)
    return False


class OptionalField(Generic[T]):
    """Wrapper that remembers whether its key was present in the input."""

    __slots__ = ("_value", "_defined")

    def __init__(self, value: T | None = None, defined: bool = False):
        self._value = value
        self._defined = defined

    @classmethod
    def undefined(cls) -> "OptionalField[T]":
        """Field whose key was absent."""
        return cls()

    @classmethod
    def of(cls, value: T) -> "OptionalField[T]":
        """Field whose key was present with the given value."""
        return cls(value, defined=True)

    @property
    def defined(self) -> bool:
        return self._defined

    @property
    def value(self) -> T | None:
        """The decoded value. None when undefined."""
        return self._value

    def value_or(self, fallback: T) -> T:
        """Return the decoded value if the key was present, else fallback."""
        if not self._defined:
            return fallback
        return self._value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OptionalField):
            return NotImplemented
        return self._defined == other._defined and self._value == other._value

    def __hash__(self) -> int:
        return hash((self._defined, self._value))

    def __repr__(self) -> str:
        if not self._defined:
            return "OptionalField.undefined()"
        return f"OptionalField.of({self._value!r})"

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler) -> core_schema.CoreSchema:
        args = get_args(source_type)
        inner_type = args[0] if args else Any
        nullable = _admits_none(inner_type)
        inner_schema = core_schema.nullable_schema(handler.generate_schema(inner_type))

        def validate(value: Any, inner) -> "OptionalField":
            if isinstance(value, OptionalField):
                return value
            if value is None:
                if not nullable:
                    raise PydanticCustomError("null_not_allowed", "Cannot be null")
                return cls(None, defined=True)
            return cls(inner(value), defined=True)

        return core_schema.no_info_wrap_validator_function(
            validate,
            inner_schema,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda field: field.value,
            ),
        )
