"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Typed response decoding.

A response shape is anything ``pydantic.TypeAdapter`` accepts: models,
``list[Model]``, ``dict[str, int]``, ``Any`` and so on. ``bytes`` returns
the body untouched.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Type, TypeVar

from pydantic import PydanticUserError, TypeAdapter, ValidationError

from courier.exceptions import DecodeError

T = TypeVar("T")


@lru_cache(maxsize=256)
def _cached_adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


def _adapter_for(shape: Any) -> TypeAdapter:
    try:
        return _cached_adapter(shape)
    except TypeError:
        # Unhashable shapes (e.g. some Annotated metadata) skip the cache
        return TypeAdapter(shape)


def decode_error_from_validation(exc: ValidationError) -> DecodeError:
    """Summarise a pydantic validation error as a ``DecodeError``."""
    errors = exc.errors()
    if not errors:
        return DecodeError("decode_error", str(exc))

    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    description = f"{exc.title}: {first['msg']}"
    if location:
        description += f" at '{location}'"
    if len(errors) > 1:
        description += f" (+{len(errors) - 1} more)"
    return DecodeError(first["type"], description)


def decode_payload(raw: bytes, shape: Type[T]) -> T:
    """
    Decode a JSON response body into ``shape``.

    Args:
        raw: Response body
        shape: Expected type of the decoded value

    Returns:
        The decoded value

    Raises:
        DecodeError: If the body is not valid JSON, does not match ``shape``,
            or ``shape`` is not a type pydantic can decode into
    """
    if shape is bytes:
        return raw  # type: ignore[return-value]

    try:
        adapter = _adapter_for(shape)
    except PydanticUserError as exc:
        # No schema can be built for the shape (e.g. a plain class)
        raise DecodeError(exc.code or "schema_error", f"Cannot decode into {shape!r}: {exc.message}") from exc

    try:
        return adapter.validate_json(raw)
    except ValidationError as exc:
        raise decode_error_from_validation(exc) from exc
