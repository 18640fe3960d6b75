"""
routekit.tier1_runtime.serialize
─────────────────────────────────
Codecs converting typed values to and from JSON bodies. A codec is passed
explicitly at each route or call site, so the target type is always known
without runtime reflection.

Backed by pydantic v2 TypeAdapter: models, dataclasses, TypedDicts and
builtin types all work as codec targets.

Usage:
    codec = JsonCodec(Order)
    order = codec.decode(b'{"id": "o_1", "total": 12}')
    raw = codec.encode(order)
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Generic, Protocol, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError as PydanticValidationError

from routekit.tier0_core.errors import DecodeError

T = TypeVar("T")


class Codec(Protocol[T]):
    """Bidirectional converter between a typed value and its wire bytes."""

    def decode(self, data: bytes | str) -> T: ...

    def decode_stream(self, chunks: Iterable[bytes]) -> T: ...

    def encode(self, value: T) -> bytes: ...


class JsonCodec(Generic[T]):
    """JSON codec for a single target type."""

    def __init__(self, type_: type[T] | Any) -> None:
        self.type_ = type_
        self._adapter: TypeAdapter[T] = TypeAdapter(type_)

    def decode(self, data: bytes | str) -> T:
        """
        Decode ``data`` into the target type.
        Raises DecodeError on malformed JSON, missing fields or type mismatch.
        An empty body is malformed, never a default value.
        """
        try:
            return self._adapter.validate_json(data)
        except PydanticValidationError as exc:
            fields = {
                ".".join(str(loc) for loc in err["loc"]) or "body": err["msg"]
                for err in exc.errors()
            }
            raise DecodeError(
                user_message=f"Body does not match {_type_name(self.type_)}.",
                fields=fields,
            ) from exc

    def decode_stream(self, chunks: Iterable[bytes]) -> T:
        """Consume ``chunks`` to the end, then decode the collected body."""
        return self.decode(b"".join(chunks))

    def encode(self, value: T) -> bytes:
        return self._adapter.dump_json(value)

    def __repr__(self) -> str:
        return f"JsonCodec({_type_name(self.type_)})"


def _type_name(type_: Any) -> str:
    return getattr(type_, "__name__", repr(type_))


# ── Untyped helpers ────────────────────────────────────────────────────────

def serialize(obj: BaseModel | dict | list) -> bytes:
    """
    Serialize a Pydantic model, dict or list to JSON bytes.

    Usage:
        data = serialize(my_model)           # → b'{"id":"...",...}'
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump_json().encode()
    return JsonCodec(type(obj)).encode(obj)


def deserialize(data: bytes | str, model: type[T]) -> T:
    """
    Deserialize bytes/str into ``model``. Raises DecodeError on mismatch.

    Usage:
        order = deserialize(raw_bytes, Order)
    """
    return JsonCodec(model).decode(data)


__all__ = ["Codec", "JsonCodec", "serialize", "deserialize"]
