"""Wire format of requests and responses, encoded as MessagePack arrays.

A request travels as ``[request_id, service, method, data]`` and a response
as ``[request_id, status, error_message, data]``.  Missing strings and empty
payloads are sent as nil.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, List, Optional

import msgpack

from .errors import ErrorCode, InvalidParamError, RpcError

MAX_MESSAGE_SIZE = 4096
"""Largest encoded message, in bytes, that the encoder will produce."""

_FIELD_COUNT = 4
_UINT32_MASK = 0xFFFFFFFF
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_INT64_MAX = 2**63 - 1


class MessageType(enum.IntEnum):
    """Kind of RPC message."""

    REQUEST = 0
    RESPONSE = 1


@dataclass
class Request:
    """A call addressed to a service method."""

    request_id: int
    service: Optional[str] = None
    method: Optional[str] = None
    data: bytes = b""


@dataclass
class Response:
    """The answer to a request; ``raw`` keeps the bytes it was decoded from."""

    request_id: int
    status: int = ErrorCode.OK
    error_message: Optional[str] = None
    data: bytes = b""
    raw: bytes = field(default=b"", repr=False, compare=False)


def _check_text(value: Any, name: str) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    raise InvalidParamError(f"{name} must be a string or None")


def _check_payload(value: Any) -> Optional[bytes]:
    if value is None:
        return None
    try:
        payload = bytes(value)
    except TypeError as exc:
        raise InvalidParamError("data must be bytes-like") from exc
    return payload or None


def _check_uint32(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParamError(f"{name} must be an integer")
    if not 0 <= value <= _UINT32_MASK:
        raise InvalidParamError(f"{name} must fit in 32 unsigned bits")
    return value


def _pack(items: List[Any]) -> bytes:
    packed = msgpack.packb(items, use_bin_type=True)
    if len(packed) > MAX_MESSAGE_SIZE:
        raise RpcError(
            ErrorCode.ERROR,
            f"encoded message of {len(packed)} bytes exceeds {MAX_MESSAGE_SIZE}",
        )
    return packed


def _unpack(data: Any) -> List[Any]:
    if data is None:
        raise InvalidParamError("data is required")
    try:
        raw = bytes(data)
    except TypeError as exc:
        raise InvalidParamError("data must be bytes-like") from exc
    try:
        obj = msgpack.unpackb(
            raw, raw=False, strict_map_key=False, unicode_errors="replace"
        )
    except msgpack.ExtraData as exc:
        obj = exc.unpacked
    except (ValueError, msgpack.UnpackException) as exc:
        raise RpcError(ErrorCode.ERROR, f"malformed message: {exc}") from exc
    count = len(obj) if isinstance(obj, list) else 0
    if count < _FIELD_COUNT:
        raise RpcError(
            ErrorCode.ERROR,
            f"Invalid array format: expected {_FIELD_COUNT} elements, got {count}",
        )
    return obj


def _expect_uint(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise RpcError(ErrorCode.ERROR, "expected an unsigned integer")
    return value & _UINT32_MASK


def _expect_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value > _INT64_MAX:
        raise RpcError(ErrorCode.ERROR, "expected a signed integer")
    return ((value - _INT32_MIN) & _UINT32_MASK) + _INT32_MIN


def _expect_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise RpcError(ErrorCode.ERROR, "expected a string or nil")
    return value or None


def _expect_bin(value: Any) -> bytes:
    if value is None:
        return b""
    if not isinstance(value, bytes):
        raise RpcError(ErrorCode.ERROR, "expected binary data or nil")
    return value


def encode_request(request: Request) -> bytes:
    """Encode a request as a four-element MessagePack array."""
    if request is None:
        raise InvalidParamError("request is required")
    return _pack(
        [
            _check_uint32(request.request_id, "request_id"),
            _check_text(request.service, "service"),
            _check_text(request.method, "method"),
            _check_payload(request.data),
        ]
    )


def decode_request(data: bytes) -> Request:
    """Decode a request; elements past the fourth are ignored."""
    items = _unpack(data)
    return Request(
        request_id=_expect_uint(items[0]),
        service=_expect_text(items[1]),
        method=_expect_text(items[2]),
        data=_expect_bin(items[3]),
    )


def encode_response(response: Response) -> bytes:
    """Encode a response as a four-element MessagePack array."""
    if response is None:
        raise InvalidParamError("response is required")
    status = response.status
    if isinstance(status, bool) or not isinstance(status, int):
        raise InvalidParamError("status must be an integer")
    if not _INT32_MIN <= status <= _INT32_MAX:
        raise InvalidParamError("status must fit in 32 signed bits")
    return _pack(
        [
            _check_uint32(response.request_id, "request_id"),
            int(status),
            _check_text(response.error_message, "error_message"),
            _check_payload(response.data),
        ]
    )


def decode_response(data: bytes) -> Response:
    """Decode a response, keeping the original bytes in ``raw``."""
    items = _unpack(data)
    return Response(
        request_id=_expect_uint(items[0]),
        status=_expect_int(items[1]),
        error_message=_expect_text(items[2]),
        data=_expect_bin(items[3]),
        raw=bytes(data),
    )