"""Wire format of requests and responses, packed with MessagePack."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import msgpack

from uvrpc.errors import InvalidParamError, Status

_MAX_ID = 2**64 - 1


def _check_id(request_id: Any) -> int:
    if isinstance(request_id, bool) or not isinstance(request_id, int):
        raise InvalidParamError(f"request id must be an integer, got {request_id!r}")
    if not 0 <= request_id <= _MAX_ID:
        raise InvalidParamError(f"request id {request_id} is out of range")
    return request_id


def _as_bytes(payload: Any) -> bytes:
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    raise InvalidParamError(f"payload must be bytes, got {type(payload).__name__}")


@dataclass(frozen=True)
class Request:
    """A call of one method of one service."""

    service_name: str
    method_name: str = ""
    payload: bytes = b""
    request_id: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.service_name, str) or not self.service_name:
            raise InvalidParamError("service name must be a non-empty string")
        if not isinstance(self.method_name, str):
            raise InvalidParamError("method name must be a string")
        _check_id(self.request_id)
        object.__setattr__(self, "payload", _as_bytes(self.payload))


@dataclass(frozen=True)
class Response:
    """The answer to the request with the same id."""

    request_id: int
    status: Status = Status.OK
    payload: bytes = b""

    def __post_init__(self) -> None:
        _check_id(self.request_id)
        if isinstance(self.status, bool) or not isinstance(self.status, int):
            raise InvalidParamError(f"status must be an integer, got {self.status!r}")
        try:
            status = Status(self.status)
        except ValueError:
            raise InvalidParamError(f"unknown status {self.status}") from None
        object.__setattr__(self, "status", status)
        object.__setattr__(self, "payload", _as_bytes(self.payload))


def _unpack(data: bytes, arity: int, what: str) -> list[Any]:
    try:
        items = msgpack.unpackb(bytes(data), raw=False, use_list=True)
    except (ValueError, TypeError, msgpack.UnpackException) as exc:
        raise InvalidParamError(f"malformed {what}: {exc}") from None
    if not isinstance(items, list) or len(items) != arity:
        raise InvalidParamError(f"malformed {what}: expected an array of {arity}")
    return items


def encode_request(request: Request) -> bytes:
    """Pack a request as [request_id, service, method, payload]."""
    return msgpack.packb(
        [request.request_id, request.service_name, request.method_name, request.payload],
        use_bin_type=True,
    )


def decode_request(data: bytes) -> Request:
    """Unpack a request; raise InvalidParamError on anything malformed."""
    request_id, service, method, payload = _unpack(data, 4, "request")
    if not isinstance(payload, bytes):
        raise InvalidParamError("malformed request: payload is not binary")
    return Request(service_name=service, method_name=method, payload=payload, request_id=request_id)


def encode_response(response: Response) -> bytes:
    """Pack a response as [request_id, status, payload]."""
    return msgpack.packb(
        [response.request_id, int(response.status), response.payload],
        use_bin_type=True,
    )


def decode_response(data: bytes) -> Response:
    """Unpack a response; raise InvalidParamError on anything malformed."""
    request_id, status, payload = _unpack(data, 3, "response")
    if not isinstance(payload, bytes):
        raise InvalidParamError("malformed response: payload is not binary")
    return Response(request_id=request_id, status=status, payload=payload)