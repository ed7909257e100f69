"""Status codes and the exceptions that stand for them."""

from __future__ import annotations

from enum import IntEnum


class Status(IntEnum):
    """Status codes carried in responses and reported by calls."""

    OK = 0
    ERROR = -1
    INVALID_PARAM = -2
    NO_MEMORY = -3
    SERVICE_NOT_FOUND = -4
    TIMEOUT = -5


class RpcError(Exception):
    """Base class of every error the RPC layer raises."""

    status: int = Status.ERROR

    def __init__(self, message: str = "", *, status: int | None = None) -> None:
        if status is not None:
            self.status = status
        if not message:
            message = _default_message(self.status)
        super().__init__(message)
        self.message = message


class InvalidParamError(RpcError, ValueError):
    """An argument, configuration value or wire message is not acceptable."""

    status = Status.INVALID_PARAM


class NoMemoryError(RpcError):
    """A resource needed for the call could not be obtained."""

    status = Status.NO_MEMORY


class ServiceNotFoundError(RpcError, LookupError):
    """The server has no handler registered under the requested name."""

    status = Status.SERVICE_NOT_FOUND


class RpcTimeoutError(RpcError, TimeoutError):
    """No response arrived within the allowed time."""

    status = Status.TIMEOUT


_BY_STATUS: dict[Status, type[RpcError]] = {
    Status.ERROR: RpcError,
    Status.INVALID_PARAM: InvalidParamError,
    Status.NO_MEMORY: NoMemoryError,
    Status.SERVICE_NOT_FOUND: ServiceNotFoundError,
    Status.TIMEOUT: RpcTimeoutError,
}


def _default_message(status: int) -> str:
    try:
        known = Status(status)
    except ValueError:
        return f"status {status}"
    return f"{known.name} ({int(known)})"


def error_for_status(status: int, message: str = "") -> RpcError:
    """Return the exception that matches a non-OK status code."""
    if status == Status.OK:
        raise ValueError("status OK does not describe an error")
    try:
        known = Status(status)
    except ValueError:
        return RpcError(message, status=int(status))
    return _BY_STATUS[known](message)