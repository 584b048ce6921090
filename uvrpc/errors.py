"""Error codes, exceptions and descriptive names."""

from __future__ import annotations

import enum
from typing import Optional, Union

from .config import Mode


class ErrorCode(enum.IntEnum):
    """Status codes carried in responses and reported by calls."""

    OK = 0
    ERROR = -1
    INVALID_PARAM = -2
    NO_MEMORY = -3
    SERVICE_NOT_FOUND = -4
    TIMEOUT = -5


_MESSAGES = {
    ErrorCode.OK: "Success",
    ErrorCode.ERROR: "General error",
    ErrorCode.INVALID_PARAM: "Invalid parameter",
    ErrorCode.NO_MEMORY: "Out of memory",
    ErrorCode.SERVICE_NOT_FOUND: "Service not found",
    ErrorCode.TIMEOUT: "Operation timeout",
}

_MODE_NAMES = {
    Mode.SERVER_CLIENT: "SERVER_CLIENT (ROUTER/DEALER)",
    Mode.BROADCAST: "BROADCAST (PUB/SUB)",
}


def strerror(code: int) -> str:
    """Return a human-readable description of a status code."""
    try:
        return _MESSAGES[ErrorCode(code)]
    except ValueError:
        return "Unknown error"


def mode_name(mode: Union[Mode, str]) -> str:
    """Return the descriptive name of a messaging mode."""
    try:
        return _MODE_NAMES[Mode(mode)]
    except ValueError:
        return "UNKNOWN"


class RpcError(Exception):
    """An RPC operation failed with a status code."""

    default_code: int = ErrorCode.ERROR

    def __init__(self, code: Optional[int] = None, message: Optional[str] = None):
        if code is None:
            code = self.default_code
        try:
            code = ErrorCode(code)
        except ValueError:
            code = int(code)
        self.code = code
        self.message = message if message is not None else strerror(code)
        super().__init__(self.message)


class InvalidParamError(RpcError, ValueError):
    """A call was given an invalid argument."""

    default_code = ErrorCode.INVALID_PARAM

    def __init__(self, message: Optional[str] = None):
        super().__init__(ErrorCode.INVALID_PARAM, message)


class ServiceNotFoundError(RpcError, LookupError):
    """The requested service is not registered on the server."""

    default_code = ErrorCode.SERVICE_NOT_FOUND

    def __init__(self, message: Optional[str] = None):
        super().__init__(ErrorCode.SERVICE_NOT_FOUND, message)


class RpcTimeoutError(RpcError, TimeoutError):
    """An operation did not complete in time."""

    default_code = ErrorCode.TIMEOUT

    def __init__(self, message: Optional[str] = None):
        super().__init__(ErrorCode.TIMEOUT, message)