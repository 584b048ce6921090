"""Awaitable results of client calls driven by an :class:`EventLoop`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from .errors import ErrorCode, InvalidParamError, RpcError
from .loop import EventLoop


@dataclass(frozen=True)
class AsyncResult:
    """Status and payload of a finished (or not yet finished) call."""

    status: int
    data: bytes = b""


class AsyncCall:
    """Collects the outcome of one call made with :meth:`Client.call_async`.

    Until the call completes its result reports status ``OK`` with no data;
    check :attr:`completed` or use :meth:`wait` to know it has finished.
    """

    def __init__(self, loop: EventLoop):
        if loop is None:
            raise InvalidParamError("loop is required")
        self.loop = loop
        self.request_id = 0
        self._completed = False
        self._status: int = ErrorCode.OK
        self._data = b""

    @property
    def completed(self) -> bool:
        """Whether a response arrived or the wait timed out."""
        return self._completed

    def complete(self, status: int, data: Optional[bytes] = b"") -> None:
        """Record the outcome; later completions are ignored."""
        if self._completed:
            return
        self._completed = True
        self._status = status
        self._data = bytes(data) if data else b""

    def result(self) -> AsyncResult:
        """Return the current outcome without waiting."""
        return AsyncResult(self._status, self._data)

    def wait(self, timeout_ms: float) -> AsyncResult:
        """Run the loop until the call completes or ``timeout_ms`` passes.

        On timeout the result carries status :attr:`ErrorCode.TIMEOUT`.
        """
        if self._completed:
            return self.result()
        timer = self.loop.call_later(timeout_ms, self._expire)
        try:
            while not self._completed:
                self.loop.run_once()
        finally:
            timer.cancel()
        return self.result()

    def _expire(self) -> None:
        if not self._completed:
            self._completed = True
            self._status = ErrorCode.TIMEOUT


def _collect(calls: Iterable[AsyncCall]) -> List[AsyncCall]:
    if calls is None:
        raise InvalidParamError("calls are required")
    pending = list(calls)
    if not pending or any(call is None for call in pending):
        raise InvalidParamError("at least one call is required")
    return pending


def _step(loop: EventLoop) -> None:
    if not loop.alive():
        raise RpcError(ErrorCode.ERROR, "event loop has nothing left to run")
    loop.run_once()


def await_all(calls: Iterable[AsyncCall]) -> List[AsyncResult]:
    """Run the first call's loop until every call completes; return the results."""
    pending = _collect(calls)
    loop = pending[0].loop
    while not all(call.completed for call in pending):
        _step(loop)
    return [call.result() for call in pending]


def await_any(calls: Iterable[AsyncCall]) -> int:
    """Run the first call's loop until a call completes; return its index."""
    pending = _collect(calls)
    loop = pending[0].loop
    while True:
        for index, call in enumerate(pending):
            if call.completed:
                return index
        _step(loop)