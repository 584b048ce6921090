"""A small single-threaded event loop driving ZeroMQ sockets and timers."""

from __future__ import annotations

import heapq
import itertools
import math
import time
from typing import Callable, Dict, List, Optional, Tuple

import zmq

from .errors import InvalidParamError, RpcTimeoutError

ADAPTIVE_SLEEP_US = 1000
"""Sleep between idle iterations under low load, in microseconds."""
ADAPTIVE_IDLE_THRESHOLD = 3
"""Consecutive idle iterations before switching to low-load mode."""
ADAPTIVE_BUSY_THRESHOLD = 5
"""Consecutive idle iterations after which a dead loop is left."""

FrameCallback = Callable[[bytes], None]


class Timer:
    """A one-shot callback scheduled on an :class:`EventLoop`."""

    def __init__(self, loop: "EventLoop", due: float, callback: Callable[[], None]):
        self._loop = loop
        self.due = due
        self.callback = callback

    @property
    def active(self) -> bool:
        """Whether the timer is still waiting to fire."""
        return self in self._loop._active_timers

    def cancel(self) -> None:
        """Stop the timer; it will not fire."""
        self._loop._active_timers.discard(self)


class EventLoop:
    """Dispatches received ZeroMQ frames and expired timers.

    Each frame read from a registered socket is passed to that socket's
    callback. The loop stays alive while it has sockets or pending timers.
    """

    def __init__(self) -> None:
        self._poller = zmq.Poller()
        self._sockets: Dict[zmq.Socket, FrameCallback] = {}
        self._timers: List[Tuple[float, int, Timer]] = []
        self._active_timers: set = set()
        self._seq = itertools.count()

    def add_socket(self, socket: zmq.Socket, callback: FrameCallback) -> None:
        """Watch ``socket``; every received frame is passed to ``callback``."""
        if socket not in self._sockets:
            self._poller.register(socket, zmq.POLLIN)
        self._sockets[socket] = callback

    def remove_socket(self, socket: zmq.Socket) -> None:
        """Stop watching ``socket``; unknown sockets are ignored."""
        if self._sockets.pop(socket, None) is not None:
            self._poller.unregister(socket)

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> Timer:
        """Run ``callback`` once after ``delay_ms`` milliseconds."""
        due = time.monotonic() + max(0.0, delay_ms) / 1000.0
        timer = Timer(self, due, callback)
        self._active_timers.add(timer)
        heapq.heappush(self._timers, (due, next(self._seq), timer))
        return timer

    def now(self) -> int:
        """Current monotonic time in milliseconds."""
        return int(time.monotonic() * 1000)

    def alive(self) -> bool:
        """Whether any socket or pending timer keeps the loop running."""
        return bool(self._sockets or self._active_timers)

    def run_once(self, timeout_ms: Optional[float] = None) -> int:
        """Wait for events, dispatch them, and return how many were handled.

        Blocks until a frame arrives, a timer expires or ``timeout_ms``
        passes; ``None`` waits without limit. A dead loop returns at once.
        """
        if not self.alive():
            return 0
        processed = self._poll(self._wait_seconds(timeout_ms))
        return processed + self._fire_due_timers()

    def run_nowait(self) -> int:
        """Dispatch whatever is ready without blocking."""
        return self.run_once(0)

    def _next_due(self) -> Optional[float]:
        while self._timers and self._timers[0][2] not in self._active_timers:
            heapq.heappop(self._timers)
        return self._timers[0][0] if self._timers else None

    def _wait_seconds(self, timeout_ms: Optional[float]) -> Optional[float]:
        wait = None if timeout_ms is None else max(0.0, timeout_ms) / 1000.0
        due = self._next_due()
        if due is not None:
            until = max(0.0, due - time.monotonic())
            wait = until if wait is None else min(wait, until)
        return wait

    def _poll(self, wait: Optional[float]) -> int:
        if not self._sockets:
            if wait:
                time.sleep(wait)
            return 0
        timeout = None if wait is None else math.ceil(wait * 1000)
        ready = self._poller.poll(timeout)
        return sum(self._drain(sock) for sock, mask in ready if mask & zmq.POLLIN)

    def _drain(self, socket: zmq.Socket) -> int:
        count = 0
        while socket in self._sockets:
            callback = self._sockets[socket]
            try:
                frame = socket.recv(zmq.NOBLOCK)
            except zmq.ZMQError:
                break
            callback(frame)
            count += 1
        return count

    def _fire_due_timers(self) -> int:
        now = time.monotonic()
        count = 0
        while self._timers and self._timers[0][0] <= now:
            _, _, timer = heapq.heappop(self._timers)
            if timer in self._active_timers:
                self._active_timers.discard(timer)
                timer.callback()
                count += 1
        return count


def run_adaptive(
    loop: EventLoop,
    timeout_ms: int = 0,
    check: Optional[Callable[[], bool]] = None,
) -> None:
    """Run ``loop`` balancing responsiveness and CPU use.

    While events keep arriving the loop blocks for them; after a few idle
    iterations it polls without blocking and sleeps in between. Returns when
    ``check`` reports true or when the loop has nothing left to do, and raises
    :class:`RpcTimeoutError` once ``timeout_ms`` (if positive) has passed.
    """
    if loop is None:
        raise InvalidParamError("loop is required")

    start = time.monotonic()
    idle = 0
    while True:
        if check is not None and check():
            return

        remaining: Optional[float] = None
        if timeout_ms > 0:
            elapsed = (time.monotonic() - start) * 1000
            if elapsed >= timeout_ms:
                raise RpcTimeoutError()
            remaining = timeout_ms - elapsed

        if idle < ADAPTIVE_IDLE_THRESHOLD:
            idle = idle + 1 if loop.run_once(remaining) == 0 else 0
        elif loop.run_nowait() == 0:
            idle += 1
            factor = 2 if idle > ADAPTIVE_IDLE_THRESHOLD * 2 else 1
            time.sleep(ADAPTIVE_SLEEP_US * factor / 1_000_000)
        else:
            idle = 0

        if not loop.alive() and idle > ADAPTIVE_BUSY_THRESHOLD:
            return