import time

import pytest
import zmq

from uvrpc.errors import InvalidParamError, RpcTimeoutError
from uvrpc.loop import EventLoop, run_adaptive


@pytest.fixture
def pair():
    ctx = zmq.Context()
    left = ctx.socket(zmq.PAIR)
    right = ctx.socket(zmq.PAIR)
    left.setsockopt(zmq.LINGER, 0)
    right.setsockopt(zmq.LINGER, 0)
    left.bind("inproc://loop-test")
    right.connect("inproc://loop-test")
    yield left, right
    left.close()
    right.close()
    ctx.term()


def test_empty_loop_is_dead():
    loop = EventLoop()
    assert loop.alive() is False
    assert loop.run_once() == 0
    assert loop.run_nowait() == 0


def test_timers_fire_in_due_order():
    loop = EventLoop()
    fired = []
    loop.call_later(20, lambda: fired.append("b"))
    loop.call_later(5, lambda: fired.append("a"))
    while loop.alive():
        loop.run_once()
    assert fired == ["a", "b"]


def test_cancelled_timer_does_not_fire():
    loop = EventLoop()
    fired = []
    timer = loop.call_later(1, lambda: fired.append(1))
    assert loop.alive() is True
    assert timer.active is True
    timer.cancel()
    assert timer.active is False
    assert loop.alive() is False
    time.sleep(0.01)
    assert loop.run_once() == 0
    assert fired == []


def test_run_nowait_leaves_future_timer():
    loop = EventLoop()
    fired = []
    timer = loop.call_later(10_000, lambda: fired.append(1))
    assert loop.run_nowait() == 0
    assert fired == []
    assert timer.active is True


def test_run_once_reports_fired_timer():
    loop = EventLoop()
    fired = []
    loop.call_later(0, lambda: fired.append(1))
    assert loop.run_once(1000) == 1
    assert fired == [1]


def test_socket_frames_are_dispatched(pair):
    left, right = pair
    loop = EventLoop()
    received = []
    loop.add_socket(right, received.append)
    left.send_multipart([b"", b"payload"])
    total = 0
    deadline = time.monotonic() + 2
    while total < 2 and time.monotonic() < deadline:
        total += loop.run_once(100)
    assert total == 2
    assert received == [b"", b"payload"]


def test_removed_socket_is_not_read(pair):
    left, right = pair
    loop = EventLoop()
    received = []
    loop.add_socket(right, received.append)
    assert loop.alive() is True
    loop.remove_socket(right)
    loop.remove_socket(right)
    assert loop.alive() is False
    left.send(b"ignored")
    assert loop.run_nowait() == 0
    assert received == []
    assert right.recv() == b"ignored"


def test_now_is_monotonic_milliseconds():
    loop = EventLoop()
    start = loop.now()
    time.sleep(0.02)
    assert loop.now() - start >= 19


def test_run_adaptive_returns_when_work_is_done():
    loop = EventLoop()
    fired = []
    loop.call_later(5, lambda: fired.append(1))
    run_adaptive(loop)
    assert fired == [1]
    assert loop.alive() is False


def test_run_adaptive_stops_on_check(pair):
    _, right = pair
    loop = EventLoop()
    loop.add_socket(right, lambda frame: None)
    fired = []
    loop.call_later(2, lambda: fired.append("first"))
    loop.call_later(4, lambda: fired.append("second"))
    run_adaptive(loop, 5000, lambda: len(fired) >= 2)
    assert fired == ["first", "second"]
    assert loop.alive() is True


def test_run_adaptive_times_out(pair):
    _, right = pair
    loop = EventLoop()
    loop.add_socket(right, lambda frame: None)
    start = time.monotonic()
    with pytest.raises(RpcTimeoutError):
        run_adaptive(loop, 50)
    assert time.monotonic() - start >= 0.05


def test_run_adaptive_requires_loop():
    with pytest.raises(InvalidParamError):
        run_adaptive(None)