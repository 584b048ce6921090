import pytest

from uvrpc.calls import AsyncCall, AsyncResult, await_all, await_any
from uvrpc.errors import ErrorCode, InvalidParamError, RpcError
from uvrpc.loop import EventLoop


def test_requires_loop():
    with pytest.raises(InvalidParamError):
        AsyncCall(None)


def test_result_before_completion_is_ok_and_empty():
    call = AsyncCall(EventLoop())
    assert call.completed is False
    assert call.result() == AsyncResult(ErrorCode.OK, b"")


def test_complete_records_status_and_data():
    call = AsyncCall(EventLoop())
    call.complete(ErrorCode.OK, b"Hello, UVRPC!")
    assert call.completed is True
    assert call.result() == AsyncResult(ErrorCode.OK, b"Hello, UVRPC!")


def test_second_completion_is_ignored():
    call = AsyncCall(EventLoop())
    call.complete(ErrorCode.SERVICE_NOT_FOUND, None)
    call.complete(ErrorCode.OK, b"late")
    assert call.result() == AsyncResult(ErrorCode.SERVICE_NOT_FOUND, b"")


def test_wait_times_out():
    loop = EventLoop()
    call = AsyncCall(loop)
    result = call.wait(10)
    assert result.status == ErrorCode.TIMEOUT
    assert call.completed is True
    assert loop.alive() is False


def test_wait_returns_completion_before_timeout():
    loop = EventLoop()
    call = AsyncCall(loop)
    loop.call_later(1, lambda: call.complete(ErrorCode.OK, b"x"))
    result = call.wait(5000)
    assert result == AsyncResult(ErrorCode.OK, b"x")
    assert loop.alive() is False


def test_wait_on_completed_call_returns_at_once():
    call = AsyncCall(EventLoop())
    call.complete(ErrorCode.ERROR, b"")
    assert call.wait(0).status == ErrorCode.ERROR


def test_await_all_collects_in_order():
    loop = EventLoop()
    first, second = AsyncCall(loop), AsyncCall(loop)
    loop.call_later(5, lambda: first.complete(ErrorCode.OK, b"a"))
    loop.call_later(1, lambda: second.complete(ErrorCode.OK, b"b"))
    results = await_all([first, second])
    assert [r.data for r in results] == [b"a", b"b"]
    assert first.completed and second.completed


def test_await_all_rejects_empty():
    with pytest.raises(InvalidParamError):
        await_all([])


def test_await_all_on_idle_loop_raises():
    call = AsyncCall(EventLoop())
    with pytest.raises(RpcError):
        await_all([call])


def test_await_any_returns_first_completed_index():
    loop = EventLoop()
    slow, fast = AsyncCall(loop), AsyncCall(loop)
    loop.call_later(200, lambda: slow.complete(ErrorCode.OK, b"s"))
    loop.call_later(1, lambda: fast.complete(ErrorCode.OK, b"f"))
    assert await_any([slow, fast]) == 1
    assert slow.completed is False


def test_await_any_already_completed():
    loop = EventLoop()
    calls = [AsyncCall(loop), AsyncCall(loop)]
    calls[0].complete(ErrorCode.OK, b"")
    assert await_any(calls) == 0


def test_await_any_rejects_empty():
    with pytest.raises(InvalidParamError):
        await_any([])