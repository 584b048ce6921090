import pytest

from uvrpc.config import Mode
from uvrpc.errors import (
    ErrorCode,
    InvalidParamError,
    RpcError,
    RpcTimeoutError,
    ServiceNotFoundError,
    mode_name,
    strerror,
)


@pytest.mark.parametrize(
    "code, text",
    [
        (ErrorCode.OK, "Success"),
        (ErrorCode.ERROR, "General error"),
        (ErrorCode.INVALID_PARAM, "Invalid parameter"),
        (ErrorCode.NO_MEMORY, "Out of memory"),
        (ErrorCode.SERVICE_NOT_FOUND, "Service not found"),
        (ErrorCode.TIMEOUT, "Operation timeout"),
    ],
)
def test_strerror_known_codes(code, text):
    assert strerror(code) == text
    assert strerror(int(code)) == text


def test_strerror_unknown_code():
    assert strerror(12345) == "Unknown error"


def test_ok_is_zero_and_error_negative():
    assert strerror(0) == "Success"
    assert strerror(-1) == "General error"


def test_codes_have_distinct_descriptions():
    texts = {strerror(c) for c in ErrorCode}
    assert len(texts) == len(list(ErrorCode))
    assert "Unknown error" not in texts


def test_mode_names():
    assert mode_name(Mode.SERVER_CLIENT) == "SERVER_CLIENT (ROUTER/DEALER)"
    assert mode_name(Mode.BROADCAST) == "BROADCAST (PUB/SUB)"


def test_mode_name_unknown():
    assert mode_name("nonsense") == "UNKNOWN"


def test_rpc_error_default_message():
    err = RpcError(ErrorCode.NO_MEMORY)
    assert err.code is ErrorCode.NO_MEMORY
    assert str(err) == "Out of memory"


def test_rpc_error_default_code():
    err = RpcError()
    assert err.code is ErrorCode.ERROR
    assert err.message == "General error"


def test_rpc_error_unknown_code_kept():
    err = RpcError(77)
    assert err.code == 77
    assert str(err) == "Unknown error"


def test_rpc_error_custom_message():
    err = RpcError(ErrorCode.ERROR, "bind failed")
    assert str(err) == "bind failed"
    assert err.code is ErrorCode.ERROR


def test_subclasses_carry_codes():
    assert InvalidParamError().code is ErrorCode.INVALID_PARAM
    assert ServiceNotFoundError().code is ErrorCode.SERVICE_NOT_FOUND
    assert RpcTimeoutError().code is ErrorCode.TIMEOUT
    assert str(ServiceNotFoundError()) == "Service not found"


def test_invalid_param_error_is_value_error():
    err = InvalidParamError("empty service name")
    assert isinstance(err, ValueError)
    assert isinstance(err, RpcError)
    assert err.code is ErrorCode.INVALID_PARAM
    assert str(err) == "empty service name"


def test_service_not_found_error_is_lookup_error():
    err = ServiceNotFoundError()
    assert isinstance(err, LookupError)
    assert isinstance(err, RpcError)
    assert err.code is ErrorCode.SERVICE_NOT_FOUND
    assert str(err) == "Service not found"


def test_timeout_error_is_builtin_timeout():
    err = RpcTimeoutError()
    assert isinstance(err, TimeoutError)
    assert isinstance(err, RpcError)
    assert err.code is ErrorCode.TIMEOUT
    assert str(err) == "Operation timeout"


def test_subclass_caught_as_rpc_error():
    assert issubclass(RpcTimeoutError, RpcError)
    err = RpcTimeoutError()
    assert err.code is ErrorCode.TIMEOUT
    assert err.message == "Operation timeout"