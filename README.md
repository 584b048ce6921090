# uvrpc

A small request/response RPC library built on ZeroMQ. A server binds a
ROUTER socket and dispatches requests to named services; clients connect
with a DEALER socket and receive responses through callbacks or
`AsyncCall` objects. Both sides are driven by a single-threaded event
loop that you run yourself.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Wire format

`uvrpc.protocol` encodes messages as MessagePack arrays:

- request: `[request_id, service, method, payload]`
- response: `[request_id, status, error_message, payload]`

A missing string or an empty payload is sent as nil. `encode_request`,
`decode_request`, `encode_response` and `decode_response` convert between
bytes and the `Request` and `Response` dataclasses; decoding ignores
elements past the fourth and keeps the original bytes in `Response.raw`.
An encoded message may be at most `MAX_MESSAGE_SIZE` (4096) bytes; larger
ones raise `RpcError`, as do malformed or too-short messages on decoding.

## Configuration

`uvrpc.config.Config` is a dataclass holding the event loop, the endpoint
and socket tuning. The defaults match `PerformanceMode.BALANCED`: batch
size 10, two I/O threads, high-water marks of 1000, 256 KiB TCP buffers,
linger of 1000 ms and reconnect intervals of 100 ms up to 10 s. The
default transport is `Transport.INPROC` and the default mode
`Mode.SERVER_CLIENT`.

```python
from uvrpc.config import Config, Mode, PerformanceMode, Transport
from uvrpc.loop import EventLoop

loop = EventLoop()
config = Config(loop=loop, address="tcp://127.0.0.1:5555",
                transport=Transport.TCP, mode=Mode.SERVER_CLIENT)
config.apply_perf_mode(PerformanceMode.HIGH_THROUGHPUT)
```

`apply_perf_mode` overwrites batch size, high-water marks, TCP buffers and
I/O thread count with the chosen preset. `use_zmq_context` shares an
existing ZeroMQ context (needed for `inproc://` endpoints used by both a
server and a client); passing `None` makes each side create and own its
own. `enable_udp_multicast` turns on the multicast settings used with
`Transport.UDP`. Each of these returns the config, so calls can be chained.

## Server

A service handler receives the raw request payload and returns the
response payload (or `None` for an empty one). Raising an
`uvrpc.errors.RpcError` sends its code back as the response status; any
other exception is reported as `ErrorCode.ERROR`.

```python
from uvrpc.server import Server

def echo(payload: bytes) -> bytes:
    return payload

server = Server(config)
server.register_service("echo", echo)
server.start()
```

Registering a name twice raises `RpcError`. Requests for an unknown
service are answered with status `ErrorCode.SERVICE_NOT_FOUND` and the
message "Service not found". `stop` pauses answering while keeping the
socket open; `close` releases the socket and, when owned, the ZeroMQ
context.

## Client

```python
from uvrpc.client import Client
from uvrpc.calls import AsyncCall

client = Client(config)
client.connect()

def on_reply(status: int, data: bytes) -> None:
    print(status, data)

client.call("echo", "test", b"Hello, ROUTER/DEALER!", on_reply)

call = AsyncCall(loop)
client.call_async("echo", "test", b"Hello, UVRPC!", call)
result = call.wait(5000)
print(result.status, result.data)
```

`call` and `call_async` return the request id; calling before `connect`
raises `RpcError`, and an empty service or method name raises
`InvalidParamError`. `Client.pending` counts calls still waiting for a
reply.

An `AsyncCall` reports status `OK` with no data until it completes;
`completed` tells whether it has. `wait` runs the loop until a reply
arrives or the timeout passes, in which case the result's status is
`ErrorCode.TIMEOUT`. `uvrpc.calls.await_all` runs the loop until every
call in a list has finished and returns their `AsyncResult`s; `await_any`
returns the index of the first finished call. Both raise `RpcError` if the
loop has nothing left to run.

## Running the loop

`EventLoop.run_once` waits for socket frames or expired timers, dispatches
them and returns how many were handled; `run_nowait` does the same without
blocking. `call_later` schedules a one-shot `Timer`, which `cancel` stops.

`uvrpc.loop.run_adaptive` keeps running a loop, blocking for events while
they keep coming and backing off to short sleeps while idle. It returns
when its check function returns true or the loop has nothing left to do,
and raises `RpcTimeoutError` once a positive timeout has passed.

Servers and clients are context managers; leaving the `with` block closes
them.

## Errors

Status codes are listed in `uvrpc.errors.ErrorCode`; `strerror` turns a
code into its description and `mode_name` describes a `Mode`. Failures
raise `RpcError` or one of its subclasses `InvalidParamError`,
`ServiceNotFoundError` and `RpcTimeoutError`.

## What it does not do

- `Mode.BROADCAST` only selects PUB and SUB sockets; there is no API for
  publishing or subscribing, and the server does not answer requests in
  that mode.
- The package is a library only; it installs no command-line programs.