"""RPC client sending requests to a server over a DEALER socket."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import zmq

from .calls import AsyncCall
from .config import Config, Mode
from .errors import ErrorCode, InvalidParamError, RpcError
from .loop import EventLoop
from .protocol import Request, decode_response, encode_request

ResponseCallback = Callable[[int, bytes], None]
"""Called with the response status and payload once a reply arrives."""

_UINT32_MASK = 0xFFFFFFFF


def _socket_type(mode: Mode) -> int:
    if Mode(mode) is Mode.BROADCAST:
        return zmq.SUB
    return zmq.DEALER


def _set_option(socket: zmq.Socket, option: int, value: int) -> None:
    try:
        socket.setsockopt(option, value)
    except zmq.ZMQError:
        pass


class Client:
    """Connects to a server and matches replies to pending calls by id."""

    def __init__(self, config: Config):
        if config is None or config.loop is None or not config.address:
            raise InvalidParamError("config with a loop and an address is required")

        self.loop: EventLoop = config.loop
        self.address: str = config.address
        self.batch_size: int = config.batch_size
        self._connected = False
        self._next_request_id = 1
        self._pending: Dict[int, ResponseCallback] = {}

        if config.zmq_context is not None:
            self.context: zmq.Context = config.zmq_context
            self._owns_context = False
        else:
            self.context = zmq.Context()
            self._owns_context = True
            if config.io_threads > 0:
                self.context.set(zmq.IO_THREADS, config.io_threads)

        self.socket_type = _socket_type(config.mode)
        try:
            self.socket: zmq.Socket = self.context.socket(self.socket_type)
        except zmq.ZMQError as exc:
            if self._owns_context:
                self.context.term()
            raise RpcError(ErrorCode.ERROR, f"cannot create socket: {exc}") from exc

        self._configure(config)
        self.loop.add_socket(self.socket, self._on_frame)

    def _configure(self, config: Config) -> None:
        sock = self.socket
        if config.sndhwm > 0:
            _set_option(sock, zmq.SNDHWM, config.sndhwm)
        if config.rcvhwm > 0:
            _set_option(sock, zmq.RCVHWM, config.rcvhwm)
        if config.tcp_sndbuf > 0:
            _set_option(sock, zmq.SNDBUF, config.tcp_sndbuf)
        if config.tcp_rcvbuf > 0:
            _set_option(sock, zmq.RCVBUF, config.tcp_rcvbuf)
        if config.tcp_keepalive:
            _set_option(sock, zmq.TCP_KEEPALIVE, 1)
            _set_option(sock, zmq.TCP_KEEPALIVE_IDLE, config.tcp_keepalive_idle)
            _set_option(sock, zmq.TCP_KEEPALIVE_CNT, config.tcp_keepalive_cnt)
            _set_option(sock, zmq.TCP_KEEPALIVE_INTVL, config.tcp_keepalive_intvl)
        if config.reconnect_ivl > 0:
            _set_option(sock, zmq.RECONNECT_IVL, config.reconnect_ivl)
        if config.reconnect_ivl_max > 0:
            _set_option(sock, zmq.RECONNECT_IVL_MAX, config.reconnect_ivl_max)
        if config.linger >= 0:
            _set_option(sock, zmq.LINGER, config.linger)

    @property
    def connected(self) -> bool:
        """Whether the client is connected to its server."""
        return self._connected

    @property
    def pending(self) -> int:
        """Number of calls still waiting for a reply."""
        return len(self._pending)

    def connect(self) -> None:
        """Connect the socket to the server address."""
        try:
            self.socket.connect(self.address)
        except zmq.ZMQError as exc:
            raise RpcError(ErrorCode.ERROR, f"cannot connect {self.address}: {exc}") from exc
        self._connected = True

    def disconnect(self) -> None:
        """Disconnect from the server; does nothing when not connected."""
        if not self._connected:
            return
        try:
            self.socket.disconnect(self.address)
        except zmq.ZMQError:
            pass
        self._connected = False

    def call(
        self,
        service: str,
        method: str,
        data: Optional[bytes],
        callback: ResponseCallback,
    ) -> int:
        """Send a request; ``callback`` gets the reply. Returns the request id."""
        if not isinstance(service, str) or not service:
            raise InvalidParamError("service name is required")
        if not isinstance(method, str) or not method:
            raise InvalidParamError("method name is required")
        if callback is None:
            raise InvalidParamError("callback is required")
        if not self._connected:
            raise RpcError(ErrorCode.ERROR, "client is not connected")

        request_id = self._next_request_id
        self._next_request_id = (request_id + 1) & _UINT32_MASK
        self._pending[request_id] = callback

        try:
            payload = encode_request(
                Request(request_id, service, method, b"" if data is None else data)
            )
            self.socket.send_multipart([b"", payload])
        except RpcError:
            self._pending.pop(request_id, None)
            raise
        except zmq.ZMQError as exc:
            self._pending.pop(request_id, None)
            raise RpcError(ErrorCode.ERROR, f"cannot send request: {exc}") from exc
        return request_id

    def call_async(
        self,
        service: str,
        method: str,
        data: Optional[bytes],
        call: AsyncCall,
    ) -> int:
        """Send a request whose outcome is recorded in ``call``."""
        if call is None:
            raise InvalidParamError("call is required")
        request_id = self.call(service, method, data, call.complete)
        call.request_id = request_id
        return request_id

    def close(self) -> None:
        """Disconnect, drop pending calls and release the socket."""
        self.disconnect()
        self._pending.clear()
        if self.socket.closed:
            return
        self.loop.remove_socket(self.socket)
        self.socket.close()
        if self._owns_context:
            self.context.term()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _on_frame(self, frame: bytes) -> None:
        if not self._connected:
            return
        if self.socket_type == zmq.DEALER and not frame:
            return
        try:
            response = decode_response(frame)
        except RpcError:
            return
        callback = self._pending.pop(response.request_id, None)
        if callback is not None:
            callback(response.status, response.data)