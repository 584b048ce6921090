"""RPC server answering requests from DEALER clients over a ROUTER socket."""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional

import zmq

from .config import Config, Mode, Transport
from .errors import ErrorCode, InvalidParamError, RpcError, strerror
from .loop import EventLoop
from .protocol import Request, Response, decode_request, encode_response

Handler = Callable[[bytes], Optional[bytes]]
"""A service handler: takes the request payload and returns the reply payload.

Raising :class:`RpcError` makes the reply carry that error's code as status.
"""

MAX_ROUTING_ID = 256
"""Longest client routing identity kept, in bytes."""


def _socket_type(mode: Mode) -> int:
    if Mode(mode) is Mode.BROADCAST:
        return zmq.PUB
    return zmq.ROUTER


def _set_option(socket: zmq.Socket, option: Optional[int], value: int) -> None:
    if option is None:
        return
    try:
        socket.setsockopt(option, value)
    except zmq.ZMQError:
        pass


class Server:
    """Binds an address and routes incoming requests to registered services."""

    def __init__(self, config: Config):
        if config is None or config.loop is None or not config.address:
            raise InvalidParamError("config with a loop and an address is required")

        self.loop: EventLoop = config.loop
        self.address: str = config.address
        self._services: Dict[str, Handler] = {}
        self._running = False
        self._routing_id: Optional[bytes] = None
        self._awaiting_data = False

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
        if config.linger >= 0:
            _set_option(sock, zmq.LINGER, config.linger)
        if Transport(config.transport) is Transport.UDP and config.udp_multicast:
            _set_option(sock, getattr(zmq, "MULTICAST_LOOP", None), 1)

    @property
    def running(self) -> bool:
        """Whether the server is answering requests."""
        return self._running

    @property
    def services(self) -> Mapping[str, Handler]:
        """Registered services by name."""
        return dict(self._services)

    def register_service(self, name: str, handler: Handler) -> None:
        """Register ``handler`` under ``name``; names must be unique."""
        if not isinstance(name, str) or not name or handler is None:
            raise InvalidParamError("a service name and a handler are required")
        if name in self._services:
            raise RpcError(ErrorCode.ERROR, f"service {name!r} is already registered")
        self._services[name] = handler

    def start(self) -> None:
        """Bind the address and begin answering requests."""
        try:
            self.socket.bind(self.address)
        except zmq.ZMQError as exc:
            raise RpcError(ErrorCode.ERROR, f"cannot bind {self.address}: {exc}") from exc
        self._running = True

    def stop(self) -> None:
        """Stop answering requests; the socket stays open."""
        self._running = False

    def close(self) -> None:
        """Stop, release the socket and, if owned, the ZeroMQ context."""
        if self._running:
            self.stop()
        if self.socket.closed:
            return
        self.loop.remove_socket(self.socket)
        self.socket.close()
        if self._owns_context:
            self.context.term()

    def __enter__(self) -> "Server":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _reset_routing(self) -> None:
        self._routing_id = None
        self._awaiting_data = False

    def _on_frame(self, frame: bytes) -> None:
        if not self._running or self.socket.closed or self.socket_type != zmq.ROUTER:
            return

        if self._routing_id is None:
            self._routing_id = bytes(frame[:MAX_ROUTING_ID])
            return
        if not self._awaiting_data:
            if frame:
                self._reset_routing()
            else:
                self._awaiting_data = True
            return

        routing_id = self._routing_id
        self._reset_routing()
        try:
            request = decode_request(frame)
        except RpcError:
            return
        self._reply(routing_id, self._dispatch(request))

    def _dispatch(self, request: Request) -> Response:
        handler = self._services.get(request.service) if request.service else None
        if handler is None:
            return Response(
                request_id=request.request_id,
                status=ErrorCode.SERVICE_NOT_FOUND,
                error_message=strerror(ErrorCode.SERVICE_NOT_FOUND),
            )
        try:
            result = handler(request.data)
            data = b"" if result is None else bytes(result)
            status = ErrorCode.OK
        except RpcError as exc:
            data, status = b"", int(exc.code)
        except Exception:
            data, status = b"", ErrorCode.ERROR
        return Response(request_id=request.request_id, status=status, data=data)

    def _reply(self, routing_id: bytes, response: Response) -> None:
        try:
            payload = encode_response(response)
        except RpcError:
            return
        try:
            self.socket.send_multipart([routing_id, b"", payload])
        except zmq.ZMQError:
            pass