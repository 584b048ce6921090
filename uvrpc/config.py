"""Connection and socket configuration for servers and clients."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional


class Transport(enum.Enum):
    """Transport used to reach the peer."""

    TCP = "tcp"
    IPC = "ipc"
    INPROC = "inproc"
    UDP = "udp"


class Mode(enum.Enum):
    """Messaging pattern between server and client."""

    SERVER_CLIENT = "server_client"
    BROADCAST = "broadcast"


class PerformanceMode(enum.Enum):
    """Preset trade-off between latency and throughput."""

    LOW_LATENCY = "low_latency"
    BALANCED = "balanced"
    HIGH_THROUGHPUT = "high_throughput"


_PERF_PRESETS = {
    PerformanceMode.LOW_LATENCY: {
        "batch_size": 1,
        "sndhwm": 100,
        "rcvhwm": 100,
        "tcp_sndbuf": 64 * 1024,
        "tcp_rcvbuf": 64 * 1024,
        "io_threads": 1,
    },
    PerformanceMode.BALANCED: {
        "batch_size": 10,
        "sndhwm": 1000,
        "rcvhwm": 1000,
        "tcp_sndbuf": 256 * 1024,
        "tcp_rcvbuf": 256 * 1024,
        "io_threads": 2,
    },
    PerformanceMode.HIGH_THROUGHPUT: {
        "batch_size": 100,
        "sndhwm": 10000,
        "rcvhwm": 10000,
        "tcp_sndbuf": 1024 * 1024,
        "tcp_rcvbuf": 1024 * 1024,
        "io_threads": 4,
    },
}


@dataclass
class Config:
    """Settings shared by :class:`Server` and :class:`Client`.

    The defaults correspond to :attr:`PerformanceMode.BALANCED`.
    """

    loop: Any = None
    address: Optional[str] = None
    transport: Transport = Transport.INPROC
    mode: Mode = Mode.SERVER_CLIENT
    zmq_context: Any = None
    owns_zmq_context: bool = True
    perf_mode: PerformanceMode = PerformanceMode.BALANCED
    batch_size: int = 10
    io_threads: int = 2
    sndhwm: int = 1000
    rcvhwm: int = 1000
    tcp_sndbuf: int = 256 * 1024
    tcp_rcvbuf: int = 256 * 1024
    tcp_keepalive: bool = False
    tcp_keepalive_idle: int = 60
    tcp_keepalive_cnt: int = 5
    tcp_keepalive_intvl: int = 10
    reconnect_ivl: int = 100
    reconnect_ivl_max: int = 10000
    linger: int = 1000
    udp_multicast: bool = False
    udp_multicast_group: Optional[str] = None

    def apply_perf_mode(self, mode: PerformanceMode) -> "Config":
        """Select a performance preset, overwriting the values it governs."""
        mode = PerformanceMode(mode)
        self.perf_mode = mode
        for name, value in _PERF_PRESETS[mode].items():
            setattr(self, name, value)
        return self

    def enable_udp_multicast(self, group: Optional[str]) -> "Config":
        """Turn on UDP multicast, optionally joining ``group``."""
        self.udp_multicast = True
        self.udp_multicast_group = group
        return self

    def use_zmq_context(self, context: Any) -> "Config":
        """Share an existing ZeroMQ context; ``None`` means create and own one."""
        self.zmq_context = context
        self.owns_zmq_context = context is None
        return self