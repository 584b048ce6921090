"""Event-loop driven RPC over ZeroMQ with a MessagePack wire format."""

__version__ = "0.1.0"

__all__ = ["calls", "client", "config", "errors", "loop", "protocol", "server"]