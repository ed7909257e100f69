"""Request/response RPC over ZeroMQ with msgpack framing, and echo benchmark tools."""

__version__ = "0.1.0"