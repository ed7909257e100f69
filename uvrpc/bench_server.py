"""Echo server used as the counterpart of the benchmark client."""

from __future__ import annotations

import signal
import sys
import threading
from contextlib import contextmanager
from typing import Iterator, Sequence

from uvrpc.config import Config, Mode, Transport
from uvrpc.errors import InvalidParamError, RpcError
from uvrpc.server import Server

DEFAULT_ADDRESS = "tcp://127.0.0.1:6002"
SERVICE_NAME = "echo"

_TRANSPORTS = {
    "inproc": Transport.INPROC,
    "ipc": Transport.IPC,
    "tcp": Transport.TCP,
    "udp": Transport.UDP,
}

_RULE = "=" * 40


def echo_handler(request: bytes) -> bytes:
    """Answer with the request bytes unchanged."""
    return bytes(request)


def _config_for(address: str) -> Config:
    scheme, sep, _ = address.partition("://")
    if not sep:
        raise InvalidParamError(f"address {address!r} has no transport scheme")
    try:
        transport = _TRANSPORTS[scheme]
    except KeyError:
        raise InvalidParamError(f"unknown transport scheme {scheme!r}") from None
    config = Config(address=address, transport=transport, mode=Mode.SERVER_CLIENT)
    return config.set_hwm(10000, 10000)


def _build_server(address: str) -> Server:
    server = Server(_config_for(address))
    server.register_service(SERVICE_NAME, echo_handler)
    return server


def serve(address: str, stop_event: threading.Event) -> None:
    """Run the echo service on the address until stop_event is set."""
    server = _build_server(address)
    server.start()
    try:
        stop_event.wait()
    finally:
        server.stop()


@contextmanager
def _stop_on_signals(stop_event: threading.Event) -> Iterator[None]:
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, frame: object) -> None:
        stop_event.set()

    previous = {sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def main(argv: Sequence[str] | None = None) -> int:
    """Start the echo server and run until interrupted; return the exit code."""
    args = list(sys.argv[1:] if argv is None else argv)
    address = args[0] if args else DEFAULT_ADDRESS

    print(_RULE)
    print("  UVRPC Benchmark Server")
    print(_RULE)
    print(f"Bind address: {address}")
    print(_RULE)
    print()

    try:
        server = _build_server(address)
    except RpcError as exc:
        print(f"Failed to create server: {exc}", file=sys.stderr)
        return 1

    try:
        server.start()
    except RpcError as exc:
        print(f"Failed to start server: {exc}", file=sys.stderr)
        print(f"Make sure the address {address} is not already in use", file=sys.stderr)
        return 1

    stop_event = threading.Event()
    with _stop_on_signals(stop_event):
        print("Server started, waiting for requests...")
        print("Press Ctrl+C to stop")
        print()
        try:
            while not stop_event.wait(0.5):
                pass
        except KeyboardInterrupt:
            pass
        finally:
            server.stop()

    print("Server stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())