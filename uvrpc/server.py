"""RPC server that answers requests arriving on a ROUTER socket."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

import zmq

from uvrpc.config import Config, Mode, Transport
from uvrpc.errors import InvalidParamError, RpcError, Status
from uvrpc.protocol import Request, Response, decode_request, encode_response

Handler = Callable[[bytes], bytes]

_POLL_MS = 50

log = logging.getLogger(__name__)


def _check_supported(config: Config) -> None:
    config.validate()
    if config.mode is not Mode.SERVER_CLIENT:
        raise InvalidParamError("only the server-client mode answers requests")
    if config.transport is Transport.UDP:
        raise InvalidParamError("the UDP transport cannot carry request/reply traffic")


def _open_socket(config: Config, socket_type: int) -> tuple[Any, Any]:
    """Create a socket of the given type with the tuning values of the config."""
    ctx = config.zmq_ctx if config.zmq_ctx is not None else zmq.Context.instance()
    sock = ctx.socket(socket_type)
    sock.setsockopt(zmq.SNDHWM, config.sndhwm)
    sock.setsockopt(zmq.RCVHWM, config.rcvhwm)
    sock.setsockopt(zmq.LINGER, config.linger)
    sock.setsockopt(zmq.RECONNECT_IVL, config.reconnect_ivl)
    sock.setsockopt(zmq.RECONNECT_IVL_MAX, config.reconnect_ivl_max)
    if config.transport is Transport.TCP:
        if config.tcp_sndbuf >= 0:
            sock.setsockopt(zmq.SNDBUF, config.tcp_sndbuf)
        if config.tcp_rcvbuf >= 0:
            sock.setsockopt(zmq.RCVBUF, config.tcp_rcvbuf)
        sock.setsockopt(zmq.TCP_KEEPALIVE, config.tcp_keepalive)
        sock.setsockopt(zmq.TCP_KEEPALIVE_IDLE, config.tcp_keepalive_idle)
        sock.setsockopt(zmq.TCP_KEEPALIVE_CNT, config.tcp_keepalive_cnt)
        sock.setsockopt(zmq.TCP_KEEPALIVE_INTVL, config.tcp_keepalive_intvl)
    return ctx, sock


def _status_of(exc: RpcError) -> Status:
    try:
        status = Status(exc.status)
    except ValueError:
        return Status.ERROR
    return Status.ERROR if status is Status.OK else status


class Server:
    """Serves registered handlers; each handler maps request bytes to response bytes.

    Requests are handled one at a time on the server's own thread.
    """

    def __init__(self, config: Config) -> None:
        _check_supported(config)
        self._config = config.copy()
        self._services: dict[str, Handler] = {}
        self._lock = threading.Lock()
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None
        self._endpoint: str | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None

    @property
    def endpoint(self) -> str | None:
        """The address actually bound, or None while stopped."""
        return self._endpoint

    def register_service(self, service_name: str, handler: Handler) -> None:
        """Register a handler; a later registration under the same name replaces it."""
        if not isinstance(service_name, str) or not service_name:
            raise InvalidParamError("service name must be a non-empty string")
        if not callable(handler):
            raise InvalidParamError("handler must be callable")
        with self._lock:
            self._services[service_name] = handler

    def services_count(self) -> int:
        with self._lock:
            return len(self._services)

    def start(self) -> Server:
        """Bind the address and begin answering requests."""
        if self._thread is not None:
            raise RpcError("server is already running")
        _, sock = _open_socket(self._config, zmq.ROUTER)
        try:
            sock.bind(self._config.address)
        except zmq.ZMQError as exc:
            sock.close(linger=0)
            raise RpcError(f"cannot bind {self._config.address}: {exc}") from exc
        endpoint = sock.getsockopt_string(zmq.LAST_ENDPOINT)
        self._endpoint = endpoint or self._config.address
        self._stopping.clear()
        self._thread = threading.Thread(
            target=self._run, args=(sock,), name="uvrpc-server", daemon=True
        )
        self._thread.start()
        return self

    def stop(self) -> None:
        """Stop answering and release the socket; does nothing when stopped."""
        if self._thread is None:
            return
        self._stopping.set()
        self._thread.join()
        self._thread = None
        self._endpoint = None

    def __enter__(self) -> Server:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _run(self, sock: Any) -> None:
        poller = zmq.Poller()
        poller.register(sock, zmq.POLLIN)
        try:
            while not self._stopping.is_set():
                if not poller.poll(_POLL_MS):
                    continue
                while True:
                    try:
                        frames = sock.recv_multipart(zmq.NOBLOCK)
                    except zmq.Again:
                        break
                    if len(frames) < 2:
                        continue
                    reply = self._answer(frames[-1])
                    if reply is not None:
                        sock.send_multipart([*frames[:-1], reply])
        finally:
            sock.close()

    def _lookup(self, request: Request) -> Handler | None:
        with self._lock:
            if request.method_name:
                qualified = f"{request.service_name}.{request.method_name}"
                if qualified in self._services:
                    return self._services[qualified]
            return self._services.get(request.service_name)

    def _answer(self, body: bytes) -> bytes | None:
        try:
            request = decode_request(body)
        except InvalidParamError:
            return None
        handler = self._lookup(request)
        if handler is None:
            response = Response(request.request_id, Status.SERVICE_NOT_FOUND)
        else:
            response = self._invoke(handler, request)
        return encode_response(response)

    @staticmethod
    def _invoke(handler: Handler, request: Request) -> Response:
        try:
            result = handler(request.payload)
        except RpcError as exc:
            return Response(request.request_id, _status_of(exc))
        except Exception:
            log.exception("handler for %s failed", request.service_name)
            return Response(request.request_id, Status.ERROR)
        if not isinstance(result, (bytes, bytearray, memoryview)):
            return Response(request.request_id, Status.ERROR)
        return Response(request.request_id, Status.OK, bytes(result))