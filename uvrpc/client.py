"""RPC client: calls with callbacks, futures and synchronous waits."""

from __future__ import annotations

import itertools
import logging
import queue
import threading
import uuid
from concurrent import futures
from typing import Any, Callable, Sequence

import zmq

from uvrpc.config import Config
from uvrpc.errors import InvalidParamError, RpcError, RpcTimeoutError, Status, error_for_status
from uvrpc.protocol import Request, Response, decode_response, encode_request
from uvrpc.server import _check_supported, _open_socket

ResponseCallback = Callable[[Status, bytes], None]

_POLL_MS = 50

log = logging.getLogger(__name__)


class Client:
    """Sends requests over a DEALER socket driven by a background I/O thread."""

    def __init__(self, config: Config) -> None:
        _check_supported(config)
        self._config = config.copy()
        self._ids = itertools.count(1)
        self._pending: dict[int, tuple[futures.Future, ResponseCallback | None]] = {}
        self._lock = threading.Lock()
        self._outbox: queue.SimpleQueue[tuple[int, bytes]] = queue.SimpleQueue()
        self._waker: Any = None
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def connected(self) -> bool:
        return self._thread is not None

    def connect(self) -> Client:
        """Connect to the configured address; does nothing if already connected."""
        if self._thread is not None:
            return self
        ctx, dealer = _open_socket(self._config, zmq.DEALER)
        try:
            dealer.connect(self._config.address)
        except zmq.ZMQError as exc:
            dealer.close(linger=0)
            raise RpcError(f"cannot connect to {self._config.address}: {exc}") from exc
        pipe = f"inproc://uvrpc-client-{uuid.uuid4().hex}"
        wake_in = ctx.socket(zmq.PULL)
        wake_in.bind(pipe)
        wake_out = ctx.socket(zmq.PUSH)
        wake_out.setsockopt(zmq.LINGER, 0)
        wake_out.connect(pipe)
        self._stopping.clear()
        with self._lock:
            self._waker = wake_out
        self._thread = threading.Thread(
            target=self._run, args=(dealer, wake_in), name="uvrpc-client", daemon=True
        )
        self._thread.start()
        return self

    def disconnect(self) -> None:
        """Close the connection; calls still waiting complete with status ERROR."""
        if self._thread is None:
            return
        self._stopping.set()
        self._thread.join()
        self._thread = None
        with self._lock:
            self._waker.close(linger=0)
            self._waker = None
            abandoned = self._pending
            self._pending = {}
        while True:
            try:
                self._outbox.get_nowait()
            except queue.Empty:
                break
        for request_id, entry in abandoned.items():
            self._deliver(entry, Response(request_id, Status.ERROR))

    def __enter__(self) -> Client:
        return self.connect()

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()

    def call(
        self,
        service_name: str,
        method_name: str,
        payload: bytes,
        callback: ResponseCallback | None = None,
    ) -> futures.Future:
        """Send a request; the callback gets (status, payload) on the I/O thread."""
        return self._submit(service_name, method_name, payload, callback)

    def call_async(self, service_name: str, method_name: str, payload: bytes) -> futures.Future:
        """Send a request and return a future that resolves to its Response."""
        return self._submit(service_name, method_name, payload, None)

    def call_sync(
        self,
        service_name: str,
        method_name: str,
        request: Any,
        serialize: Callable[[Any], bytes],
        deserialize: Callable[[bytes], Any],
    ) -> Any:
        """Serialize, call, wait and deserialize; raise the error a failed status stands for."""
        try:
            data = serialize(request)
        except Exception as exc:
            raise RpcError("failed to serialize request") from exc
        response = await_timeout(self.call_async(service_name, method_name, data), None)
        if response.status is not Status.OK:
            raise error_for_status(response.status, f"{service_name}.{method_name} failed")
        return deserialize(response.payload)

    def pending_requests(self) -> int:
        with self._lock:
            return len(self._pending)

    def _submit(
        self,
        service_name: str,
        method_name: str,
        payload: bytes,
        callback: ResponseCallback | None,
    ) -> futures.Future:
        request_id = next(self._ids)
        frame = encode_request(Request(service_name, method_name, payload, request_id))
        future: futures.Future = futures.Future()
        future.set_running_or_notify_cancel()
        with self._lock:
            if self._waker is None:
                raise RpcError("client is not connected")
            self._pending[request_id] = (future, callback)
            self._outbox.put((request_id, frame))
            self._waker.send(b"")
        return future

    def _run(self, dealer: Any, wake_in: Any) -> None:
        poller = zmq.Poller()
        poller.register(dealer, zmq.POLLIN)
        poller.register(wake_in, zmq.POLLIN)
        try:
            while not self._stopping.is_set():
                events = dict(poller.poll(_POLL_MS))
                if wake_in in events:
                    _drain(wake_in)
                self._flush(dealer)
                if dealer in events:
                    for body in _drain(dealer):
                        self._receive(body)
        finally:
            dealer.close()
            wake_in.close(linger=0)

    def _flush(self, dealer: Any) -> None:
        while True:
            try:
                request_id, frame = self._outbox.get_nowait()
            except queue.Empty:
                return
            try:
                dealer.send(frame, zmq.NOBLOCK)
            except zmq.Again:
                self._finish(Response(request_id, Status.ERROR))

    def _receive(self, body: bytes) -> None:
        try:
            response = decode_response(body)
        except InvalidParamError:
            return
        self._finish(response)

    def _finish(self, response: Response) -> None:
        with self._lock:
            entry = self._pending.pop(response.request_id, None)
        if entry is not None:
            self._deliver(entry, response)

    @staticmethod
    def _deliver(
        entry: tuple[futures.Future, ResponseCallback | None], response: Response
    ) -> None:
        future, callback = entry
        if callback is not None:
            try:
                callback(response.status, response.payload)
            except Exception:
                log.exception("response callback failed")
        future.set_result(response)


def _drain(sock: Any) -> list[bytes]:
    received = []
    while True:
        try:
            received.append(sock.recv(zmq.NOBLOCK))
        except zmq.Again:
            return received


def await_timeout(call: futures.Future, timeout_ms: int | None = None) -> Response:
    """Wait for a call's Response; raise RpcTimeoutError when time runs out."""
    timeout = None if timeout_ms is None else timeout_ms / 1000.0
    try:
        return call.result(timeout)
    except futures.TimeoutError:
        raise RpcTimeoutError(f"no response within {timeout_ms} ms") from None


def await_all(calls: Sequence[futures.Future]) -> list[Response]:
    """Wait for every call and return their Responses in the same order."""
    return [call.result() for call in calls]


def await_any(calls: Sequence[futures.Future]) -> int:
    """Wait until one call completes and return its index."""
    if not calls:
        raise InvalidParamError("no calls to wait for")
    futures.wait(calls, return_when=futures.FIRST_COMPLETED)
    return next(index for index, call in enumerate(calls) if call.done())