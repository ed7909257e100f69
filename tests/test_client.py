import json
import threading
import uuid
from concurrent.futures import Future

import pytest

from uvrpc.client import Client, await_all, await_any, await_timeout
from uvrpc.config import Config, Mode, Transport
from uvrpc.errors import (
    InvalidParamError,
    RpcError,
    RpcTimeoutError,
    ServiceNotFoundError,
    Status,
)
from uvrpc.server import Server


def echo_test_handler(payload):
    return b"Echo: " + payload


def add_handler(payload):
    args = json.loads(payload)
    return json.dumps(args["a"] + args["b"]).encode()


@pytest.fixture
def release():
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def pair(release):
    address = f"inproc://test-client-{uuid.uuid4().hex}"
    config = Config(address=address, transport=Transport.INPROC)
    server = Server(config)
    server.register_service("echo.EchoService", echo_test_handler)
    server.register_service("EchoService.add", add_handler)
    server.register_service("block", lambda payload: (release.wait(5), payload)[1])
    server.start()
    client = Client(config).connect()
    yield server, client
    release.set()
    client.disconnect()
    server.stop()


def encode_json(obj):
    return json.dumps(obj).encode()


def test_req_rep_mode(pair):
    _, client = pair
    response = await_timeout(client.call_async("echo.EchoService", "", b"Hello, World!"), 5000)
    assert response.status is Status.OK
    assert response.payload == b"Echo: Hello, World!"


def test_service_not_found(pair):
    _, client = pair
    response = await_timeout(client.call_async("nonexistent.Service", "", b"Test"), 5000)
    assert response.status is Status.SERVICE_NOT_FOUND


def test_concurrent_requests(pair):
    _, client = pair
    calls = [client.call_async("echo.EchoService", "", f"Request {i}".encode()) for i in range(5)]
    responses = await_all(calls)
    assert [r.payload for r in responses] == [f"Echo: Request {i}".encode() for i in range(5)]
    assert client.pending_requests() == 0


def test_callback_receives_status_and_payload(pair):
    _, client = pair
    received = []
    done = threading.Event()

    def callback(status, payload):
        received.append((status, payload))
        done.set()

    call = client.call("echo.EchoService", "", b"cb", callback)
    response = await_timeout(call, 5000)
    assert response.payload == b"Echo: cb"
    assert done.wait(5)
    assert received == [(Status.OK, b"Echo: cb")]


def test_call_without_callback_still_resolves(pair):
    _, client = pair
    response = await_timeout(client.call("echo.EchoService", "", b"x"), 5000)
    assert response.payload == b"Echo: x"


def test_call_sync_deserializes(pair):
    _, client = pair
    total = client.call_sync("EchoService", "add", {"a": 1.5, "b": 2.5}, encode_json, json.loads)
    assert total == 4.0


def test_call_sync_raises_for_missing_service(pair):
    _, client = pair
    with pytest.raises(ServiceNotFoundError):
        client.call_sync("missing", "m", {}, encode_json, json.loads)


def test_call_sync_wraps_serialize_failure(pair):
    _, client = pair

    def failing(obj):
        raise TypeError("cannot")

    with pytest.raises(RpcError):
        client.call_sync("echo.EchoService", "", {}, failing, json.loads)


def test_await_timeout_raises(pair, release):
    _, client = pair
    call = client.call_async("block", "", b"")
    with pytest.raises(RpcTimeoutError):
        await_timeout(call, 50)
    assert client.pending_requests() == 1
    release.set()
    assert await_timeout(call, 5000).status is Status.OK


def test_await_any_returns_completed_index(pair):
    _, client = pair
    never = Future()
    call = client.call_async("echo.EchoService", "", b"x")
    assert await_any([never, call]) == 1


def test_await_any_rejects_empty():
    with pytest.raises(InvalidParamError):
        await_any([])


def test_disconnect_fails_pending_calls(pair, release):
    _, client = pair
    call = client.call_async("block", "", b"")
    client.disconnect()
    assert await_timeout(call, 5000).status is Status.ERROR
    assert client.pending_requests() == 0


def test_call_before_connect_raises():
    client = Client(Config(address="inproc://not-connected", transport=Transport.INPROC))
    with pytest.raises(RpcError):
        client.call_async("echo", "", b"")


def test_call_after_disconnect_raises(pair):
    _, client = pair
    client.disconnect()
    with pytest.raises(RpcError):
        client.call_async("echo.EchoService", "", b"")


def test_empty_service_name_rejected(pair):
    _, client = pair
    with pytest.raises(InvalidParamError):
        client.call_async("", "", b"")


def test_connect_twice_keeps_working(pair):
    _, client = pair
    assert client.connect() is client
    response = await_timeout(client.call_async("echo.EchoService", "", b"again"), 5000)
    assert response.payload == b"Echo: again"


def test_broadcast_mode_rejected():
    with pytest.raises(InvalidParamError):
        Client(Config(address="tcp://127.0.0.1:1", mode=Mode.BROADCAST))


def test_over_tcp():
    server = Server(Config(address="tcp://127.0.0.1:*", transport=Transport.TCP))
    server.register_service("echo", lambda payload: payload)
    with server:
        config = Config(address=server.endpoint, transport=Transport.TCP)
        with Client(config) as client:
            response = await_timeout(client.call_async("echo", "echo", b"A" * 128), 5000)
    assert response.payload == b"A" * 128