# uvrpc

Request/response RPC over ZeroMQ: the server listens on a ROUTER socket, the
client talks through a DEALER socket, and every message is a msgpack array.
Services are registered under string names; a handler takes the request payload
as `bytes` and returns the response payload as `bytes`.

The package also installs two commands, an echo server and a benchmark client,
that measure round-trip latency and throughput.

## Installing

```
pip install .
```

Tests:

```
pip install ".[test]"
pytest
```

## A first call

```python
from uvrpc.config import Config, Transport
from uvrpc.server import Server
from uvrpc.client import Client, await_timeout

config = Config(address="tcp://127.0.0.1:7000", transport=Transport.TCP)

server = Server(config)
server.register_service("echo", lambda payload: payload)

with server, Client(config) as client:
    response = await_timeout(client.call_async("echo", "echo", b"hi"), 1000)
    print(response.status, response.payload)   # Status.OK b'hi'
```

## Modules

### `uvrpc.config`

- `Transport` (`INPROC`, `IPC`, `TCP`, `UDP`), `Mode` (`SERVER_CLIENT`,
  `BROADCAST`) and `PerformanceMode` (`LOW_LATENCY`, `BALANCED`,
  `HIGH_THROUGHPUT`).
- `Config` is a dataclass holding the address, transport, mode, an optional
  ZeroMQ context (`zmq_ctx`; the shared global context is used when it is
  `None`) and the socket tuning values: high-water marks, TCP buffers, TCP
  keepalive, reconnect intervals, linger, batch size and I/O threads.
  - `apply_perf_mode(mode)` sets all tuning values of a preset.
  - `set_hwm(sndhwm, rcvhwm)`, `set_tcp_keepalive(enable, idle, cnt, intvl)`,
    `set_reconnect(ivl, ivl_max)` and `set_udp_multicast(group)` change single
    settings; they check their arguments and return the config so calls chain.
  - `validate()` checks that an address is set and starts with the scheme of
    the transport (`tcp://`, `ipc://`, `inproc://`, `udp://`), and that the
    other values are in range.
  - `copy()` returns an independent copy.

Invalid values raise `InvalidParamError`.

### `uvrpc.server`

`Server(config)` validates the config on construction.

- `register_service(service_name, handler)` adds a handler; registering a name
  again replaces the old handler.
- `start()` binds the address and answers requests on a background thread; it
  raises `RpcError` if the address cannot be bound or the server is already
  running. `endpoint` gives the address actually bound.
- `stop()` stops answering and closes the socket.
- `services_count()` reports how many services are registered.
- The server is a context manager (`with server:` starts and stops it).

A request for service `S` and method `M` goes to the handler registered as
`"S.M"` if there is one, otherwise to the handler registered as `"S"`. If
neither exists the reply carries `Status.SERVICE_NOT_FOUND`. A handler that
raises an `RpcError` replies with that error's status; any other exception, or
a return value that is not bytes, replies with `Status.ERROR`. Frames that do
not decode as requests are dropped without a reply.

### `uvrpc.client`

`Client(config)` validates the config; `connect()` opens the connection and
starts the I/O thread, `disconnect()` closes it. Calls still waiting at
disconnect complete with `Status.ERROR`. The client is a context manager.

- `call(service_name, method_name, payload, callback=None)` sends a request;
  the callback, if given, is run on the I/O thread with `(status, payload)`.
  It also returns a `concurrent.futures.Future`.
- `call_async(service_name, method_name, payload)` returns a future that
  resolves to a `Response`.
- `call_sync(service_name, method_name, request, serialize, deserialize)`
  serializes `request`, waits for the reply, raises the exception matching a
  non-OK status, and returns `deserialize(payload)`.
- `pending_requests()` tells how many calls are awaiting a reply.

Sending on a client that is not connected raises `RpcError`.

Waiting helpers:

- `await_timeout(call, timeout_ms=None)` returns the `Response`, raising
  `RpcTimeoutError` if it does not arrive in time (`None` waits indefinitely).
- `await_all(calls)` returns all responses in order.
- `await_any(calls)` returns the index of the first call to complete.

### `uvrpc.protocol`

`Request(service_name, method_name, payload, request_id)` and
`Response(request_id, status, payload)` are frozen dataclasses that check
their fields. `encode_request` / `decode_request` use the array
`[request_id, service, method, payload]`; `encode_response` /
`decode_response` use `[request_id, status, payload]`. Decoding malformed data
raises `InvalidParamError`.

### `uvrpc.errors`

`Status` lists the status codes (`OK` 0, `ERROR` -1, `INVALID_PARAM` -2,
`NO_MEMORY` -3, `SERVICE_NOT_FOUND` -4, `TIMEOUT` -5). `RpcError` is the base
exception, with `InvalidParamError`, `NoMemoryError`, `ServiceNotFoundError`
and `RpcTimeoutError` below it; each carries a `status`.
`error_for_status(status, message)` returns the matching exception (an unknown
code gives a plain `RpcError`; `OK` raises `ValueError`).

### `uvrpc.stats`

- `LatencyStats(capacity)` keeps up to `capacity` samples in milliseconds
  with their sum, minimum and maximum; `record` returns whether a sample was
  kept, `average()` gives the mean (NaN with no samples) and
  `percentile(p)` the nearest-rank percentile.
- `percentile(data, p)` computes the nearest-rank percentile of any sequence
  without changing it (0.0 for no data).
- `build_result(stats, num_requests, elapsed_ms, succeeded)` returns a
  `TestResult` with counts, total time, throughput and average, min, max, P50,
  P95 and P99 latencies.

## Benchmarking

Start the echo server (default `tcp://127.0.0.1:6002`); stop it with Ctrl+C:

```
uvrpc-bench-server
uvrpc-bench-server tcp://127.0.0.1:7000
```

The transport is taken from the address scheme. The server registers one
service, `echo`, which answers with the request bytes unchanged
(`uvrpc.bench_server.echo_handler`). `uvrpc.bench_server.serve(address,
stop_event)` runs the same server from code until the event is set.

Run the client in another terminal. Its positional arguments are the server
address, the number of requests (default 100), the batch size of the
concurrent test (default 10) and the payload size in bytes (default 128):

```
uvrpc-bench-client
uvrpc-bench-client tcp://127.0.0.1:7000 1000 20 256
```

It sends 50 warm-up requests, then runs three tests — serial await
(`run_serial_await`), callbacks with a 30 second overall limit
(`run_callback`) and batched concurrent await (`run_async_await`) — and prints
a summary (`format_summary`) comparing each throughput with the serial one.
Bad arguments exit with code 2, a failure to create or connect the client with
code 1.

## What it does not do

- Only the server/client pattern is served. A `Config` with
  `Mode.BROADCAST`, or with the `UDP` transport, is rejected by both `Server`
  and `Client` with `InvalidParamError`; there is no publish/subscribe support.
- There is no code generator for typed service stubs: payloads are raw bytes,
  and typed calls go through `call_sync` with serializer functions you supply.
- The benchmark commands only drive a separately started echo server; there is
  no single command that starts a server and client together across several
  transports.