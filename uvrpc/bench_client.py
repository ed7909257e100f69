"""Benchmark client that measures serial, callback and concurrent echo calls."""

from __future__ import annotations

import sys
import threading
import time
from concurrent import futures
from typing import Sequence

from uvrpc.bench_server import DEFAULT_ADDRESS, SERVICE_NAME, _config_for
from uvrpc.client import Client, await_timeout
from uvrpc.errors import InvalidParamError, RpcError, RpcTimeoutError, Status
from uvrpc.stats import LatencyStats, TestResult, build_result

DEFAULT_NUM_REQUESTS = 100
DEFAULT_CONCURRENCY = 10
DEFAULT_PAYLOAD_SIZE = 128
WARMUP_REQUESTS = 50
DEFAULT_TIMEOUT_MS = 30000
AWAIT_TIMEOUT_MS = 5000

METHOD_NAME = "echo"

_RULE = "=" * 40


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


def _check_count(num_requests: int) -> None:
    if num_requests < 1:
        raise InvalidParamError("number of requests must be at least 1")


def _report(result: TestResult) -> None:
    print(f"  Total time:     {result.total_time_ms:.2f} ms")
    print(f"  Throughput:     {result.throughput_ops_per_sec:.2f} ops/s")
    print(f"  Success/failed: {result.success_count}/{result.failed_count}")
    print(f"  Avg latency:    {result.avg_latency_ms:.3f} ms")
    print(_RULE)


def _finish(stats: LatencyStats, num_requests: int, start: float, succeeded: int) -> TestResult:
    elapsed = max(_elapsed_ms(start), 1e-9)
    result = build_result(stats, num_requests, elapsed, succeeded)
    _report(result)
    return result


def warmup(client: Client, payload: bytes, count: int = WARMUP_REQUESTS) -> int:
    """Send count echo requests without timing them; return how many succeeded."""
    print(f"Warming up ({count} requests)...")
    calls = [client.call(SERVICE_NAME, METHOD_NAME, payload) for _ in range(count)]
    done, _ = futures.wait(calls, timeout=AWAIT_TIMEOUT_MS / 1000.0)
    succeeded = sum(1 for call in done if call.result().status is Status.OK)
    print("Warm-up complete")
    print()
    return succeeded


def run_serial_await(client: Client, num_requests: int, payload: bytes) -> TestResult:
    """Send one request at a time and wait for each response."""
    _check_count(num_requests)
    print("[Test 1] Serial await")
    stats = LatencyStats(num_requests)
    succeeded = 0
    start = time.perf_counter()
    for _ in range(num_requests):
        req_start = time.perf_counter()
        try:
            response = await_timeout(
                client.call_async(SERVICE_NAME, METHOD_NAME, payload), AWAIT_TIMEOUT_MS
            )
        except RpcTimeoutError:
            continue
        if response.status is Status.OK:
            succeeded += 1
            stats.record(_elapsed_ms(req_start))
    return _finish(stats, num_requests, start, succeeded)


def run_callback(
    client: Client, num_requests: int, payload: bytes, timeout_ms: int = DEFAULT_TIMEOUT_MS
) -> TestResult:
    """Send every request with a callback, then wait for all or until timeout_ms passes."""
    _check_count(num_requests)
    print("[Test 2] Callback")
    stats = LatencyStats(num_requests)
    lock = threading.Lock()
    all_done = threading.Event()
    counters = {"completed": 0, "succeeded": 0}

    def make_callback(req_start: float):
        def on_response(status: Status, _payload: bytes) -> None:
            latency = _elapsed_ms(req_start)
            with lock:
                if status is Status.OK:
                    counters["succeeded"] += 1
                    stats.record(latency)
                counters["completed"] += 1
                if counters["completed"] >= num_requests:
                    all_done.set()

        return on_response

    start = time.perf_counter()
    for _ in range(num_requests):
        client.call(SERVICE_NAME, METHOD_NAME, payload, make_callback(time.perf_counter()))

    remaining = timeout_ms / 1000.0 - (time.perf_counter() - start)
    if not all_done.wait(max(remaining, 0.0)):
        with lock:
            completed = counters["completed"]
        print(f"  Timed out waiting for responses ({completed}/{num_requests} completed)")

    with lock:
        succeeded = counters["succeeded"]
        snapshot = LatencyStats(num_requests)
        for latency in stats.latencies:
            snapshot.record(latency)
    return _finish(snapshot, num_requests, start, succeeded)


def run_async_await(
    client: Client, num_requests: int, concurrency: int, payload: bytes
) -> TestResult:
    """Send requests in batches of concurrency and await each batch."""
    _check_count(num_requests)
    if concurrency < 1:
        raise InvalidParamError("concurrency must be at least 1")
    print(f"[Test 3] Async/await (concurrency: {concurrency})")
    stats = LatencyStats(num_requests)
    succeeded = 0
    start = time.perf_counter()
    for first in range(0, num_requests, concurrency):
        batch = min(concurrency, num_requests - first)
        sent = []
        for _ in range(batch):
            req_start = time.perf_counter()
            sent.append((req_start, client.call_async(SERVICE_NAME, METHOD_NAME, payload)))
        for req_start, call in sent:
            try:
                response = await_timeout(call, AWAIT_TIMEOUT_MS)
            except RpcTimeoutError:
                continue
            if response.status is Status.OK:
                succeeded += 1
                stats.record(_elapsed_ms(req_start))
    return _finish(stats, num_requests, start, succeeded)


def format_summary(serial: TestResult, callback: TestResult, concurrent: TestResult) -> str:
    """Compare the three runs, with throughput relative to the serial run."""
    base = serial.throughput_ops_per_sec
    lines = [
        _RULE,
        "  Performance summary",
        _RULE,
        f"Serial await: {serial.throughput_ops_per_sec:8.2f} ops/s "
        f"(latency: {serial.avg_latency_ms:.3f} ms)",
        f"Callback:     {callback.throughput_ops_per_sec:8.2f} ops/s "
        f"(latency: {callback.avg_latency_ms:.3f} ms) "
        f"({callback.throughput_ops_per_sec / base:.1f}x)",
        f"Async/Await:  {concurrent.throughput_ops_per_sec:8.2f} ops/s "
        f"(latency: {concurrent.avg_latency_ms:.3f} ms) "
        f"({concurrent.throughput_ops_per_sec / base:.1f}x)",
        _RULE,
    ]
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the benchmark against a server; return the exit code."""
    args = list(sys.argv[1:] if argv is None else argv)
    address = args[0] if args else DEFAULT_ADDRESS
    try:
        num_requests = int(args[1]) if len(args) > 1 else DEFAULT_NUM_REQUESTS
        concurrency = int(args[2]) if len(args) > 2 else DEFAULT_CONCURRENCY
        payload_size = int(args[3]) if len(args) > 3 else DEFAULT_PAYLOAD_SIZE
    except ValueError as exc:
        print(f"Invalid argument: {exc}", file=sys.stderr)
        return 2
    if num_requests < 1 or concurrency < 1 or payload_size < 0:
        print("Requests and concurrency must be positive, payload size not negative",
              file=sys.stderr)
        return 2

    print(_RULE)
    print("  UVRPC Benchmark Client")
    print(_RULE)
    print(f"Server address: {address}")
    print(f"Requests:       {num_requests}")
    print(f"Concurrency:    {concurrency}")
    print(f"Payload size:   {payload_size} bytes")
    print(_RULE)
    print()

    try:
        client = Client(_config_for(address))
    except RpcError as exc:
        print(f"Failed to create client: {exc}", file=sys.stderr)
        return 1
    try:
        client.connect()
    except RpcError as exc:
        print(f"Failed to connect to server: {exc}", file=sys.stderr)
        return 1

    print("Connected to server")
    print()
    payload = b"A" * payload_size
    try:
        warmup(client, payload)
        serial = run_serial_await(client, num_requests, payload)
        print()
        callback = run_callback(client, num_requests, payload)
        print()
        concurrent = run_async_await(client, num_requests, concurrency, payload)
    finally:
        client.disconnect()

    print()
    print(format_summary(serial, callback, concurrent))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())