"""Latency sampling and the summary figures of a benchmark run."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

from uvrpc.errors import InvalidParamError


def _nearest_rank(data: Sequence[float], pct: float) -> float:
    if not data:
        return 0.0
    ordered = sorted(data)
    count = len(ordered)
    index = math.ceil((pct / 100.0) * count) - 1
    index = min(max(index, 0), count - 1)
    return ordered[index]


def percentile(data: Sequence[float], percentile: float) -> float:
    """Return the nearest-rank percentile of the data, or 0.0 for no data.

    The data is not modified; a sorted copy is used.
    """
    return _nearest_rank(data, percentile)


@dataclass
class LatencyStats:
    """Latency samples in milliseconds, up to a fixed capacity."""

    capacity: int
    latencies: list[float] = field(default_factory=list)
    total: float = 0.0
    minimum: float = math.inf
    maximum: float = -math.inf

    def __post_init__(self) -> None:
        if self.capacity < 0:
            raise InvalidParamError("capacity must not be negative")

    @property
    def count(self) -> int:
        return len(self.latencies)

    def record(self, latency_ms: float) -> bool:
        """Keep a sample; samples beyond the capacity are dropped. Return whether kept."""
        if self.count >= self.capacity:
            return False
        self.latencies.append(latency_ms)
        self.total += latency_ms
        self.minimum = min(self.minimum, latency_ms)
        self.maximum = max(self.maximum, latency_ms)
        return True

    def average(self) -> float:
        """Mean of the kept samples; NaN when there are none."""
        if not self.latencies:
            return math.nan
        return self.total / self.count

    def percentile(self, percentile: float) -> float:
        """Nearest-rank percentile of the kept samples."""
        return _nearest_rank(self.latencies, percentile)


@dataclass(frozen=True)
class TestResult:
    """Figures describing one benchmark run."""

    __test__ = False

    total_requests: int
    success_count: int
    failed_count: int
    total_time_ms: float
    throughput_ops_per_sec: float
    avg_latency_ms: float
    min_latency_ms: float
    max_latency_ms: float
    p50_latency_ms: float
    p95_latency_ms: float
    p99_latency_ms: float


def build_result(
    stats: LatencyStats, num_requests: int, elapsed_ms: float, succeeded: int
) -> TestResult:
    """Summarise a run of num_requests calls that took elapsed_ms in total."""
    if num_requests < 0:
        raise InvalidParamError("number of requests must not be negative")
    if not 0 <= succeeded <= num_requests:
        raise InvalidParamError("successful requests must lie between 0 and the total")
    if elapsed_ms <= 0:
        raise InvalidParamError("elapsed time must be positive")
    return TestResult(
        total_requests=num_requests,
        success_count=succeeded,
        failed_count=num_requests - succeeded,
        total_time_ms=elapsed_ms,
        throughput_ops_per_sec=(num_requests / elapsed_ms) * 1000.0,
        avg_latency_ms=stats.average(),
        min_latency_ms=stats.minimum,
        max_latency_ms=stats.maximum,
        p50_latency_ms=stats.percentile(50),
        p95_latency_ms=stats.percentile(95),
        p99_latency_ms=stats.percentile(99),
    )