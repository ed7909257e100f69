import math

import pytest

from uvrpc.errors import InvalidParamError
from uvrpc.stats import LatencyStats, build_result, percentile


def test_percentile_of_empty_data_is_zero():
    assert percentile([], 50) == 0.0


@pytest.mark.parametrize(
    "p, expected",
    [(0, 1.0), (50, 5.0), (95, 10.0), (99, 10.0), (100, 10.0)],
)
def test_percentile_nearest_rank(p, expected):
    data = [float(v) for v in range(1, 11)]
    assert percentile(data, p) == expected


def test_percentile_of_hundred_samples():
    data = [float(v) for v in range(100, 0, -1)]
    assert percentile(data, 50) == 50.0
    assert percentile(data, 95) == 95.0
    assert percentile(data, 99) == 99.0


def test_percentile_leaves_input_unsorted():
    data = [3.0, 1.0, 2.0]
    assert percentile(data, 50) == 2.0
    assert data == [3.0, 1.0, 2.0]


def test_record_tracks_sum_min_max():
    stats = LatencyStats(capacity=10)
    for value in (2.0, 5.0, 1.0):
        assert stats.record(value) is True
    assert stats.count == 3
    assert stats.total == 8.0
    assert stats.minimum == 1.0
    assert stats.maximum == 5.0


def test_record_drops_samples_beyond_capacity():
    stats = LatencyStats(capacity=2)
    stats.record(1.0)
    stats.record(2.0)
    assert stats.record(100.0) is False
    assert stats.latencies == [1.0, 2.0]
    assert stats.total == 3.0
    assert stats.maximum == 2.0


def test_empty_stats():
    stats = LatencyStats(capacity=5)
    assert math.isnan(stats.average())
    assert stats.minimum == math.inf
    assert stats.maximum == -math.inf
    assert stats.percentile(99) == 0.0


def test_average_and_percentile_method():
    stats = LatencyStats(capacity=4)
    for value in (4.0, 2.0, 6.0, 8.0):
        stats.record(value)
    assert stats.average() == 5.0
    assert stats.percentile(50) == 4.0
    assert stats.percentile(99) == 8.0


def test_negative_capacity_rejected():
    with pytest.raises(InvalidParamError):
        LatencyStats(capacity=-1)


def test_build_result_figures():
    stats = LatencyStats(capacity=4)
    for value in (1.0, 2.0, 3.0):
        stats.record(value)
    result = build_result(stats, 4, 2000.0, 3)
    assert result.total_requests == 4
    assert result.success_count == 3
    assert result.failed_count == 1
    assert result.total_time_ms == 2000.0
    assert result.throughput_ops_per_sec == pytest.approx(2.0)
    assert result.avg_latency_ms == 2.0
    assert result.min_latency_ms == 1.0
    assert result.max_latency_ms == 3.0
    assert result.p50_latency_ms == 2.0
    assert result.p95_latency_ms == 3.0
    assert result.p99_latency_ms == 3.0


def test_build_result_without_successes():
    stats = LatencyStats(capacity=3)
    result = build_result(stats, 3, 10.0, 0)
    assert result.failed_count == 3
    assert math.isnan(result.avg_latency_ms)
    assert result.p99_latency_ms == 0.0


@pytest.mark.parametrize(
    "num_requests, elapsed_ms, succeeded",
    [(4, 0.0, 1), (4, -1.0, 1), (4, 10.0, 5), (4, 10.0, -1), (-1, 10.0, 0)],
)
def test_build_result_rejects_bad_input(num_requests, elapsed_ms, succeeded):
    with pytest.raises(InvalidParamError):
        build_result(LatencyStats(capacity=1), num_requests, elapsed_ms, succeeded)