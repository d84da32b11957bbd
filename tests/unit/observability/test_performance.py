# tests/unit/observability/test_performance.py
"""
针对 `deeplx_relay.observability.performance` 的单元测试。
"""

from deeplx_relay.observability.performance import PerformanceTracker, RequestMetrics


def _metrics(n: int, **fields: object) -> RequestMetrics:
    return RequestMetrics(request_id=str(n), endpoint="e", started_at=0.0, **fields)  # type: ignore[arg-type]


def test_empty_tracker_has_no_stats() -> None:
    assert PerformanceTracker().stats() is None


def test_stats_summarize_recent_requests() -> None:
    tracker = PerformanceTracker()
    tracker.record(_metrics(1, success=True, duration=0.2, cache_hit=True))
    tracker.record(_metrics(2, success=True, duration=0.4, proxy_used=True))
    tracker.record(_metrics(3, success=False, rate_limited=True, duration=9.0))
    tracker.record(_metrics(4, success=False, proxy_used=True))

    assert tracker.stats() == {
        "total_requests": 4,
        "successful_requests": 2,
        "failed_requests": 2,
        "success_rate": 50.0,
        # 平均耗时只统计成功请求
        "average_duration": 0.3,
        "cache_hit_rate": 25.0,
        "proxy_usage_rate": 50.0,
        "rate_limited_requests": 1,
    }


def test_history_is_bounded_and_stats_use_last_hundred() -> None:
    tracker = PerformanceTracker(history_size=150)
    for n in range(100):
        tracker.record(_metrics(n, success=False))
    for n in range(100, 200):
        tracker.record(_metrics(n, success=True))

    assert len(tracker) == 150
    stats = tracker.stats()
    assert stats is not None
    assert stats["total_requests"] == 100
    assert stats["success_rate"] == 100.0


def test_to_dict_is_json_friendly() -> None:
    data = _metrics(1, success=True, code=200).to_dict()
    assert data["request_id"] == "1"
    assert data["code"] == 200
    assert data["retry_count"] == 0
