# src/deeplx_relay/observability/performance.py
"""进程内的请求性能记录与统计。"""

from __future__ import annotations

from collections import deque
from dataclasses import asdict, dataclass
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

STATS_WINDOW = 100


@dataclass
class RequestMetrics:
    request_id: str
    endpoint: str
    started_at: float
    duration: float = 0.0
    cache_hit: bool = False
    proxy_used: bool = False
    rate_limited: bool = False
    retry_count: int = 0
    success: bool = False
    code: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class PerformanceTracker:
    """有界地保存最近的请求指标，并计算最近 100 条的汇总统计。"""

    def __init__(self, history_size: int = 1000) -> None:
        self._records: deque[RequestMetrics] = deque(maxlen=history_size)

    def record(self, metrics: RequestMetrics) -> None:
        self._records.append(metrics)

    def __len__(self) -> int:
        return len(self._records)

    def stats(self) -> dict[str, Any] | None:
        if not self._records:
            return None

        recent = list(self._records)[-STATS_WINDOW:]
        successful = [m for m in recent if m.success]
        total = len(recent)
        avg_duration = (
            sum(m.duration for m in successful) / len(successful) if successful else 0.0
        )
        return {
            "total_requests": total,
            "successful_requests": len(successful),
            "failed_requests": total - len(successful),
            "success_rate": len(successful) / total * 100,
            "average_duration": round(avg_duration, 3),
            "cache_hit_rate": sum(1 for m in recent if m.cache_hit) / total * 100,
            "proxy_usage_rate": sum(1 for m in recent if m.proxy_used) / total * 100,
            "rate_limited_requests": sum(1 for m in recent if m.rate_limited),
        }
