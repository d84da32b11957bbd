# src/deeplx_relay/resilience/__init__.py
"""弹性组件：准入控制、熔断、重试与错误分类。"""

from .circuit_breaker import CircuitBreaker, CircuitBreakerRegistry
from .classifier import http_status, is_retryable, sanitize_error_message
from .rate_limiter import (
    AdmissionDecision,
    AdmissionResult,
    BucketPolicy,
    LimitDimension,
    RateLimiter,
)
from .retry import compute_delay, run_with_retry

__all__ = [
    "AdmissionDecision",
    "AdmissionResult",
    "BucketPolicy",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "LimitDimension",
    "RateLimiter",
    "compute_delay",
    "http_status",
    "is_retryable",
    "run_with_retry",
    "sanitize_error_message",
]
