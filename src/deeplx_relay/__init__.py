# src/deeplx_relay/__init__.py
"""
deeplx-relay：一个带限流、缓存、熔断与重试的翻译中继服务。
"""

__version__ = "1.0.0"
