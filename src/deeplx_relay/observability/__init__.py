# src/deeplx_relay/observability/__init__.py
"""可观测性：结构化日志与进程内性能统计。"""
