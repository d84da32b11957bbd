# src/deeplx_relay/infrastructure/redis/streams.py
"""
使用 Redis Streams 实现 `MetricsSink` 接口。

每条指标事件以单个 `payload` 字段（JSON）追加到 Stream 末尾，
写入在后台任务中完成，绝不阻塞翻译请求。
"""

import json
from typing import Any

import redis.asyncio as aioredis
import structlog

from deeplx_relay.infrastructure.background import BackgroundTasks

logger = structlog.get_logger(__name__)


class RedisMetricsSink:
    """
    基于 Redis Streams 的指标输出端。
    """

    def __init__(
        self,
        client: aioredis.Redis,
        background: BackgroundTasks,
        stream_name: str = "deeplx:metrics",
        maxlen: int | None = 10_000,
    ):
        """
        初始化输出端。

        Args:
            client: 一个配置好的 Redis 异步客户端实例。
            background: 用于调度即发即弃写入的后台任务集合。
            stream_name: Stream 的键名。
            maxlen: Stream 的近似最大长度，None 表示不裁剪。
        """
        self._client = client
        self._background = background
        self._stream_name = stream_name
        self._maxlen = maxlen

    def record(self, event: dict[str, Any]) -> None:
        """调度一次 XADD；序列化失败只记录日志。"""
        try:
            serialized_payload = json.dumps(event, ensure_ascii=False, default=str)
        except (TypeError, ValueError) as e:
            logger.error(
                "指标事件序列化失败",
                stream=self._stream_name,
                error=str(e),
            )
            return
        self._background.spawn(
            self._publish(serialized_payload), name=f"metrics:{self._stream_name}"
        )

    async def _publish(self, serialized_payload: str) -> None:
        try:
            # Redis Streams 要求字段和值都是字符串
            await self._client.xadd(
                self._stream_name,
                {"payload": serialized_payload},
                maxlen=self._maxlen,
                approximate=True,
            )
            logger.debug("指标事件已发布到 Redis Stream", stream=self._stream_name)
        except aioredis.RedisError as e:
            logger.warning(
                "发布指标事件到 Redis Stream 失败",
                stream=self._stream_name,
                error=str(e),
            )
