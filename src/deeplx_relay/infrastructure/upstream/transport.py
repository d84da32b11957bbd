# src/deeplx_relay/infrastructure/upstream/transport.py
"""
上游 HTTP 传输层。

每次调用都有硬性截止时间；超时、传输错误与非 2xx 应答分别映射为
`UpstreamTimeoutError`、`UpstreamTransportError` 与 `UpstreamHttpError`。
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping

import httpx
import structlog

from deeplx_relay.core.exceptions import (
    UpstreamHttpError,
    UpstreamTimeoutError,
    UpstreamTransportError,
)

logger = structlog.get_logger(__name__)

CONTENT_TYPE = "application/json; charset=utf-8"


class UpstreamTransport:
    """对 `httpx.AsyncClient` 的薄封装。"""

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._owns_client = client is None

    @property
    def timeout(self) -> float:
        return self._timeout

    async def post(
        self, endpoint: str, body: str, headers: Mapping[str, str] | None = None
    ) -> str:
        """POST 请求体并返回应答文本。"""
        merged_headers = {"Content-Type": CONTENT_TYPE, **(headers or {})}
        try:
            response = await asyncio.wait_for(
                self._client.post(
                    endpoint,
                    content=body.encode("utf-8"),
                    headers=merged_headers,
                    timeout=self._timeout,
                ),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise UpstreamTimeoutError(
                f"Request timeout after {self._timeout:g} seconds to {endpoint}"
            ) from e
        except httpx.TransportError as e:
            raise UpstreamTransportError(
                f"Transport error contacting {endpoint}: {e}"
            ) from e

        if not response.is_success:
            message = f"Request failed with status {response.status_code}"
            if response.text:
                message += f": {response.text}"
            if response.status_code == 400:
                logger.error(
                    "上游返回 400，请检查请求体格式。",
                    endpoint=endpoint,
                    body_size=len(body),
                )
            raise UpstreamHttpError(message, status=response.status_code)

        return response.text

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
