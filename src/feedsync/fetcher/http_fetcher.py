"""基于 httpx 的 RSS 抓取器."""

import logging

import httpx

from feedsync.config import get_settings
from feedsync.errors import FetchTimeoutError, UnreachableError

logger = logging.getLogger(__name__)


class HttpFetcher:
    """抓取 RSS 原始字节."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
    ) -> None:
        settings = get_settings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout or settings.fetch_timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": user_agent or settings.fetch_user_agent},
        )

    async def close(self) -> None:
        """关闭客户端（仅关闭自己创建的客户端）."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch(self, url: str) -> bytes:
        """抓取 URL 内容."""
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.warning(f"抓取超时: {url} - {e}")
            raise FetchTimeoutError(f"请求超时: {url}") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning(f"抓取失败: {url} - HTTP {status}")
            raise UnreachableError(f"HTTP {status}: {url}") from e
        except httpx.HTTPError as e:
            logger.warning(f"抓取失败: {url} - {e}")
            raise UnreachableError(f"无法访问: {url} ({e})") from e

        return response.content
