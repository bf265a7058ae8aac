"""抓取-解析流水线."""

import asyncio
import logging
from collections.abc import Iterator

from feedsync.fetcher.base import Fetcher, ParsedFeed, Parser
from feedsync.fetcher.http_fetcher import HttpFetcher
from feedsync.fetcher.parser import FeedParser
from feedsync.models.entry import FeedMetadata, NormalizedEntry
from feedsync.models.feed import Feed

logger = logging.getLogger(__name__)


class FeedStream:
    """单次同步的条目流（只能遍历一次）."""

    def __init__(self, parsed: ParsedFeed) -> None:
        self.metadata: FeedMetadata = parsed.metadata
        self.total: int | None = parsed.total
        self._entries: Iterator[NormalizedEntry] = parsed.entries

    def __aiter__(self) -> "FeedStream":
        return self

    async def __anext__(self) -> NormalizedEntry:
        try:
            entry = next(self._entries)
        except StopIteration:
            raise StopAsyncIteration from None
        # 每条之间让出事件循环，保证进度事件及时发出
        await asyncio.sleep(0)
        return entry


class FetchParsePipeline:
    """给定 Feed，抓取原始内容并产出标准化条目.

    失败（网络/超时/格式）在 ``open`` 时一次性抛出，流水线内部不重试。
    """

    def __init__(
        self,
        fetcher: Fetcher | None = None,
        parser: Parser | None = None,
    ) -> None:
        self.fetcher = fetcher or HttpFetcher()
        self.parser = parser or FeedParser()

    async def open(self, feed: Feed) -> FeedStream:
        """抓取并解析 feed，返回条目流."""
        raw = await self.fetcher.fetch(feed.url)
        logger.debug(f"抓取完成: {feed.url} ({len(raw)} 字节)")
        parsed = await self.parser.parse(raw)
        return FeedStream(parsed)

    async def close(self) -> None:
        """释放抓取器资源."""
        close = getattr(self.fetcher, "close", None)
        if close is not None:
            await close()
