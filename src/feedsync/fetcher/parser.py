"""基于 feedparser 的 RSS/Atom 解析器."""

import asyncio
import logging
import time
from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any

import feedparser

from feedsync.errors import MalformedContentError
from feedsync.fetcher.base import ParsedFeed
from feedsync.models.entry import FeedMetadata, NormalizedEntry

logger = logging.getLogger(__name__)


def _struct_to_datetime(value: time.struct_time | None) -> datetime | None:
    """feedparser 的 *_parsed 字段已归一化为 UTC."""
    if not value:
        return None
    try:
        return datetime(*value[:6], tzinfo=UTC)
    except (TypeError, ValueError):
        return None


def normalize_entry(entry: Any) -> NormalizedEntry:
    """将 feedparser 条目转换为标准化条目."""
    content = None
    contents = entry.get("content") or []
    if contents:
        content = contents[0].get("value") or None

    published_at = _struct_to_datetime(
        entry.get("published_parsed") or entry.get("updated_parsed")
    )

    return NormalizedEntry(
        title=entry.get("title"),
        link=entry.get("link"),
        description=entry.get("summary") or None,
        content=content,
        author=entry.get("author"),
        published_at=published_at,
        guid=entry.get("id"),
    )


class FeedParser:
    """解析 RSS/Atom 文档."""

    async def parse(self, raw: bytes) -> ParsedFeed:
        """解析原始字节；feedparser 是同步库，这里放到线程池执行."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.parse_sync, raw)

    def parse_sync(self, raw: bytes) -> ParsedFeed:
        """同步解析."""
        parsed = feedparser.parse(raw)
        entries = list(parsed.entries)

        # 空 feed 是合法的；既无条目又无法识别格式才视为格式错误（空文档没有 version）
        if not entries and (parsed.bozo or not parsed.get("version")):
            error = parsed.get("bozo_exception")
            logger.warning(f"RSS 解析失败: {error}")
            raise MalformedContentError(f"无法解析 RSS/Atom 内容: {error or '未知格式'}")

        if parsed.bozo:
            logger.info(f"RSS 解析警告（已容错）: {parsed.get('bozo_exception')}")

        feed_info = parsed.feed
        metadata = FeedMetadata(
            title=(feed_info.get("title") or "").strip() or None,
            description=feed_info.get("subtitle") or None,
            link=feed_info.get("link") or None,
        )

        return ParsedFeed(
            metadata=metadata,
            entries=self._iter_entries(entries),
            total=len(entries),
        )

    def _iter_entries(self, entries: list[Any]) -> Iterator[NormalizedEntry]:
        for entry in entries:
            yield normalize_entry(entry)
