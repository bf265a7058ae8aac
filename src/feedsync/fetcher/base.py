"""抓取与解析能力的接口约定."""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol

from feedsync.models.entry import FeedMetadata, NormalizedEntry


@dataclass
class ParsedFeed:
    """解析结果：元信息 + 惰性条目序列.

    ``entries`` 只能遍历一次；``total`` 在源提供条目数时已知，否则为 None。
    """

    metadata: FeedMetadata
    entries: Iterator[NormalizedEntry]
    total: int | None = None


class Fetcher(Protocol):
    """抓取原始内容.

    失败时抛出 ``UnreachableError`` 或 ``FetchTimeoutError``。
    """

    async def fetch(self, url: str) -> bytes: ...


class Parser(Protocol):
    """将原始内容解析为标准化条目.

    失败时抛出 ``MalformedContentError``。
    """

    async def parse(self, raw: bytes) -> ParsedFeed: ...
