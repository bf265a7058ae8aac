"""测试配置和 fixtures."""

import asyncio
from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from feedsync.core.channel import EventChannel
from feedsync.core.orchestrator import SyncOrchestrator
from feedsync.fetcher.http_fetcher import HttpFetcher
from feedsync.fetcher.pipeline import FetchParsePipeline
from feedsync.models.database import build_engine, build_session_factory, create_tables
from feedsync.models.feed import Feed

FEED_URL = "https://example.com/feed.xml"


def build_rss(
    items: list[dict[str, Any]],
    title: str = "Example Feed",
    link: str = "https://example.com/",
    description: str = "An example feed",
) -> bytes:
    """生成 RSS 2.0 文档."""
    parts = []
    for item in items:
        fields = []
        if "title" in item:
            fields.append(f"<title>{item['title']}</title>")
        if "link" in item:
            fields.append(f"<link>{item['link']}</link>")
        if "guid" in item:
            fields.append(f'<guid isPermaLink="false">{item["guid"]}</guid>')
        if "description" in item:
            fields.append(f"<description>{item['description']}</description>")
        if "content" in item:
            fields.append(f"<content:encoded><![CDATA[{item['content']}]]></content:encoded>")
        if "author" in item:
            fields.append(f"<author>{item['author']}</author>")
        if "pub_date" in item:
            fields.append(f"<pubDate>{item['pub_date']}</pubDate>")
        parts.append("<item>" + "".join(fields) + "</item>")

    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">'
        f"<channel><title>{title}</title><link>{link}</link>"
        f"<description>{description}</description>"
        + "".join(parts)
        + "</channel></rss>"
    ).encode()


def rss_item(guid: str, **overrides: Any) -> dict[str, Any]:
    """生成单个条目定义."""
    item: dict[str, Any] = {
        "guid": guid,
        "title": f"Article {guid}",
        "link": f"https://example.com/{guid}",
        "description": f"Summary of {guid}",
        "pub_date": "Mon, 06 Jan 2025 10:00:00 GMT",
    }
    item.update(overrides)
    return item


class FakeSource:
    """模拟的 RSS 源站（通过 httpx.MockTransport 提供内容）."""

    def __init__(self) -> None:
        self.documents: dict[str, bytes] = {}
        self.statuses: dict[str, int] = {}
        self.errors: dict[str, Exception] = {}
        self.requests: list[str] = []
        self.gate: asyncio.Event | None = None

    def serve(self, url: str, items: list[dict[str, Any]], **kwargs: Any) -> None:
        self.documents[url] = build_rss(items, **kwargs)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)

        if self.gate is not None:
            await self.gate.wait()

        if url in self.errors:
            raise self.errors[url]
        if url in self.statuses:
            return httpx.Response(self.statuses[url], request=request)
        if url not in self.documents:
            return httpx.Response(404, request=request)
        return httpx.Response(200, content=self.documents[url], request=request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """创建测试用的临时文件数据库."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """创建测试会话工厂."""
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def async_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """创建测试会话."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def source() -> FakeSource:
    """模拟源站."""
    return FakeSource()


@pytest_asyncio.fixture
async def pipeline(source: FakeSource) -> AsyncGenerator[FetchParsePipeline, None]:
    """基于模拟源站的抓取-解析流水线."""
    client = httpx.AsyncClient(transport=source.transport)
    yield FetchParsePipeline(fetcher=HttpFetcher(client=client))
    await client.aclose()


@pytest.fixture
def channel() -> EventChannel:
    """事件通道."""
    return EventChannel(buffer_size=1000)


@pytest_asyncio.fixture
async def orchestrator(
    session_factory: async_sessionmaker[AsyncSession],
    pipeline: FetchParsePipeline,
    channel: EventChannel,
) -> AsyncGenerator[SyncOrchestrator, None]:
    """同步编排器."""
    orchestrator = SyncOrchestrator(
        session_factory,
        pipeline=pipeline,
        channel=channel,
        concurrency=4,
    )
    yield orchestrator
    await orchestrator.shutdown()


@pytest_asyncio.fixture
async def sample_feed(async_session: AsyncSession) -> Feed:
    """创建测试用的 Feed（标题仍是占位值）."""
    feed = Feed(id="feed-001", title=FEED_URL, url=FEED_URL)
    async_session.add(feed)
    await async_session.commit()
    return feed


@pytest.fixture
def make_feed(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Any]:
    """创建 Feed 的工厂."""

    async def _make(feed_id: str, url: str, **kwargs: Any) -> Feed:
        async with session_factory() as session:
            feed = Feed(id=feed_id, title=kwargs.pop("title", url), url=url, **kwargs)
            session.add(feed)
            await session.commit()
            return feed

    return _make
