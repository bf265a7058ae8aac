"""测试订阅与阅读服务."""

import asyncio

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from feedsync.core.orchestrator import SyncOrchestrator
from feedsync.core.service import FeedService
from feedsync.core.store import ArticleStore
from feedsync.errors import DuplicateUrlError, FailureReason, FeedNotFoundError
from feedsync.fetcher.extractor import FullTextResult
from feedsync.models.entry import NormalizedEntry
from feedsync.models.feed import Feed

from .conftest import FEED_URL, FakeSource, rss_item


class FakeExtractor:
    """记录调用次数的全文提取器."""

    def __init__(self, result: FullTextResult) -> None:
        self.result = result
        self.calls: list[str] = []

    async def fetch(self, url: str) -> FullTextResult:
        self.calls.append(url)
        return self.result


class TestFeedLifecycle:
    """测试订阅生命周期."""

    async def test_add_feed_waits_for_first_sync(
        self,
        async_session: AsyncSession,
        orchestrator: SyncOrchestrator,
        source: FakeSource,
    ) -> None:
        """同步模式下返回回填后的订阅源和首次同步结果."""
        source.serve(FEED_URL, [rss_item("g1"), rss_item("g2")], title="My Blog")
        service = FeedService(async_session, orchestrator)

        feed, result = await service.add_feed(FEED_URL)

        assert result is not None
        assert result.succeeded
        assert result.inserted == 2
        assert feed.title == "My Blog"
        assert feed.last_updated is not None
        assert len(await service.list_articles(feed_id=feed.id)) == 2

    async def test_add_feed_in_background(
        self,
        async_session: AsyncSession,
        orchestrator: SyncOrchestrator,
        source: FakeSource,
    ) -> None:
        """后台模式立即返回，同步在后台完成."""
        source.serve(FEED_URL, [rss_item("g1")])
        service = FeedService(async_session, orchestrator)

        feed, result = await service.add_feed(FEED_URL, wait=False)

        assert result is None
        assert feed.title == FEED_URL
        assert orchestrator.is_running(feed.id)

        background = await orchestrator.wait(feed.id)
        assert background is not None
        assert background.inserted == 1

    async def test_add_feed_keeps_subscription_on_failure(
        self,
        async_session: AsyncSession,
        orchestrator: SyncOrchestrator,
        source: FakeSource,
    ) -> None:
        """首次同步失败时订阅仍然保留."""
        source.statuses[FEED_URL] = 503
        service = FeedService(async_session, orchestrator)

        feed, result = await service.add_feed(FEED_URL)

        assert result is not None
        assert result.status.reason == FailureReason.UNREACHABLE
        assert [f.id for f in await service.list_feeds()] == [feed.id]
        assert feed.last_updated is None

    async def test_add_duplicate(
        self,
        async_session: AsyncSession,
        orchestrator: SyncOrchestrator,
        source: FakeSource,
    ) -> None:
        """重复订阅失败."""
        source.serve(FEED_URL, [])
        service = FeedService(async_session, orchestrator)
        await service.add_feed(FEED_URL)

        with pytest.raises(DuplicateUrlError):
            await service.add_feed(FEED_URL)

    async def test_delete_during_sync_leaves_no_articles(
        self,
        async_session: AsyncSession,
        orchestrator: SyncOrchestrator,
        source: FakeSource,
        session_factory: async_sessionmaker[AsyncSession],
        make_feed,
    ) -> None:
        """同步进行中删除订阅源，不遗留任何文章."""
        await make_feed("f1", FEED_URL)
        source.serve(FEED_URL, [rss_item(f"g{i}") for i in range(10)])
        source.gate = asyncio.Event()
        service = FeedService(async_session, orchestrator)

        await service.refresh_feed("f1")
        await asyncio.sleep(0.1)

        deleting = asyncio.create_task(service.delete_feed("f1"))
        await asyncio.sleep(0.05)
        source.gate.set()
        await deleting

        assert not orchestrator.is_running("f1")
        with pytest.raises(FeedNotFoundError):
            await service.get_feed("f1")
        async with session_factory() as session:
            assert await ArticleStore(session).count_for_feed("f1") == 0

    async def test_delete_missing_feed(
        self, async_session: AsyncSession, orchestrator: SyncOrchestrator
    ) -> None:
        """删除不存在的订阅源."""
        with pytest.raises(FeedNotFoundError):
            await FeedService(async_session, orchestrator).delete_feed("missing")

    async def test_refresh_merges_running(
        self,
        async_session: AsyncSession,
        orchestrator: SyncOrchestrator,
        source: FakeSource,
        make_feed,
    ) -> None:
        """运行中再次刷新被合并."""
        await make_feed("f1", FEED_URL)
        source.serve(FEED_URL, [rss_item("g1")])
        source.gate = asyncio.Event()
        service = FeedService(async_session, orchestrator)

        first = await service.refresh_feed("f1")
        second = await service.refresh_feed("f1")
        pending = asyncio.ensure_future(orchestrator.wait("f1"))
        source.gate.set()
        await pending

        assert first.started is True
        assert second.started is False


class TestArticleContent:
    """测试按需全文提取."""

    async def _article(self, session: AsyncSession, feed: Feed, **kwargs) -> str:
        entry = NormalizedEntry(title="Post", guid="p1", **kwargs)
        result = await ArticleStore(session).upsert(feed.id, entry)
        return result.article.id

    async def test_extracts_and_saves_missing_content(
        self,
        async_session: AsyncSession,
        orchestrator: SyncOrchestrator,
        sample_feed: Feed,
    ) -> None:
        """正文为空时提取并保存，之后不再重复提取."""
        article_id = await self._article(
            async_session, sample_feed, link="https://example.com/p1"
        )
        extractor = FakeExtractor(
            FullTextResult(success=True, content="<p>Full text</p>", word_count=9)
        )
        service = FeedService(async_session, orchestrator, extractor)

        article = await service.get_article_content(article_id)
        again = await service.get_article_content(article_id)

        assert article.content == "<p>Full text</p>"
        assert again.content == "<p>Full text</p>"
        assert extractor.calls == ["https://example.com/p1"]

    async def test_keeps_existing_content(
        self,
        async_session: AsyncSession,
        orchestrator: SyncOrchestrator,
        sample_feed: Feed,
    ) -> None:
        """已有正文时不提取."""
        article_id = await self._article(
            async_session,
            sample_feed,
            link="https://example.com/p1",
            content="<p>Inline</p>",
        )
        extractor = FakeExtractor(FullTextResult(success=True, content="other"))
        service = FeedService(async_session, orchestrator, extractor)

        article = await service.get_article_content(article_id)

        assert article.content == "<p>Inline</p>"
        assert extractor.calls == []

    async def test_extraction_failure_is_not_fatal(
        self,
        async_session: AsyncSession,
        orchestrator: SyncOrchestrator,
        sample_feed: Feed,
    ) -> None:
        """提取失败时返回原文章."""
        article_id = await self._article(
            async_session, sample_feed, link="https://example.com/p1"
        )
        extractor = FakeExtractor(FullTextResult(success=False, error="403"))
        service = FeedService(async_session, orchestrator, extractor)

        article = await service.get_article_content(article_id)

        assert article.content is None
        assert extractor.calls == ["https://example.com/p1"]

    async def test_without_extractor(
        self,
        async_session: AsyncSession,
        orchestrator: SyncOrchestrator,
        sample_feed: Feed,
    ) -> None:
        """未配置提取器时直接返回."""
        article_id = await self._article(
            async_session, sample_feed, link="https://example.com/p1"
        )
        service = FeedService(async_session, orchestrator)

        article = await service.get_article_content(article_id)

        assert article.content is None


class TestDatabaseConstraints:
    """测试数据库约束."""

    async def test_feed_delete_cascades(
        self, async_session: AsyncSession, sample_feed: Feed
    ) -> None:
        """直接删除订阅源记录时级联删除文章."""
        store = ArticleStore(async_session)
        await store.upsert(sample_feed.id, NormalizedEntry(title="A", guid="a"))

        await async_session.execute(
            text("DELETE FROM feeds WHERE id = :id"), {"id": sample_feed.id}
        )
        await async_session.commit()

        assert await store.count_for_feed(sample_feed.id) == 0

    async def test_duplicate_key_rejected(
        self, async_session: AsyncSession, sample_feed: Feed
    ) -> None:
        """同一订阅源下去重键唯一."""
        await ArticleStore(async_session).upsert(
            sample_feed.id, NormalizedEntry(title="A", guid="a")
        )

        with pytest.raises(IntegrityError, match="UNIQUE"):
            await async_session.execute(
                text(
                    "INSERT INTO articles (id, feed_id, title, guid, is_read, "
                    "is_starred, created_at) VALUES ('x', :feed, 'B', 'a', 0, 0, "
                    "'2025-01-01 00:00:00')"
                ),
                {"feed": sample_feed.id},
            )
        await async_session.rollback()
