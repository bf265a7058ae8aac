"""订阅与阅读服务 - 对外操作的统一入口."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from feedsync.config import get_settings
from feedsync.core.orchestrator import RunResult, RunTicket, SyncOrchestrator
from feedsync.core.registry import FeedRegistry
from feedsync.core.store import ArticleStore, Statistics
from feedsync.fetcher.extractor import FullTextExtractor
from feedsync.models.article import Article
from feedsync.models.feed import Feed

logger = logging.getLogger(__name__)


class FeedService:
    """组合注册表、文章存储和编排器，提供订阅/阅读操作."""

    def __init__(
        self,
        session: AsyncSession,
        orchestrator: SyncOrchestrator,
        extractor: FullTextExtractor | None = None,
    ) -> None:
        self.session = session
        self.orchestrator = orchestrator
        self.extractor = extractor
        self.registry = FeedRegistry(session)
        self.store = ArticleStore(session)

    async def add_feed(self, url: str, wait: bool = True) -> tuple[Feed, RunResult | None]:
        """
        订阅 RSS 源.

        Args:
            url: 订阅地址
            wait: True 时等待首次同步结束再返回；False 时立即返回，
                文章通过事件通道在后台推送

        Returns:
            (订阅源, 首次同步结果)；后台模式下结果为 None
        """
        feed = await self.registry.add(url)

        if not wait:
            await self.orchestrator.start(feed.id)
            return feed, None

        result = await self.orchestrator.sync(feed.id)
        # 同步在另一个会话中回填了标题和同步时间
        await self.session.refresh(feed)
        return feed, result

    async def list_feeds(self) -> list[Feed]:
        """获取所有订阅源."""
        return await self.registry.list_all()

    async def get_feed(self, feed_id: str) -> Feed:
        """获取订阅源."""
        return await self.registry.get(feed_id)

    async def count_articles(self, feed_id: str) -> int:
        """统计订阅源的文章数."""
        return await self.store.count_for_feed(feed_id)

    async def update_feed(
        self,
        feed_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        is_active: bool | None = None,
    ) -> Feed:
        """更新订阅源."""
        return await self.registry.update(
            feed_id, title=title, description=description, is_active=is_active
        )

    async def delete_feed(self, feed_id: str) -> None:
        """删除订阅源；运行中的同步先取消并等待结束，避免遗留孤儿文章."""
        await self.registry.get(feed_id)

        if self.orchestrator.cancel(feed_id):
            await self.orchestrator.wait(feed_id)

        await self.registry.remove(feed_id)

    async def refresh_feed(self, feed_id: str) -> RunTicket:
        """触发同步，受理后立即返回."""
        return await self.orchestrator.start(feed_id)

    async def sync_all(self) -> list[RunResult]:
        """同步所有启用的订阅源."""
        return await self.orchestrator.sync_all()

    async def list_articles(
        self,
        feed_id: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Article]:
        """获取文章列表."""
        return await self.store.list_articles(
            feed_id=feed_id,
            limit=limit or get_settings().article_page_size,
            offset=offset,
        )

    async def get_article_content(self, article_id: str) -> Article:
        """获取文章详情；正文为空且有原文链接时按需提取并保存."""
        article = await self.store.get(article_id)

        if article.content and article.content.strip():
            return article
        if not article.link or self.extractor is None:
            return article

        result = await self.extractor.fetch(article.link)
        if not result.success or not result.content:
            logger.warning(f"正文提取失败: {article.link} - {result.error}")
            return article

        logger.info(f"正文提取成功: {article.title} ({result.word_count} 字)")
        return await self.store.set_content(article_id, result.content)

    async def update_article(
        self,
        article_id: str,
        is_read: bool | None = None,
        is_starred: bool | None = None,
    ) -> Article:
        """更新文章已读/收藏状态."""
        return await self.store.set_flags(article_id, read=is_read, starred=is_starred)

    async def get_statistics(self) -> Statistics:
        """获取统计信息."""
        return await self.store.statistics()
