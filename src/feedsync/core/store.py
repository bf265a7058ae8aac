"""文章存储：按 (feed_id, 去重键) 幂等写入."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from hashlib import md5
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from feedsync.errors import ArticleNotFoundError, StorageError
from feedsync.models.article import MUTABLE_FIELDS, Article
from feedsync.models.entry import NormalizedEntry
from feedsync.models.feed import Feed
from feedsync.utils.timeutil import as_utc, utc_now

logger = logging.getLogger(__name__)

SYNTHETIC_KEY_PREFIX = "synthetic:"


def dedup_key(entry: NormalizedEntry) -> str:
    """
    计算条目的去重键.

    优先使用 guid，其次是 link；两者都没有时用 (标题, 发布时间) 合成。
    合成键无法区分标题和发布时间都相同的不同条目，这是已知的近似。
    """
    if entry.guid:
        return entry.guid
    if entry.link:
        return entry.link

    published = entry.published_at.isoformat() if entry.published_at else ""
    combined = f"{entry.title}|{published}"
    return SYNTHETIC_KEY_PREFIX + md5(combined.encode()).hexdigest()


def _comparable(value: Any) -> Any:
    # 读回的时间可能丢失时区
    if isinstance(value, datetime):
        return as_utc(value)
    return value


@dataclass(frozen=True)
class Inserted:
    """新文章."""

    article: Article


@dataclass(frozen=True)
class Updated:
    """已有文章，内容字段发生了变化."""

    article: Article


@dataclass(frozen=True)
class Unchanged:
    """已有文章，内容字段完全相同."""

    article: Article


UpsertResult = Inserted | Updated | Unchanged


@dataclass
class FeedUnreadStat:
    """单个订阅源的未读统计."""

    id: str
    title: str
    unread_count: int


@dataclass
class Statistics:
    """统计信息（按需计算，不落库）."""

    total_feeds: int = 0
    total_articles: int = 0
    unread_articles: int = 0
    starred_articles: int = 0
    feed_stats: list[FeedUnreadStat] = field(default_factory=list)


class ArticleStore:
    """文章的持久化与查询."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def upsert(self, feed_id: str, entry: NormalizedEntry) -> UpsertResult:
        """
        写入一条抓取到的条目.

        新条目插入（未读、未收藏）；已有条目只刷新内容字段，保留已读/收藏状态。
        每次调用单独提交，保证单条原子性。
        """
        key = dedup_key(entry)
        values = self._content_values(entry)

        try:
            existing = await self._find(feed_id, key)
            if existing is None:
                article = Article(
                    id=str(uuid.uuid4()),
                    feed_id=feed_id,
                    guid=key,
                    is_read=False,
                    is_starred=False,
                    created_at=utc_now(),
                    **values,
                )
                self.session.add(article)
                try:
                    await self.session.commit()
                    return Inserted(article)
                except IntegrityError as e:
                    # 唯一约束冲突说明已有并发写入，重新读取后按更新处理；
                    # 否则是外键等其他约束失败
                    await self.session.rollback()
                    existing = await self._find(feed_id, key)
                    if existing is None:
                        raise StorageError(f"写入文章失败: {e.orig}") from e

            return await self._refresh(existing, values)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StorageError(f"数据库错误: {e}") from e

    async def get(self, article_id: str) -> Article:
        """获取单篇文章."""
        article = await self.session.get(Article, article_id)
        if not article:
            raise ArticleNotFoundError(article_id)
        return article

    async def list_articles(
        self,
        feed_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Article]:
        """获取文章列表，按发布时间倒序（无发布时间时按入库时间）."""
        stmt = select(Article)
        if feed_id:
            stmt = stmt.where(Article.feed_id == feed_id)

        stmt = (
            stmt.order_by(
                func.coalesce(Article.published_at, Article.created_at).desc(),
                Article.created_at.desc(),  # type: ignore[attr-defined]
            )
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_flags(
        self,
        article_id: str,
        *,
        read: bool | None = None,
        starred: bool | None = None,
    ) -> Article:
        """更新已读/收藏状态，未指定的字段保持不变."""
        article = await self.get(article_id)

        if read is not None:
            article.is_read = read
        if starred is not None:
            article.is_starred = starred

        await self.session.commit()
        return article

    async def set_content(self, article_id: str, content: str) -> Article:
        """保存按需提取的正文，避免重复提取."""
        article = await self.get(article_id)
        article.content = content
        await self.session.commit()
        return article

    async def count_for_feed(self, feed_id: str) -> int:
        """统计某订阅源的文章数."""
        stmt = (
            select(func.count())
            .select_from(Article)
            .where(Article.feed_id == feed_id)
        )
        return (await self.session.execute(stmt)).scalar_one()

    async def statistics(self) -> Statistics:
        """计算统计信息."""
        stats = Statistics()

        stats.total_articles = await self._count(select(func.count()).select_from(Article))
        stats.unread_articles = await self._count(
            select(func.count())
            .select_from(Article)
            .where(Article.is_read == False)  # noqa: E712
        )
        stats.starred_articles = await self._count(
            select(func.count())
            .select_from(Article)
            .where(Article.is_starred == True)  # noqa: E712
        )
        stats.total_feeds = await self._count(
            select(func.count())
            .select_from(Feed)
            .where(Feed.is_active == True)  # noqa: E712
        )

        # 每个订阅源的未读数
        unread_stmt = (
            select(Feed.id, Feed.title, func.count(Article.id))
            .outerjoin(
                Article,
                (Article.feed_id == Feed.id) & (Article.is_read == False),  # noqa: E712
            )
            .where(Feed.is_active == True)  # noqa: E712
            .group_by(Feed.id, Feed.title)
        )
        result = await self.session.execute(unread_stmt)
        stats.feed_stats = [
            FeedUnreadStat(id=row[0], title=row[1], unread_count=row[2])
            for row in result.all()
        ]

        return stats

    async def _count(self, stmt: Any) -> int:
        return (await self.session.execute(stmt)).scalar_one()

    async def _find(self, feed_id: str, key: str) -> Article | None:
        stmt = select(Article).where(Article.feed_id == feed_id, Article.guid == key)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _refresh(
        self, article: Article, values: dict[str, Any]
    ) -> Updated | Unchanged:
        changed = [
            name
            for name in MUTABLE_FIELDS
            if _comparable(getattr(article, name)) != _comparable(values[name])
        ]
        if not changed:
            return Unchanged(article)

        for name in changed:
            setattr(article, name, values[name])
        await self.session.commit()
        logger.debug(f"文章已更新: {article.id} ({', '.join(changed)})")
        return Updated(article)

    def _content_values(self, entry: NormalizedEntry) -> dict[str, Any]:
        return {name: getattr(entry, name) for name in MUTABLE_FIELDS}
