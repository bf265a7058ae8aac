"""订阅源注册表."""

import logging
import uuid
from datetime import datetime

from pydantic import HttpUrl, TypeAdapter, ValidationError
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from feedsync.errors import DuplicateUrlError, FeedNotFoundError, InvalidUrlError
from feedsync.models.article import Article
from feedsync.models.entry import FeedMetadata
from feedsync.models.feed import Feed
from feedsync.utils.timeutil import utc_now

logger = logging.getLogger(__name__)

_url_adapter: TypeAdapter[HttpUrl] = TypeAdapter(HttpUrl)


def normalize_url(raw: str) -> str:
    """校验并规范化订阅 URL（仅允许 http/https，去掉锚点）."""
    candidate = (raw or "").strip()
    if not candidate:
        raise InvalidUrlError(raw)

    try:
        url = _url_adapter.validate_python(candidate)
    except ValidationError as e:
        raise InvalidUrlError(raw) from e

    normalized = str(url)
    if url.fragment:
        normalized = normalized.split("#", 1)[0]
    return normalized


class FeedRegistry:
    """订阅源的增删改查，不访问网络."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, url: str) -> Feed:
        """订阅新的 RSS 源，标题暂用 URL，首次同步后回填."""
        normalized = normalize_url(url)

        existing = await self._find_by_url(normalized)
        if existing:
            raise DuplicateUrlError(normalized)

        now = utc_now()
        feed = Feed(
            id=str(uuid.uuid4()),
            title=normalized,
            url=normalized,
            is_active=True,
            last_updated=None,
            created_at=now,
            updated_at=now,
        )
        self.session.add(feed)
        try:
            await self.session.commit()
        except IntegrityError as e:
            # 并发订阅同一 URL
            await self.session.rollback()
            raise DuplicateUrlError(normalized) from e

        logger.info(f"新增订阅源: {normalized} ({feed.id})")
        return feed

    async def get(self, feed_id: str) -> Feed:
        """获取订阅源."""
        feed = await self.session.get(Feed, feed_id)
        if not feed:
            raise FeedNotFoundError(feed_id)
        return feed

    async def list_all(self) -> list[Feed]:
        """获取所有订阅源."""
        result = await self.session.execute(select(Feed))
        return list(result.scalars().all())

    async def list_active(self) -> list[Feed]:
        """获取参与批量同步的订阅源."""
        stmt = select(Feed).where(Feed.is_active == True)  # noqa: E712
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def remove(self, feed_id: str) -> None:
        """删除订阅源及其全部文章（同一事务）."""
        feed = await self.get(feed_id)

        await self.session.execute(delete(Article).where(Article.feed_id == feed_id))
        await self.session.delete(feed)
        await self.session.commit()
        logger.info(f"已删除订阅源: {feed.url} ({feed_id})")

    async def update(
        self,
        feed_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        is_active: bool | None = None,
    ) -> Feed:
        """更新订阅源，未指定的字段保持不变."""
        feed = await self.get(feed_id)

        if title is not None and title.strip():
            feed.title = title.strip()
        if description is not None:
            feed.description = description
        if is_active is not None:
            feed.is_active = is_active
        feed.updated_at = utc_now()

        await self.session.commit()
        return feed

    async def mark_synced(self, feed_id: str, timestamp: datetime) -> None:
        """记录最近一次成功同步时间."""
        feed = await self.get(feed_id)
        feed.last_updated = timestamp
        feed.updated_at = timestamp
        await self.session.commit()

    async def backfill(self, feed_id: str, metadata: FeedMetadata) -> Feed:
        """用源站元信息回填标题等字段（只填充占位或空值）."""
        feed = await self.get(feed_id)
        changed = False

        if metadata.title and feed.title == feed.url:
            feed.title = metadata.title
            changed = True
        if metadata.description and not feed.description:
            feed.description = metadata.description
            changed = True
        if metadata.link and not feed.website_url:
            feed.website_url = metadata.link
            changed = True

        if changed:
            feed.updated_at = utc_now()
            await self.session.commit()
        return feed

    async def _find_by_url(self, url: str) -> Feed | None:
        result = await self.session.execute(select(Feed).where(Feed.url == url))
        return result.scalar_one_or_none()
