"""路由依赖."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from feedsync.config import get_settings
from feedsync.core.orchestrator import SyncOrchestrator, get_orchestrator
from feedsync.core.service import FeedService
from feedsync.fetcher.extractor import FullTextExtractor, get_extractor
from feedsync.models.database import get_session


def get_optional_extractor() -> FullTextExtractor | None:
    """全文提取器；配置关闭时为 None."""
    if not get_settings().extract_full_content:
        return None
    return get_extractor()


async def get_feed_service(
    session: AsyncSession = Depends(get_session),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    extractor: FullTextExtractor | None = Depends(get_optional_extractor),
) -> FeedService:
    """构造请求级 FeedService."""
    return FeedService(session, orchestrator, extractor)
