"""统计 API."""

from dataclasses import asdict

from fastapi import APIRouter, Depends

from feedsync.api.deps import get_feed_service
from feedsync.core.service import FeedService

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("")
async def get_statistics(
    service: FeedService = Depends(get_feed_service),
) -> dict:
    """获取订阅源/文章统计."""
    stats = await service.get_statistics()
    return asdict(stats)
