"""Feed 订阅源 API."""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from feedsync.api.deps import get_feed_service
from feedsync.api.serializers import feed_to_dict, run_result_to_dict
from feedsync.core.service import FeedService
from feedsync.errors import DuplicateUrlError, FeedNotFoundError, InvalidUrlError

router = APIRouter(prefix="/api/feeds", tags=["feeds"])


class AddFeedRequest(BaseModel):
    """订阅请求."""

    url: str
    wait: bool = True  # True: 等待首次同步完成；False: 后台同步


class UpdateFeedRequest(BaseModel):
    """订阅源更新请求（未提供的字段保持不变）."""

    title: str | None = None
    description: str | None = None
    is_active: bool | None = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_feed(
    request: AddFeedRequest,
    service: FeedService = Depends(get_feed_service),
) -> dict:
    """订阅 RSS 源."""
    try:
        feed, result = await service.add_feed(request.url, wait=request.wait)
    except InvalidUrlError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except DuplicateUrlError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    return {
        "feed": feed_to_dict(feed),
        "sync": run_result_to_dict(result) if result else None,
    }


@router.get("")
async def list_feeds(
    service: FeedService = Depends(get_feed_service),
) -> dict:
    """获取订阅列表."""
    feeds = await service.list_feeds()
    return {
        "total": len(feeds),
        "items": [feed_to_dict(feed) for feed in feeds],
    }


@router.get("/{feed_id}")
async def get_feed(
    feed_id: str,
    service: FeedService = Depends(get_feed_service),
) -> dict:
    """获取 Feed 详情."""
    try:
        feed = await service.get_feed(feed_id)
    except FeedNotFoundError as e:
        raise HTTPException(status_code=404, detail="Feed 不存在") from e

    data = feed_to_dict(feed)
    data["article_count"] = await service.count_articles(feed_id)
    data["is_syncing"] = service.orchestrator.is_running(feed_id)
    return data


@router.patch("/{feed_id}")
async def update_feed(
    feed_id: str,
    request: UpdateFeedRequest,
    service: FeedService = Depends(get_feed_service),
) -> dict:
    """更新订阅源标题/描述/启用状态."""
    try:
        feed = await service.update_feed(
            feed_id,
            title=request.title,
            description=request.description,
            is_active=request.is_active,
        )
    except FeedNotFoundError as e:
        raise HTTPException(status_code=404, detail="Feed 不存在") from e

    return feed_to_dict(feed)


@router.delete("/{feed_id}")
async def delete_feed(
    feed_id: str,
    service: FeedService = Depends(get_feed_service),
) -> dict:
    """删除订阅源及其文章."""
    try:
        await service.delete_feed(feed_id)
    except FeedNotFoundError as e:
        raise HTTPException(status_code=404, detail="Feed 不存在") from e

    return {"id": feed_id, "deleted": True}


@router.post("/{feed_id}/refresh", status_code=status.HTTP_202_ACCEPTED)
async def refresh_feed(
    feed_id: str,
    service: FeedService = Depends(get_feed_service),
) -> dict:
    """刷新订阅源（后台执行，进度通过事件推送）."""
    try:
        ticket = await service.refresh_feed(feed_id)
    except FeedNotFoundError as e:
        raise HTTPException(status_code=404, detail="Feed 不存在") from e

    return {
        "feed_id": ticket.feed_id,
        "started": ticket.started,
        "message": "同步已开始" if ticket.started else "同步已在运行中",
    }


@router.post("/{feed_id}/cancel")
async def cancel_refresh(
    feed_id: str,
    service: FeedService = Depends(get_feed_service),
) -> dict:
    """取消运行中的同步."""
    cancelled = service.orchestrator.cancel(feed_id)
    return {
        "feed_id": feed_id,
        "cancelled": cancelled,
        "message": "已请求取消" if cancelled else "没有正在运行的同步",
    }
