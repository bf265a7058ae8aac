"""文章 API."""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from feedsync.api.deps import get_feed_service
from feedsync.api.serializers import article_to_dict
from feedsync.core.service import FeedService
from feedsync.errors import ArticleNotFoundError

router = APIRouter(prefix="/api/articles", tags=["articles"])


class UpdateArticleRequest(BaseModel):
    """文章状态更新请求（未提供的字段保持不变）."""

    is_read: bool | None = None
    is_starred: bool | None = None


@router.get("")
async def list_articles(
    feed_id: str | None = Query(None, description="按 Feed 筛选"),
    limit: int | None = Query(None, ge=1, le=500, description="每页数量"),
    offset: int = Query(0, ge=0, description="偏移量"),
    service: FeedService = Depends(get_feed_service),
) -> dict:
    """获取文章列表（按发布时间倒序）."""
    articles = await service.list_articles(feed_id=feed_id, limit=limit, offset=offset)
    return {
        "offset": offset,
        "count": len(articles),
        "items": [article_to_dict(a, include_content=False) for a in articles],
    }


@router.get("/{article_id}")
async def get_article(
    article_id: str,
    service: FeedService = Depends(get_feed_service),
) -> dict:
    """获取文章详情（正文为空时按需提取原文）."""
    try:
        article = await service.get_article_content(article_id)
    except ArticleNotFoundError as e:
        raise HTTPException(status_code=404, detail="文章不存在") from e

    return article_to_dict(article)


@router.patch("/{article_id}")
async def update_article(
    article_id: str,
    request: UpdateArticleRequest,
    service: FeedService = Depends(get_feed_service),
) -> dict:
    """标记已读/收藏."""
    try:
        article = await service.update_article(
            article_id,
            is_read=request.is_read,
            is_starred=request.is_starred,
        )
    except ArticleNotFoundError as e:
        raise HTTPException(status_code=404, detail="文章不存在") from e

    return {
        "id": article.id,
        "is_read": article.is_read,
        "is_starred": article.is_starred,
    }
