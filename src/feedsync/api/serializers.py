"""响应序列化."""

from datetime import datetime
from typing import Any

from feedsync.core.orchestrator import RunResult
from feedsync.models.article import Article
from feedsync.models.events import status_to_dict
from feedsync.models.feed import Feed
from feedsync.utils.html_parser import estimate_reading_time, html_to_text
from feedsync.utils.timeutil import as_utc


def _isoformat(value: datetime | None) -> str | None:
    return as_utc(value).isoformat() if value else None


def feed_to_dict(feed: Feed) -> dict[str, Any]:
    return {
        "id": feed.id,
        "title": feed.title,
        "url": feed.url,
        "description": feed.description,
        "website_url": feed.website_url,
        "last_updated": _isoformat(feed.last_updated),
        "is_active": feed.is_active,
        "created_at": _isoformat(feed.created_at),
        "updated_at": _isoformat(feed.updated_at),
    }


def article_to_dict(article: Article, include_content: bool = True) -> dict[str, Any]:
    text = html_to_text(article.content or article.description or "")
    data: dict[str, Any] = {
        "id": article.id,
        "feed_id": article.feed_id,
        "title": article.title,
        "link": article.link,
        "description": article.description,
        "author": article.author,
        "published_at": _isoformat(article.published_at),
        "guid": article.guid,
        "is_read": article.is_read,
        "is_starred": article.is_starred,
        "read_time": f"{estimate_reading_time(text)} min read" if text else None,
        "created_at": _isoformat(article.created_at),
    }
    if include_content:
        data["content"] = article.content
    return data


def run_result_to_dict(result: RunResult) -> dict[str, Any]:
    return {
        "feed_id": result.feed_id,
        "status": status_to_dict(result.status),
        "processed": result.processed,
        "inserted": result.inserted,
        "updated": result.updated,
    }
