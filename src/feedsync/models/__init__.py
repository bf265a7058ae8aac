"""数据模型."""

from feedsync.models.article import Article
from feedsync.models.database import get_session, init_db
from feedsync.models.entry import FeedMetadata, NormalizedEntry
from feedsync.models.events import (
    ArticleArrived,
    Completed,
    Failed,
    FetchProgress,
    InProgress,
    RunStatus,
    Started,
    SyncEvent,
)
from feedsync.models.feed import Feed

__all__ = [
    "Article",
    "ArticleArrived",
    "Completed",
    "Failed",
    "Feed",
    "FeedMetadata",
    "FetchProgress",
    "InProgress",
    "NormalizedEntry",
    "RunStatus",
    "Started",
    "SyncEvent",
    "get_session",
    "init_db",
]
