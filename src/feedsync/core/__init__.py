"""核心业务逻辑."""

from feedsync.core.channel import EventChannel, Subscription
from feedsync.core.orchestrator import (
    RunResult,
    RunTicket,
    SyncOrchestrator,
    get_orchestrator,
    set_orchestrator,
)
from feedsync.core.registry import FeedRegistry, normalize_url
from feedsync.core.service import FeedService
from feedsync.core.store import (
    ArticleStore,
    Inserted,
    Statistics,
    Unchanged,
    Updated,
    UpsertResult,
    dedup_key,
)

__all__ = [
    "ArticleStore",
    "EventChannel",
    "FeedRegistry",
    "FeedService",
    "Inserted",
    "RunResult",
    "RunTicket",
    "Statistics",
    "Subscription",
    "SyncOrchestrator",
    "Unchanged",
    "Updated",
    "UpsertResult",
    "dedup_key",
    "get_orchestrator",
    "normalize_url",
    "set_orchestrator",
]
