"""同步任务状态与事件模型.

状态是带标签的变体：``Started | InProgress | Completed | Failed``，调用方用
``match`` 或 ``isinstance`` 穷举处理，而不是比较字符串。
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar

from feedsync.errors import FailureReason
from feedsync.models.article import Article


@dataclass(frozen=True)
class Started:
    """任务已受理."""

    kind: ClassVar[str] = "started"


@dataclass(frozen=True)
class InProgress:
    """任务执行中."""

    kind: ClassVar[str] = "in_progress"


@dataclass(frozen=True)
class Completed:
    """任务成功结束."""

    kind: ClassVar[str] = "completed"


@dataclass(frozen=True)
class Failed:
    """任务失败结束."""

    reason: FailureReason
    message: str = ""
    kind: ClassVar[str] = "failed"


RunStatus = Started | InProgress | Completed | Failed


def is_terminal(status: RunStatus) -> bool:
    """是否为终态."""
    return isinstance(status, Completed | Failed)


def status_to_dict(status: RunStatus) -> dict[str, Any]:
    """序列化状态."""
    data: dict[str, Any] = {"kind": status.kind}
    if isinstance(status, Failed):
        data["reason"] = status.reason.value
        data["message"] = status.message
    return data


@dataclass(frozen=True)
class FetchProgress:
    """抓取进度事件（同一 Feed 的新事件覆盖旧事件）."""

    feed_id: str
    feed_title: str
    processed: int
    status: RunStatus
    total: int | None = None
    current_entry_title: str | None = None

    type: ClassVar[str] = "progress"

    def to_message(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "data": {
                "feed_id": self.feed_id,
                "feed_title": self.feed_title,
                "processed": self.processed,
                "total": self.total,
                "current_entry_title": self.current_entry_title,
                "status": status_to_dict(self.status),
            },
        }


@dataclass(frozen=True)
class ArticleArrived:
    """新文章入库事件（不可覆盖，每条都必须送达）."""

    feed_id: str
    article: Article = field(compare=False)

    type: ClassVar[str] = "article"

    @classmethod
    def snapshot(cls, feed_id: str, article: Article) -> "ArticleArrived":
        """复制一份脱离会话的文章；之后的回滚或更新不会改变已发布的事件."""
        return cls(feed_id, Article(**article.model_dump()))

    def to_message(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "data": {
                "feed_id": self.feed_id,
                "article": self.article.model_dump(mode="json"),
            },
        }


SyncEvent = FetchProgress | ArticleArrived
