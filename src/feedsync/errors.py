"""统一错误类型.

输入错误由发起操作的调用方同步处理；抓取/解析/存储错误在同步任务内部
被转换为终态 ``Failed``，不会抛出到编排器之外。
"""

from enum import StrEnum


class FailureReason(StrEnum):
    """同步任务失败原因."""

    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    MALFORMED_CONTENT = "malformed_content"
    STORAGE = "storage"
    CANCELLED = "cancelled"
    FEED_NOT_FOUND = "feed_not_found"
    INTERNAL = "internal"


class FeedSyncError(Exception):
    """所有业务错误的基类."""


# 输入错误


class InputError(FeedSyncError):
    """调用方输入错误，不改变任何状态."""


class InvalidUrlError(InputError):
    """无效的 RSS URL."""

    def __init__(self, url: str) -> None:
        super().__init__(f"无效的 RSS URL: {url}")
        self.url = url


class DuplicateUrlError(InputError):
    """RSS 源已存在."""

    def __init__(self, url: str) -> None:
        super().__init__(f"RSS 源已存在: {url}")
        self.url = url


class FeedNotFoundError(InputError):
    """RSS 源未找到."""

    def __init__(self, feed_id: str) -> None:
        super().__init__(f"RSS 源未找到: {feed_id}")
        self.feed_id = feed_id


class ArticleNotFoundError(InputError):
    """文章未找到."""

    def __init__(self, article_id: str) -> None:
        super().__init__(f"文章未找到: {article_id}")
        self.article_id = article_id


# 抓取/解析错误


class PipelineError(FeedSyncError):
    """抓取-解析流水线错误."""

    reason: FailureReason = FailureReason.UNREACHABLE


class TransportError(PipelineError):
    """网络传输错误."""


class UnreachableError(TransportError):
    """源站无法访问."""

    reason = FailureReason.UNREACHABLE


class FetchTimeoutError(TransportError):
    """请求超时."""

    reason = FailureReason.TIMEOUT


class MalformedContentError(PipelineError):
    """源站返回的内容无法解析为 RSS/Atom."""

    reason = FailureReason.MALFORMED_CONTENT


# 存储错误


class StorageError(FeedSyncError):
    """数据库错误（预期的去重冲突除外）."""
