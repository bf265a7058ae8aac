"""时间工具."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """当前 UTC 时间（带时区）."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """
    统一为带时区的 UTC 时间.

    SQLite 不保存时区，读回的值可能是 naive 的，此时按 UTC 解释。
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
