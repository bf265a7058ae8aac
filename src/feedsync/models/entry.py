"""抓取-解析流水线输出的标准化条目."""

from datetime import datetime

from pydantic import BaseModel, field_validator

from feedsync.utils.timeutil import as_utc

UNTITLED_ARTICLE = "Untitled Article"


class FeedMetadata(BaseModel):
    """订阅源自身的元信息（用于标题等字段回填）."""

    title: str | None = None
    description: str | None = None
    link: str | None = None


class NormalizedEntry(BaseModel):
    """标准化后的单条 RSS/Atom 条目，除 title 外均可缺省."""

    title: str = UNTITLED_ARTICLE
    link: str | None = None
    description: str | None = None
    content: str | None = None
    author: str | None = None
    published_at: datetime | None = None
    guid: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _default_title(cls, value: str | None) -> str:
        if value is None or not str(value).strip():
            return UNTITLED_ARTICLE
        return str(value).strip()

    @field_validator("link", "guid", "author", mode="before")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("published_at")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)
