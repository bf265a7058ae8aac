"""Article 文章模型."""

from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from feedsync.utils.timeutil import utc_now

# 抓取时可被刷新的内容字段，已读/收藏等用户状态不在其中
MUTABLE_FIELDS = (
    "title",
    "link",
    "description",
    "content",
    "author",
    "published_at",
)


class Article(SQLModel, table=True):
    """RSS 文章."""

    __tablename__ = "articles"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("guid", "feed_id", name="uq_articles_guid_feed"),
    )

    id: str = Field(primary_key=True, description="文章 ID (uuid4)")
    feed_id: str = Field(
        foreign_key="feeds.id",
        ondelete="CASCADE",
        index=True,
        description="关联 Feed",
    )
    title: str = Field(description="标题")
    link: str | None = Field(default=None, description="原文链接")
    description: str | None = Field(default=None, description="摘要")
    content: str | None = Field(default=None, description="HTML 内容")
    author: str | None = Field(default=None, description="作者")
    published_at: datetime | None = Field(
        default=None, index=True, description="发布时间"
    )
    guid: str | None = Field(default=None, description="去重键 (guid/link/合成)")
    is_read: bool = Field(default=False, index=True, description="是否已读")
    is_starred: bool = Field(default=False, index=True, description="是否收藏")
    created_at: datetime = Field(default_factory=utc_now, description="入库时间")
