"""Feed 订阅源模型."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from feedsync.utils.timeutil import utc_now


class Feed(SQLModel, table=True):
    """RSS 订阅源."""

    __tablename__ = "feeds"  # type: ignore[assignment]

    id: str = Field(primary_key=True, description="订阅源 ID (uuid4)")
    title: str = Field(description="Feed 标题")
    url: str = Field(unique=True, description="Feed URL")
    description: str | None = Field(default=None, description="Feed 描述")
    website_url: str | None = Field(default=None, description="网站 URL")
    last_updated: datetime | None = Field(
        default=None, description="最近一次成功同步时间"
    )
    is_active: bool = Field(default=True, description="是否参与批量同步")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
