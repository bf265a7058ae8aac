"""事件通道：多消费者、按 Feed 有序的发布-订阅.

发布永不阻塞。每个订阅者有独立的有界缓冲区，超出上限时丢弃最旧的、已被
同一 Feed 更新进度覆盖的进度事件；文章事件和终态进度事件从不丢弃。
订阅者只能看到订阅之后发布的事件，不回放历史。
"""

import asyncio
import logging
from collections import deque
from types import TracebackType

from feedsync.config import get_settings
from feedsync.models.events import ArticleArrived, FetchProgress, SyncEvent, is_terminal

logger = logging.getLogger(__name__)


class Subscription:
    """单个消费者的订阅句柄."""

    def __init__(
        self,
        channel: "EventChannel",
        feed_id: str | None,
        maxsize: int,
    ) -> None:
        self._channel = channel
        self.feed_id = feed_id
        self.maxsize = max(1, maxsize)
        self.dropped = 0
        self._buffer: deque[SyncEvent] = deque()
        self._ready = asyncio.Event()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def matches(self, event: SyncEvent) -> bool:
        """是否订阅了该事件所属的 Feed."""
        return self.feed_id is None or event.feed_id == self.feed_id

    def unsubscribe(self) -> None:
        """取消订阅，已缓冲的事件仍可读取."""
        if self._closed:
            return
        self._closed = True
        self._channel._remove(self)
        self._ready.set()

    async def get(self) -> SyncEvent:
        """等待下一条事件；订阅已关闭且缓冲为空时抛出 StopAsyncIteration."""
        while not self._buffer:
            if self._closed:
                raise StopAsyncIteration
            self._ready.clear()
            await self._ready.wait()
        return self._buffer.popleft()

    def get_nowait(self) -> SyncEvent | None:
        """读取一条已缓冲的事件，没有则返回 None."""
        if not self._buffer:
            return None
        return self._buffer.popleft()

    def drain(self) -> list[SyncEvent]:
        """取出全部已缓冲的事件."""
        events = list(self._buffer)
        self._buffer.clear()
        return events

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> SyncEvent:
        return await self.get()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.unsubscribe()

    def _push(self, event: SyncEvent) -> None:
        self._buffer.append(event)
        if len(self._buffer) > self.maxsize:
            self._trim()
        self._ready.set()

    def _trim(self) -> None:
        while len(self._buffer) > self.maxsize:
            index = self._find_superseded()
            if index is None:
                # 剩下的都不能丢，允许暂时超出上限
                return
            del self._buffer[index]
            self.dropped += 1

    def _find_superseded(self) -> int | None:
        """找到最旧的、之后还有同 Feed 进度事件的非终态进度事件."""
        latest: dict[str, int] = {}
        for index, event in enumerate(self._buffer):
            if isinstance(event, FetchProgress):
                latest[event.feed_id] = index

        for index, event in enumerate(self._buffer):
            if (
                isinstance(event, FetchProgress)
                and not is_terminal(event.status)
                and latest[event.feed_id] > index
            ):
                return index
        return None


class EventChannel:
    """进度事件与新文章事件的广播通道."""

    def __init__(self, buffer_size: int | None = None) -> None:
        self.buffer_size = buffer_size or get_settings().event_buffer_size
        self._subscribers: list[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(
        self,
        feed_id: str | None = None,
        maxsize: int | None = None,
    ) -> Subscription:
        """订阅事件；指定 feed_id 时只接收该 Feed 的事件."""
        subscription = Subscription(self, feed_id, maxsize or self.buffer_size)
        self._subscribers.append(subscription)
        return subscription

    def publish(self, event: SyncEvent) -> None:
        """非阻塞发布."""
        for subscription in list(self._subscribers):
            if subscription.matches(event):
                subscription._push(event)

        if isinstance(event, ArticleArrived):
            logger.debug(f"新文章事件: {event.feed_id} - {event.article.title}")

    def close(self) -> None:
        """关闭所有订阅."""
        for subscription in list(self._subscribers):
            subscription.unsubscribe()

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)
