"""同步编排器 - 驱动单个 Feed 的一次抓取入库.

状态机：``Started -> InProgress(processed, total?) -> Completed | Failed(reason)``。
同一 Feed 同时只允许一个任务（租约）；不同 Feed 的任务并行执行，总并发由信号量限制。
任务内的一切失败都转换为终态 ``Failed``，不会抛出到编排器之外。
"""

import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from feedsync.config import get_settings
from feedsync.core.channel import EventChannel
from feedsync.core.registry import FeedRegistry
from feedsync.core.store import ArticleStore, Inserted, Unchanged, Updated
from feedsync.errors import (
    FailureReason,
    FeedNotFoundError,
    PipelineError,
    StorageError,
)
from feedsync.fetcher.pipeline import FetchParsePipeline
from feedsync.models.events import (
    ArticleArrived,
    Completed,
    Failed,
    FetchProgress,
    InProgress,
    RunStatus,
    Started,
)
from feedsync.utils.timeutil import utc_now

logger = logging.getLogger(__name__)


@dataclass
class IngestionRun:
    """单次同步任务的内部状态，只由编排器持有."""

    feed_id: str
    feed_title: str
    status: RunStatus = field(default_factory=Started)
    total: int | None = None
    processed: int = 0
    inserted: int = 0
    updated: int = 0
    current_entry_title: str | None = None
    cancel_requested: asyncio.Event = field(default_factory=asyncio.Event)
    task: "asyncio.Task[RunResult] | None" = None


@dataclass(frozen=True)
class RunResult:
    """同步任务终态结果."""

    feed_id: str
    status: Completed | Failed
    processed: int = 0
    inserted: int = 0
    updated: int = 0

    @property
    def succeeded(self) -> bool:
        return isinstance(self.status, Completed)


@dataclass(frozen=True)
class RunTicket:
    """发起同步的回执；started=False 表示已有任务在运行，本次请求被合并."""

    feed_id: str
    started: bool


class SyncOrchestrator:
    """同步编排器."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        pipeline: FetchParsePipeline | None = None,
        channel: EventChannel | None = None,
        concurrency: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.pipeline = pipeline or FetchParsePipeline()
        self.channel = channel or EventChannel()
        self._semaphore = asyncio.Semaphore(
            concurrency or get_settings().sync_concurrency
        )
        # 运行中的任务表：开始时插入，终态时移除
        self._runs: dict[str, IngestionRun] = {}

    def is_running(self, feed_id: str) -> bool:
        """该 Feed 是否有运行中的任务."""
        return feed_id in self._runs

    def running_feeds(self) -> list[str]:
        """运行中任务的 Feed ID 列表."""
        return list(self._runs)

    async def start(self, feed_id: str) -> RunTicket:
        """发起同步，返回已受理回执（不等待完成）."""
        ticket, _ = await self._start(feed_id)
        return ticket

    async def sync(self, feed_id: str) -> RunResult:
        """发起（或加入已有的）同步并等待终态."""
        _, task = await self._start(feed_id)
        return await asyncio.shield(task)

    async def sync_all(self) -> list[RunResult]:
        """同步所有启用的 Feed，单个 Feed 失败不影响其他 Feed."""
        async with self._session_factory() as session:
            feeds = await FeedRegistry(session).list_active()
            feed_ids = [feed.id for feed in feeds]

        if not feed_ids:
            logger.info("没有启用的订阅源，跳过批量同步")
            return []

        logger.info(f"开始批量同步，共 {len(feed_ids)} 个订阅源")
        results = await asyncio.gather(*(self._sync_quietly(fid) for fid in feed_ids))

        succeeded = sum(1 for result in results if result.succeeded)
        logger.info(f"批量同步完成: 成功={succeeded}, 失败={len(results) - succeeded}")
        return list(results)

    def cancel(self, feed_id: str) -> bool:
        """请求取消运行中的任务（协作式，在条目之间检查）."""
        run = self._runs.get(feed_id)
        if run is None:
            return False

        run.cancel_requested.set()
        logger.info(f"已请求取消同步: {run.feed_title} ({feed_id})")
        return True

    async def wait(self, feed_id: str) -> RunResult | None:
        """等待运行中的任务结束；没有任务时返回 None."""
        run = self._runs.get(feed_id)
        if run is None or run.task is None:
            return None
        return await asyncio.shield(run.task)

    async def shutdown(self) -> None:
        """中止所有运行中的任务."""
        tasks = []
        for run in list(self._runs.values()):
            run.cancel_requested.set()
            if run.task is not None:
                run.task.cancel()
                tasks.append(run.task)

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"已中止 {len(tasks)} 个同步任务")

    async def _start(self, feed_id: str) -> tuple[RunTicket, "asyncio.Task[RunResult]"]:
        existing = self._runs.get(feed_id)
        if existing is not None and existing.task is not None:
            return RunTicket(feed_id, started=False), existing.task

        async with self._session_factory() as session:
            feed = await FeedRegistry(session).get(feed_id)
            feed_title = feed.title

        # 查询期间可能已有同 Feed 的任务启动；检查与占用之间没有 await
        existing = self._runs.get(feed_id)
        if existing is not None and existing.task is not None:
            return RunTicket(feed_id, started=False), existing.task

        run = IngestionRun(feed_id=feed_id, feed_title=feed_title)
        self._runs[feed_id] = run
        self._emit(run)
        run.task = asyncio.create_task(self._execute(run), name=f"sync:{feed_id}")

        logger.info(f"同步已开始: {feed_title} ({feed_id})")
        return RunTicket(feed_id, started=True), run.task

    async def _sync_quietly(self, feed_id: str) -> RunResult:
        try:
            return await self.sync(feed_id)
        except FeedNotFoundError as e:
            # 批量同步期间被删除
            return RunResult(feed_id, Failed(FailureReason.FEED_NOT_FOUND, str(e)))
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"同步失败 [storage]: {feed_id} - {e}")
            return RunResult(feed_id, Failed(FailureReason.STORAGE, str(e)))

    async def _execute(self, run: IngestionRun) -> RunResult:
        status: Completed | Failed = Failed(FailureReason.CANCELLED, "同步任务被中止")
        try:
            async with self._semaphore:
                status = await self._ingest(run)
        finally:
            self._finish(run, status)

        return RunResult(
            feed_id=run.feed_id,
            status=status,
            processed=run.processed,
            inserted=run.inserted,
            updated=run.updated,
        )

    async def _ingest(self, run: IngestionRun) -> Completed | Failed:
        """执行抓取、去重入库和进度推送，返回终态."""
        async with self._session_factory() as session:
            registry = FeedRegistry(session)
            store = ArticleStore(session)

            try:
                if run.cancel_requested.is_set():
                    return self._cancelled(run)

                run.status = InProgress()
                self._emit(run)

                feed = await registry.get(run.feed_id)
                stream = await self.pipeline.open(feed)

                feed = await registry.backfill(run.feed_id, stream.metadata)
                run.feed_title = feed.title
                run.total = stream.total
                self._emit(run)

                async for entry in stream:
                    if run.cancel_requested.is_set():
                        return self._cancelled(run)

                    result = await store.upsert(run.feed_id, entry)
                    match result:
                        case Inserted(article):
                            run.inserted += 1
                            self.channel.publish(ArticleArrived.snapshot(run.feed_id, article))
                        case Updated():
                            run.updated += 1
                        case Unchanged():
                            pass

                    run.processed += 1
                    run.current_entry_title = entry.title
                    self._emit(run)

                await registry.mark_synced(run.feed_id, utc_now())

            except PipelineError as e:
                logger.warning(f"同步失败 [{e.reason}]: {run.feed_title} - {e}")
                return Failed(e.reason, str(e))
            except FeedNotFoundError as e:
                logger.warning(f"同步失败，订阅源已不存在: {run.feed_id}")
                return Failed(FailureReason.FEED_NOT_FOUND, str(e))
            except (StorageError, SQLAlchemyError) as e:
                logger.warning(f"同步失败 [storage]: {run.feed_title} - {e}")
                return Failed(FailureReason.STORAGE, str(e))
            except Exception as e:
                logger.exception(f"同步异常: {run.feed_title}")
                return Failed(FailureReason.INTERNAL, f"{type(e).__name__}: {e}")

        logger.info(
            f"同步完成: {run.feed_title} - 处理={run.processed}, "
            f"新增={run.inserted}, 更新={run.updated}"
        )
        return Completed()

    def _cancelled(self, run: IngestionRun) -> Failed:
        logger.info(f"同步已取消: {run.feed_title} (已处理 {run.processed} 条)")
        return Failed(FailureReason.CANCELLED, "同步已取消")

    def _finish(self, run: IngestionRun, status: Completed | Failed) -> None:
        """发布终态并释放租约."""
        run.status = status
        run.current_entry_title = None
        self._emit(run)
        self._runs.pop(run.feed_id, None)

    def _emit(self, run: IngestionRun) -> None:
        self.channel.publish(
            FetchProgress(
                feed_id=run.feed_id,
                feed_title=run.feed_title,
                processed=run.processed,
                status=run.status,
                total=run.total,
                current_entry_title=run.current_entry_title,
            )
        )


# 全局实例（在应用启动时创建）
_orchestrator: SyncOrchestrator | None = None


def set_orchestrator(orchestrator: SyncOrchestrator | None) -> None:
    """设置全局编排器."""
    global _orchestrator
    _orchestrator = orchestrator


def get_orchestrator() -> SyncOrchestrator:
    """获取全局编排器（用于依赖注入）."""
    if _orchestrator is None:
        msg = "同步编排器未初始化"
        raise RuntimeError(msg)
    return _orchestrator
