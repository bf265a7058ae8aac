"""定时任务定义."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from feedsync.config import Settings
from feedsync.core.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

_scheduler: AsyncIOScheduler | None = None


async def sync_all_task(orchestrator: SyncOrchestrator) -> None:
    """批量同步任务：同步所有启用的订阅源."""
    logger.info("开始定时同步任务...")
    results = await orchestrator.sync_all()

    failed = [r for r in results if not r.succeeded]
    for result in failed:
        logger.warning(f"定时同步失败: {result.feed_id} - {result.status}")

    logger.info(
        f"定时同步完成: 订阅源={len(results)}, 失败={len(failed)}, "
        f"新文章={sum(r.inserted for r in results)}"
    )


def create_scheduler(
    settings: Settings, orchestrator: SyncOrchestrator
) -> AsyncIOScheduler:
    """创建并启动定时任务调度器."""
    global _scheduler

    _scheduler = AsyncIOScheduler()

    _scheduler.add_job(
        sync_all_task,
        "interval",
        minutes=settings.sync_interval_minutes,
        args=[orchestrator],
        id="sync_all_task",
        name="订阅源批量同步",
        replace_existing=True,
        max_instances=1,
    )

    if settings.sync_on_startup:
        # 启动时立即执行一次
        _scheduler.add_job(
            sync_all_task,
            "date",
            args=[orchestrator],
            id="sync_all_task_initial",
            name="初始同步",
        )

    _scheduler.start()
    logger.info(
        f"定时任务调度器已启动，同步间隔: {settings.sync_interval_minutes} 分钟"
    )

    return _scheduler


async def shutdown_scheduler() -> None:
    """关闭定时任务调度器."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        logger.info("定时任务调度器已关闭")
        _scheduler = None
