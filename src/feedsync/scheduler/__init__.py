"""定时任务."""

from feedsync.scheduler.tasks import create_scheduler, shutdown_scheduler, sync_all_task

__all__ = [
    "create_scheduler",
    "shutdown_scheduler",
    "sync_all_task",
]
