"""APScheduler-backed ``PeriodicScheduler`` for desktop/server hosts.

Usage:
    scheduler = APSchedulerPeriodicScheduler()
    manager = BackupTaskManager(scheduler, service, settings)
    await manager.register_backup_task(BackupFrequency.DAILY)
    ...
    scheduler.shutdown()
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from journal_backup.adapters.base import PermissionStatus

logger = logging.getLogger(__name__)


class APSchedulerPeriodicScheduler:
    """Run registered callbacks on an ``AsyncIOScheduler``.

    Must be used from inside a running event loop: the scheduler is started
    lazily on first registration.

    Args:
        scheduler: Existing scheduler to reuse (default: a new
            ``AsyncIOScheduler``).
    """

    def __init__(self, scheduler: AsyncIOScheduler | None = None) -> None:
        self._scheduler = scheduler or AsyncIOScheduler()

    async def register(
        self,
        name: str,
        interval: timedelta,
        callback: Callable[[], Awaitable[Any]],
    ) -> None:
        self._scheduler.add_job(
            callback,
            IntervalTrigger(seconds=interval.total_seconds()),
            id=name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("APScheduler started")
        logger.debug(f"Scheduled job {name} every {interval}")

    async def unregister(self, name: str) -> None:
        if self._scheduler.get_job(name) is not None:
            self._scheduler.remove_job(name)

    async def is_registered(self, name: str) -> bool:
        return self._scheduler.get_job(name) is not None

    async def permission_status(self) -> PermissionStatus:
        # in-process scheduling needs no OS permission
        return PermissionStatus.AVAILABLE

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("APScheduler stopped")
