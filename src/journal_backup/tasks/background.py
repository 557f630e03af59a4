"""Unattended backup work unit and host task registration.

The host scheduler calls ``BackupTaskManager.run_once`` on its own schedule.
Each call is queued on a ``BackupJobQueue`` and jobs execute one at a time,
so two background backups are never in flight together.

Flow of one invocation:

    cadence check -> retry loop (createBackup(automatic)) -> advance
    last_backup_time on success -> BackgroundResult

Usage:
    manager = BackupTaskManager(scheduler, service, settings)
    await manager.register_backup_task(BackupFrequency.DAILY)
    status = await manager.get_task_status()
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel

from journal_backup.adapters.base import PeriodicScheduler, PermissionStatus, SettingsStore
from journal_backup.backup.models import BackupKind
from journal_backup.backup.service import BackupService
from journal_backup.config.models import BackupFrequency
from journal_backup.errors import SchedulerPermissionError
from journal_backup.tasks import cadence
from journal_backup.tasks.retry import MAX_ATTEMPTS, RETRY_DELAY, run_with_retry

logger = logging.getLogger(__name__)

BACKUP_TASK_NAME = "BACKGROUND_BACKUP_TASK"


class BackgroundResult(str, Enum):
    """Result vocabulary reported back to the host scheduler."""

    NO_DATA = "no-op"
    NEW_DATA = "new-data"
    FAILED = "failed"


class TaskStatus(BaseModel):
    """Snapshot of background backup state for display."""

    is_registered: bool
    permission_status: PermissionStatus
    frequency: BackupFrequency
    last_backup_time: datetime | None = None


async def run_background_backup(
    service: BackupService,
    settings: SettingsStore,
    now: datetime | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    max_attempts: int = MAX_ATTEMPTS,
    retry_delay: float = RETRY_DELAY,
) -> BackgroundResult:
    """Run one unattended backup if it is due.  Never raises.

    ``last_backup_time`` is advanced only after the retry loop succeeds.
    """
    try:
        logger.info("Starting background backup...")

        if service.no_store_mode:
            logger.info("No durable store, skipping background backup")
            return BackgroundResult.NO_DATA

        app_settings = await settings.load_app_settings()
        backup_settings = await settings.load_backup_settings()
        decision = cadence.decide(app_settings, backup_settings, now)

        if decision is cadence.CadenceDecision.DISABLED:
            logger.info("Auto-backup is disabled, skipping")
            return BackgroundResult.NO_DATA
        if decision is cadence.CadenceDecision.NOT_DUE:
            logger.info("Backup not due yet, skipping")
            return BackgroundResult.NO_DATA

        report = await run_with_retry(
            lambda: service.create_backup(BackupKind.AUTOMATIC),
            max_attempts=max_attempts,
            retry_delay=retry_delay,
            sleep=sleep,
        )

        if not report.succeeded:
            logger.error("Background backup failed after all retries")
            return BackgroundResult.FAILED

        await settings.set("last_backup_time", now or datetime.now(timezone.utc))
        logger.info("Background backup completed successfully")
        return BackgroundResult.NEW_DATA

    except Exception as e:
        logger.error(f"Background backup failed: {e}")
        return BackgroundResult.FAILED


# ============================================================================
# Job queue (host message/task abstraction)
# ============================================================================


@dataclass
class BackupJob:
    """A queued unit of work and the future its result is delivered to."""

    run: Callable[[], Awaitable[Any]]
    result: asyncio.Future


class BackupJobQueue:
    """FIFO of backup jobs executed strictly one at a time."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[BackupJob] = asyncio.Queue()
        self._lock = asyncio.Lock()

    def submit(self, run: Callable[[], Awaitable[Any]]) -> asyncio.Future:
        """Enqueue ``run`` and return the future that receives its result."""
        future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(BackupJob(run=run, result=future))
        return future

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def run_pending(self) -> int:
        """Execute queued jobs until the queue is empty; return how many ran."""
        executed = 0
        while not self._queue.empty():
            job = self._queue.get_nowait()
            await self._execute(job)
            executed += 1
        return executed

    async def serve(self) -> None:
        """Execute jobs forever as they arrive (cancel to stop)."""
        while True:
            job = await self._queue.get()
            await self._execute(job)

    async def _execute(self, job: BackupJob) -> None:
        async with self._lock:
            try:
                result = await job.run()
            except Exception as e:
                if not job.result.done():
                    job.result.set_exception(e)
            else:
                if not job.result.done():
                    job.result.set_result(result)
            finally:
                self._queue.task_done()


# ============================================================================
# Host registration
# ============================================================================


class BackupTaskManager:
    """Register the background backup with the host scheduler.

    Args:
        scheduler: Host periodic task API.
        service: Backup engine used by the work unit.
        settings: Preference store (frequency, ``last_backup_time``).
        queue: Job queue; one is created if omitted.
        sleep: Delay function passed to the retry runner.
    """

    def __init__(
        self,
        scheduler: PeriodicScheduler,
        service: BackupService,
        settings: SettingsStore,
        queue: BackupJobQueue | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._scheduler = scheduler
        self._service = service
        self._settings = settings
        self.queue = queue or BackupJobQueue()
        self._sleep = sleep

    async def run_once(self) -> BackgroundResult:
        """Scheduler callback: queue one work unit and wait for its result."""
        future = self.queue.submit(
            lambda: run_background_backup(self._service, self._settings, sleep=self._sleep)
        )
        await self.queue.run_pending()
        return await future

    async def register_backup_task(self, frequency: BackupFrequency) -> None:
        """(Re-)register the periodic task for ``frequency``.

        Raises:
            SchedulerPermissionError: If the host denies or restricts
                background tasks.
        """
        await self.unregister_backup_task()

        if frequency is BackupFrequency.OFF:
            logger.info("Auto-backup disabled, task not registered")
            return

        status = await self._scheduler.permission_status()
        if status is PermissionStatus.DENIED:
            logger.warning("Background tasks are disabled by user")
            raise SchedulerPermissionError(
                "Background tasks are disabled. Please enable them in system settings."
            )
        if status is PermissionStatus.RESTRICTED:
            logger.warning("Background tasks are restricted")
            raise SchedulerPermissionError("Background tasks are restricted on this device.")

        interval = cadence.interval_for_frequency(frequency)
        try:
            await self._scheduler.register(BACKUP_TASK_NAME, interval, self.run_once)
        except Exception as e:
            logger.error(f"Failed to register background task: {e}")
            raise

        logger.info(f"Background backup task registered with {frequency.value} frequency")

    async def unregister_backup_task(self) -> None:
        """Remove the periodic task; failures are logged, never raised."""
        try:
            if await self._scheduler.is_registered(BACKUP_TASK_NAME):
                await self._scheduler.unregister(BACKUP_TASK_NAME)
                logger.info("Background backup task unregistered")
        except Exception as e:
            logger.error(f"Failed to unregister background task: {e}")

    async def is_task_registered(self) -> bool:
        try:
            return await self._scheduler.is_registered(BACKUP_TASK_NAME)
        except Exception as e:
            logger.error(f"Failed to check task registration: {e}")
            return False

    async def get_permission_status(self) -> PermissionStatus:
        try:
            return await self._scheduler.permission_status()
        except Exception as e:
            logger.error(f"Failed to get background task status: {e}")
            return PermissionStatus.RESTRICTED

    async def update_backup_frequency(self, frequency: BackupFrequency) -> None:
        """Persist ``frequency`` and re-register the task for it."""
        await self._settings.set("auto_backup_frequency", frequency)
        await self.register_backup_task(frequency)
        logger.info(f"Backup frequency updated to: {frequency.value}")

    async def create_manual_backup(self) -> str:
        """Run a manual backup and advance ``last_backup_time`` on success."""
        location = await self._service.create_backup(BackupKind.MANUAL)
        if not self._service.no_store_mode:
            await self._settings.set("last_backup_time", datetime.now(timezone.utc))
        return location

    async def trigger_backup_now(self) -> str:
        """Run the automatic backup immediately, bypassing cadence and retries."""
        logger.info("Manually triggering backup task...")
        location = await self._service.create_backup(BackupKind.AUTOMATIC)
        if not self._service.no_store_mode:
            await self._settings.set("last_backup_time", datetime.now(timezone.utc))
        return location

    async def get_task_status(self) -> TaskStatus:
        is_registered, permission, app_settings = await asyncio.gather(
            self.is_task_registered(),
            self.get_permission_status(),
            self._settings.load_app_settings(),
        )
        return TaskStatus(
            is_registered=is_registered,
            permission_status=permission,
            frequency=app_settings.auto_backup_frequency,
            last_backup_time=app_settings.last_backup_time,
        )
