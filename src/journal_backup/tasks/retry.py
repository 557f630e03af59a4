"""Bounded retry with a fixed delay between attempts.

Usage:
    report = await run_with_retry(lambda: service.create_backup(BackupKind.AUTOMATIC))
    if report.succeeded:
        ...
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RETRY_DELAY = 5.0  # seconds, fixed (not exponential)


class AttemptRecord(BaseModel):
    """Outcome of one attempt."""

    attempt: int
    succeeded: bool
    error: str | None = None


class RetryReport(BaseModel):
    """Outcome of the whole retry sequence."""

    succeeded: bool = False
    attempts: list[AttemptRecord] = Field(default_factory=list)
    result: Any = None

    @property
    def last_error(self) -> str | None:
        for record in reversed(self.attempts):
            if record.error:
                return record.error
        return None


async def run_with_retry(
    operation: Callable[[], Awaitable[Any]],
    max_attempts: int = MAX_ATTEMPTS,
    retry_delay: float = RETRY_DELAY,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> RetryReport:
    """Run ``operation`` until it succeeds or attempts run out.

    Failures never propagate: an exhausted sequence is reported through
    ``RetryReport.succeeded``.

    Args:
        operation: Zero-argument coroutine factory.
        max_attempts: Total attempts, including the first.
        retry_delay: Seconds to wait between attempts.
        sleep: Awaitable sleep (injectable for tests).
    """
    report = RetryReport()

    for attempt in range(1, max_attempts + 1):
        logger.info(f"Backup attempt {attempt}/{max_attempts}")
        try:
            report.result = await operation()
        except Exception as e:
            report.attempts.append(AttemptRecord(attempt=attempt, succeeded=False, error=str(e)))
            logger.error(f"Backup attempt {attempt} failed: {e}")
            if attempt < max_attempts:
                logger.info(f"Waiting {retry_delay}s before retry...")
                await sleep(retry_delay)
            continue

        report.attempts.append(AttemptRecord(attempt=attempt, succeeded=True))
        report.succeeded = True
        logger.info(f"Backup successful on attempt {attempt}")
        return report

    logger.error(f"All {max_attempts} backup attempts failed. Last error: {report.last_error}")
    return report
