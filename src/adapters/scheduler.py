"""
Expired pending-record sweep.

Verification checks expiry lazily, so expired records would otherwise
linger until the same email makes a new request. The sweeper deletes them
on a fixed interval from an APScheduler background thread.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from apscheduler.schedulers.background import BackgroundScheduler

from src.domain.otp import utcnow
from src.domain.ports import AccountRepository

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "purge-expired-pending-registrations"


class ExpirySweeper:
    """Runs ``AccountRepository.purge_expired`` periodically."""

    def __init__(
        self,
        repository: AccountRepository,
        interval_seconds: int,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repository = repository
        self._interval_seconds = interval_seconds
        self._clock = clock
        self._scheduler = BackgroundScheduler(timezone="UTC")

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def run_once(self) -> int:
        """Purge expired pending records now; return how many were deleted."""
        deleted = self._repository.purge_expired(self._clock())
        if deleted:
            logger.info("Expiry sweep: deleted %d expired pending record(s)", deleted)
        return deleted

    def start(self) -> None:
        self._scheduler.add_job(
            self.run_once,
            "interval",
            seconds=self._interval_seconds,
            id=SWEEP_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("Expiry sweep scheduled every %d seconds", self._interval_seconds)

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
