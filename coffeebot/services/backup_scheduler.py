"""
Daily incremental backup, run inside the web process
"""
import asyncio
import contextlib
from typing import Optional

from coffeebot.core.clock import Clock
from coffeebot.core.logging_config import get_logger
from coffeebot.services.backup_service import BackupService


class BackupScheduler:
    """Runs `BackupService.create_backup` every day at `hour` local time"""

    def __init__(self, backup_service: BackupService, clock: Clock, hour: int = 2):
        self.logger = get_logger("coffeebot.services.backup_scheduler")
        self.backup_service = backup_service
        self.clock = clock
        self.hour = hour
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="coffeebot-backup-scheduler")
        self.logger.info(f"Backup scheduler started; next run at {self.clock.next_occurrence(self.hour).isoformat()}")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        self.logger.info("Backup scheduler stopped")

    def seconds_until_next_run(self) -> float:
        now = self.clock.now()
        return max((self.clock.next_occurrence(self.hour, after=now) - now).total_seconds(), 0.0)

    async def run_once(self) -> None:
        try:
            response = await self.backup_service.create_backup()
            self.logger.info(f"Scheduled backup finished: {response.text}")
        except Exception as e:
            # The next run picks up from the last successful backup
            self.logger.error(f"Scheduled backup failed: {e}", exc_info=True)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.seconds_until_next_run())
            await self.run_once()
