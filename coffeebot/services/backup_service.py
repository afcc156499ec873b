"""
Incremental and full backups of the normalized tables to a blob store
"""
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coffeebot.core.clock import Clock
from coffeebot.core.logging_config import get_logger
from coffeebot.db.database import Base
from coffeebot.models import AbstractUser, Backup, Drink, SlackResponse, Team, User
from coffeebot.storage.base import BlobStoreInterface

BACKUP_TABLES: List[Tuple[str, Type[Base]]] = [
    ("abstract_user_v2", AbstractUser),
    ("team_v2", Team),
    ("user_v2", User),
    ("drink_v2", Drink),
]


class BackupMode(str, Enum):
    INCREMENTAL = "incremental"
    FULL = "full"


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class BackupService:
    """Serialises rows as JSON lines and uploads them in one artifact.

    Every attempt, successful or not, is recorded in the `backups` table;
    incremental backups start from the last successful one.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        blob_store: BlobStoreInterface,
        clock: Clock,
        folder: str = "backups",
    ):
        self.logger = get_logger("coffeebot.services.backup")
        self.session_factory = session_factory
        self.blob_store = blob_store
        self.clock = clock
        self.folder = folder.strip("/")

    async def create_backup(self) -> SlackResponse:
        return await self._run(BackupMode.INCREMENTAL)

    async def create_full_backup(self) -> SlackResponse:
        return await self._run(BackupMode.FULL)

    async def _run(self, mode: BackupMode) -> SlackResponse:
        self.logger.info(f"Commencing {mode.value} backup")
        now = self.clock.now()

        async with self.session_factory() as session:
            since = await self._last_successful_backup(session) if mode == BackupMode.INCREMENTAL else None
            lines = await self._collect_rows(session, since)

        key = f"{self.folder}/{now.isoformat()}.v2.rows.{mode.value}.json"
        try:
            await self.blob_store.put(key, "\n".join(lines).encode("utf-8"), content_type="application/x-ndjson")
        except Exception as e:
            self.logger.error(f"{mode.value.capitalize()} backup upload failed: {e}", exc_info=True)
            await self._record(now, successful=False, message=str(e))
            return SlackResponse.ephemeral(f"{mode.value.capitalize()} backup failed. Check the logs for details.")

        await self._record(now, successful=True, message="")
        message = f"{len(lines)} rows backed up. Filename: {key}."
        self.logger.info(message)
        return SlackResponse.ephemeral(message)

    async def _last_successful_backup(self, session: AsyncSession) -> datetime:
        result = await session.execute(
            select(Backup.backup_until)
            .where(Backup.successful == True)  # noqa: E712
            .order_by(Backup.backup_until.desc())
            .limit(1)
        )
        backup_until = result.scalar_one_or_none()
        if backup_until is None:
            return self.clock.localize(Clock.epoch())
        return self.clock.localize(backup_until)

    async def _collect_rows(self, session: AsyncSession, since: Optional[datetime]) -> List[str]:
        lines: List[str] = []
        for table_name, model in BACKUP_TABLES:
            query = select(model)
            if since is not None:
                query = query.where(model.created_at > since)
            result = await session.execute(query.order_by(model.created_at))
            for obj in result.scalars():
                lines.append(json.dumps({"tableName": table_name, **self._row_dict(obj)}, default=_json_default))
        return lines

    @staticmethod
    def _row_dict(obj: Base) -> Dict[str, Any]:
        return {column.name: getattr(obj, column.key) for column in obj.__table__.columns}

    async def _record(self, now: datetime, successful: bool, message: str) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                session.add(Backup(created_at=now, backup_until=now, successful=successful, message=message))
