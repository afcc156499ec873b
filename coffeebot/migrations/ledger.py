"""
Append-only record of applied migration levels
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from coffeebot.core.logging_config import get_logger
from coffeebot.migrations.errors import ConflictError

logger = get_logger("coffeebot.migrations.ledger")

ledger_metadata = sa.MetaData()

migrations_table = sa.Table(
    "migrations",
    ledger_metadata,
    sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
    sa.Column("run_at", sa.DateTime(timezone=True), nullable=False),
)


@dataclass
class MigrationLedgerEntry:
    level: int
    applied_at: datetime


class MigrationLedger:
    """Reads and appends rows of the `migrations` table.

    Only committed rows are ever visible to `current_level`; `record_level`
    must run as the last statement of the step transaction it records.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def ensure_table(self) -> None:
        """Create the ledger table if it doesn't exist"""
        async with self.engine.begin() as conn:
            await conn.run_sync(migrations_table.create, checkfirst=True)
        logger.info("Migration ledger table is present")

    async def current_level(self, conn: Optional[AsyncConnection] = None) -> Optional[int]:
        """Highest applied level, or None if nothing has been applied"""
        if conn is not None:
            return await self._max_level(conn)
        async with self.engine.connect() as own_conn:
            return await self._max_level(own_conn)

    async def record_level(self, conn: AsyncConnection, level: int, applied_at: datetime) -> None:
        """Append `level`; it must be exactly one above the current level"""
        current = await self._max_level(conn)
        if level != (current or 0) + 1:
            raise ConflictError(level, current)

        try:
            await conn.execute(
                sa.insert(migrations_table).values(id=level, run_at=applied_at)
            )
        except IntegrityError as e:
            # Another run inserted the same level after our read
            raise ConflictError(level, current) from e

    async def entries(self) -> List[MigrationLedgerEntry]:
        async with self.engine.connect() as conn:
            result = await conn.execute(
                sa.select(migrations_table.c.id, migrations_table.c.run_at).order_by(migrations_table.c.id)
            )
            return [MigrationLedgerEntry(level=row.id, applied_at=row.run_at) for row in result]

    @staticmethod
    async def _max_level(conn: AsyncConnection) -> Optional[int]:
        result = await conn.execute(sa.select(sa.func.max(migrations_table.c.id)))
        return result.scalar()
