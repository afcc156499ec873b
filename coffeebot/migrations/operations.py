"""
Typed migration steps and the operations they are made of.

A step is a numbered, immutable list of operations. Schema operations
create structures (idempotently); data operations read and rewrite rows.
The engine runs every operation of a step inside one transaction, so
operations never commit on their own.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional, Tuple

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncConnection


class OperationKind(str, Enum):
    SCHEMA = "schema"
    DATA = "data"


@dataclass(frozen=True)
class MigrationContext:
    """Who asked for the migration run, and from which workspace.

    The workspace also owns the rows of the flat coffee table when
    they are copied into the normalized tables.
    """
    user_id: str
    user_name: str
    team_id: str
    team_domain: str

    def describe(self) -> str:
        return f"{self.user_id}:{self.user_name} ({self.team_id}:{self.team_domain})"


class MigrationOperation(ABC):
    """One idempotent action within a migration step"""

    kind: OperationKind

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @abstractmethod
    async def apply(self, conn: AsyncConnection, context: MigrationContext, now: datetime) -> None:
        """Run the operation on a connection that is inside the step transaction"""
        pass


class CreateTable(MigrationOperation):
    """Create a table (and the indexes declared on it) if it does not exist"""

    kind = OperationKind.SCHEMA

    def __init__(self, table: sa.Table):
        self.table = table

    @property
    def description(self) -> str:
        return f"create table {self.table.name}"

    async def apply(self, conn: AsyncConnection, context: MigrationContext, now: datetime) -> None:
        await conn.run_sync(self.table.create, checkfirst=True)


class CreateIndex(MigrationOperation):
    """Create an index on an existing table if it does not exist"""

    kind = OperationKind.SCHEMA

    def __init__(self, index: sa.Index):
        self.index = index

    @property
    def description(self) -> str:
        return f"create index {self.index.name} on {self.index.table.name}"

    async def apply(self, conn: AsyncConnection, context: MigrationContext, now: datetime) -> None:
        await conn.run_sync(self.index.create, checkfirst=True)


TransformFunc = Callable[[AsyncConnection, MigrationContext, datetime], Awaitable[None]]


class DataTransform(MigrationOperation):
    """Copy or rewrite rows.

    The function must be safe to re-run over rows a previous failed
    attempt may already have touched.
    """

    kind = OperationKind.DATA

    def __init__(self, name: str, func: TransformFunc):
        self.name = name
        self.func = func

    @property
    def description(self) -> str:
        return self.name

    async def apply(self, conn: AsyncConnection, context: MigrationContext, now: datetime) -> None:
        await self.func(conn, context, now)


@dataclass(frozen=True)
class MigrationStep:
    """Moves the store from `target_level - 1` to `target_level`.

    Never edit a step once it has shipped: stores that already applied it
    would disagree with stores that apply the edited version.
    """
    target_level: int
    description: str
    operations: Tuple[MigrationOperation, ...] = field(default_factory=tuple)

    def is_applicable(self, current_level: Optional[int]) -> bool:
        current = current_level or 0
        return current < self.target_level and self.target_level == current + 1
