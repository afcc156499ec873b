"""
Applies pending migration steps, one transaction per step
"""
import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from coffeebot.core.clock import Clock
from coffeebot.core.logging_config import get_logger
from coffeebot.db.database import SQLITE_BEGIN_IMMEDIATE
from coffeebot.migrations.errors import (
    ConflictError,
    MigrationError,
    PreconditionMismatch,
    StepExecutionError,
)
from coffeebot.migrations.ledger import MigrationLedger
from coffeebot.migrations.operations import MigrationContext, MigrationStep
from coffeebot.migrations.registry import MigrationRegistry


class MigrationStatus(str, Enum):
    APPLIED = "applied"
    UP_TO_DATE = "up_to_date"
    ALREADY_APPLIED = "already_applied"
    CONFLICT = "conflict"
    FAILED = "failed"


@dataclass
class MigrationResult:
    """Outcome of one `run_pending_migrations` call"""
    status: MigrationStatus
    starting_level: Optional[int]
    final_level: Optional[int]
    applied_levels: List[int] = field(default_factory=list)
    skipped_levels: List[int] = field(default_factory=list)
    error: Optional[MigrationError] = None

    @property
    def success(self) -> bool:
        return self.status in (
            MigrationStatus.APPLIED,
            MigrationStatus.UP_TO_DATE,
            MigrationStatus.ALREADY_APPLIED,
        )

    @property
    def message(self) -> str:
        """Short text for the person who triggered the run"""
        if self.status == MigrationStatus.APPLIED:
            return "Migrations ran successfully"
        if self.status == MigrationStatus.UP_TO_DATE:
            return "Migrations ran successfully; nothing to apply"
        if self.status == MigrationStatus.ALREADY_APPLIED:
            return "Migrations were already applied"
        if self.status == MigrationStatus.CONFLICT:
            return "Migrations are being applied elsewhere. Try again shortly"
        return "Migrations failed to apply"


class MigrationEngine:
    """Brings the store up to `target_level`.

    Each pending step gets its own transaction. The step re-reads the
    ledger inside that transaction, runs its operations and appends its
    level as the last statement, so a failure anywhere leaves the ledger
    at the previous level. A failed step stops the run; steps committed
    before it stay committed.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        registry: MigrationRegistry,
        ledger: MigrationLedger,
        target_level: int,
        clock: Clock,
    ):
        if target_level < 1 or target_level > registry.max_level:
            raise ValueError(
                f"Target migration level {target_level} is outside the registered levels 1..{registry.max_level}"
            )
        self.engine = engine
        self.registry = registry
        self.ledger = ledger
        self.target_level = target_level
        self.clock = clock
        self.logger = get_logger("coffeebot.migrations.engine")
        # Step transactions hold the write lock from BEGIN on SQLite, so a
        # concurrent run waits and then sees the level the winner committed
        self.step_engine = engine.execution_options(**{SQLITE_BEGIN_IMMEDIATE: True})

    async def run_pending_migrations(self, context: MigrationContext) -> MigrationResult:
        self.logger.info(f"Migration run requested by {context.describe()}")

        try:
            starting_level = await self.ledger.current_level()
        except SQLAlchemyError as e:
            self.logger.error(f"Could not read migration ledger: {e}", exc_info=True)
            return MigrationResult(
                status=MigrationStatus.FAILED,
                starting_level=None,
                final_level=None,
                error=StepExecutionError(1, f"ledger unreadable: {e}"),
            )

        self.logger.info(f"Current migration level: {starting_level}")
        pending = [
            step for step in self.registry.steps_above(starting_level)
            if step.target_level <= self.target_level
        ]
        if not pending:
            self.logger.info("No migrations pending")
            return MigrationResult(
                status=MigrationStatus.UP_TO_DATE,
                starting_level=starting_level,
                final_level=starting_level,
            )

        applied: List[int] = []
        skipped: List[int] = []

        for step in pending:
            try:
                await self._apply_step(step, context)
                applied.append(step.target_level)
                self.logger.info(f"Migration level {step.target_level} applied successfully")

            except PreconditionMismatch as e:
                self.logger.info(f"Skipping migration level {step.target_level}: {e}")
                skipped.append(step.target_level)

            except (ConflictError, StepExecutionError) as e:
                level_now = await self._read_level_quietly()
                if level_now is not None and level_now >= step.target_level:
                    # Lost a race against another run that committed this level
                    self.logger.info(
                        f"Migration level {step.target_level} was applied concurrently elsewhere: {e}"
                    )
                    skipped.append(step.target_level)
                    continue

                status = MigrationStatus.CONFLICT if isinstance(e, ConflictError) else MigrationStatus.FAILED
                self.logger.error(
                    f"Migrations failed to apply at level {step.target_level}: {e}",
                    exc_info=e.__cause__ or e,
                )
                return MigrationResult(
                    status=status,
                    starting_level=starting_level,
                    final_level=level_now,
                    applied_levels=applied,
                    skipped_levels=skipped,
                    error=e,
                )

        final_level = await self._read_level_quietly()
        status = MigrationStatus.APPLIED if applied else MigrationStatus.ALREADY_APPLIED
        self.logger.info(f"All necessary migrations applied; level is now {final_level}")
        return MigrationResult(
            status=status,
            starting_level=starting_level,
            final_level=final_level,
            applied_levels=applied,
            skipped_levels=skipped,
        )

    async def _apply_step(self, step: MigrationStep, context: MigrationContext) -> None:
        self.logger.info(f"Applying migration level {step.target_level}: {step.description}")
        try:
            async with self.step_engine.begin() as conn:
                current = await self.ledger.current_level(conn)
                if current is not None and current >= step.target_level:
                    raise PreconditionMismatch(step.target_level, current)
                if not step.is_applicable(current):
                    raise StepExecutionError(
                        step.target_level,
                        f"ledger is at {current}, expected {step.target_level - 1}",
                    )

                now = self.clock.now()
                for operation in step.operations:
                    self.logger.debug(
                        f"Level {step.target_level}: {operation.kind.value} operation '{operation.description}'"
                    )
                    await operation.apply(conn, context, now)

                await self.ledger.record_level(conn, step.target_level, now)
        except MigrationError:
            raise
        except Exception as e:
            raise StepExecutionError(step.target_level, str(e)) from e

    async def _read_level_quietly(self, attempts: int = 5, delay: float = 0.2) -> Optional[int]:
        for attempt in range(1, attempts + 1):
            try:
                return await self.ledger.current_level()
            except OperationalError as e:
                # Usually a lock held by a concurrent run that is still committing
                if attempt == attempts:
                    self.logger.error(f"Could not re-read migration ledger after {attempts} attempts: {e}")
                    return None
                self.logger.warning(f"Migration ledger busy, retrying read ({attempt}/{attempts}): {e}")
                await asyncio.sleep(delay * attempt)
            except SQLAlchemyError as e:
                self.logger.error(f"Could not re-read migration ledger: {e}")
                return None
        return None
