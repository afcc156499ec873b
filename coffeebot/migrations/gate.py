"""
Read-only check that blocks domain commands while migrations are pending
"""
from sqlalchemy.exc import SQLAlchemyError

from coffeebot.core.logging_config import get_logger
from coffeebot.migrations.ledger import MigrationLedger

logger = get_logger("coffeebot.migrations.gate")


class MigrationGate:
    """Compares the ledger with the level the running code expects"""

    def __init__(self, ledger: MigrationLedger, target_level: int):
        self.ledger = ledger
        self.target_level = target_level

    async def is_migration_pending(self) -> bool:
        """True when the ledger is empty, behind, or cannot be read"""
        try:
            current_level = await self.ledger.current_level()
        except SQLAlchemyError as e:
            logger.error(f"Could not read migration ledger, treating migrations as pending: {e}")
            return True

        return current_level is None or current_level < self.target_level
