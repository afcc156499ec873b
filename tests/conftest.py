"""Shared pytest fixtures for CoffeeBot tests.

Every test gets its own SQLite file with transactional DDL enabled, a
clock frozen on a Tuesday morning in Melbourne and an in-memory blob
store. Settings are pointed away from PostgreSQL and S3 before any
coffeebot module is imported.
"""

import os

os.environ["DATABASE_URL_OVERRIDE"] = "sqlite+aiosqlite:///:memory:"
os.environ["BACKUP_BACKEND"] = "memory"
os.environ["BACKUP_SCHEDULE_ENABLED"] = "false"

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio

from coffeebot.core.clock import FixedClock
from coffeebot.db import build_engine, build_session_factory
from coffeebot.migrations import MigrationContext, MigrationEngine, MigrationGate, MigrationLedger, default_registry
from coffeebot.models import SlashCommand
from coffeebot.services import BackupService, CoffeeService, IdentityService
from coffeebot.slack.dispatcher import CommandDispatcher
from coffeebot.storage import MemoryBlobStore

MELBOURNE = ZoneInfo("Australia/Melbourne")

TEAM_ID = "T0001"
TEAM_DOMAIN = "roasters"


# =============================================================================
# Store and clock
# =============================================================================

@pytest.fixture
def clock() -> FixedClock:
    """Tuesday 10 March 2026, 09:30 in Melbourne."""
    return FixedClock(datetime(2026, 3, 10, 9, 30, tzinfo=MELBOURNE))


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'coffee.db'}"


@pytest_asyncio.fixture
async def db_engine(database_url):
    engine = build_engine(database_url)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest_asyncio.fixture
async def ledger(db_engine) -> MigrationLedger:
    ledger = MigrationLedger(db_engine)
    await ledger.ensure_table()
    return ledger


@pytest.fixture
def migration_context() -> MigrationContext:
    return MigrationContext(user_id="U0ADMIN", user_name="admin", team_id=TEAM_ID, team_domain=TEAM_DOMAIN)


@pytest.fixture
def migration_engine(db_engine, ledger, clock) -> MigrationEngine:
    return MigrationEngine(db_engine, default_registry(), ledger, target_level=2, clock=clock)


@pytest_asyncio.fixture
async def migrated(migration_engine, migration_context):
    """Store brought up to level 2 with no legacy coffees."""
    result = await migration_engine.run_pending_migrations(migration_context)
    assert result.success
    return result


# =============================================================================
# Services
# =============================================================================

@pytest.fixture
def blob_store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def identity(session_factory, clock) -> IdentityService:
    return IdentityService(session_factory, clock, admin_key="sesame")


@pytest.fixture
def coffee_service(session_factory, clock) -> CoffeeService:
    return CoffeeService(session_factory, clock, max_add=5, max_subtract=2)


@pytest.fixture
def backup_service(session_factory, blob_store, clock) -> BackupService:
    return BackupService(session_factory, blob_store, clock, folder="backups")


@pytest.fixture
def dispatcher(ledger, migration_engine, identity, coffee_service, backup_service) -> CommandDispatcher:
    return CommandDispatcher(
        gate=MigrationGate(ledger, target_level=2),
        migration_engine=migration_engine,
        identity=identity,
        coffee=coffee_service,
        backup=backup_service,
        slash_command="/coffee",
        count_display_size=5,
    )


# =============================================================================
# Slack payloads
# =============================================================================

@pytest.fixture
def make_command():
    """Build a /coffee payload; keyword arguments override the defaults."""

    def _make(text: str = "", **overrides) -> SlashCommand:
        fields = {
            "command": "/coffee",
            "text": text,
            "user_id": "U0001",
            "user_name": "alice",
            "team_id": TEAM_ID,
            "team_domain": TEAM_DOMAIN,
            "channel_id": "C0001",
        }
        fields.update(overrides)
        return SlashCommand(**fields)

    return _make
