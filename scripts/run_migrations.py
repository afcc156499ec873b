#!/usr/bin/env python3
"""
Run pending migrations without going through Slack.

The team id and domain name the workspace that owns the rows of the flat
coffee table, exactly as `/coffee migrate` run from that workspace would.
"""

import argparse
import asyncio
import sys
from coffeebot.core.clock import Clock
from coffeebot.core.config import settings
from coffeebot.core.logging_config import setup_logging, get_logger
from coffeebot.db import create_database_if_not_exists
from coffeebot.db.database import engine
from coffeebot.migrations import MigrationContext, MigrationEngine, MigrationLedger, default_registry

logger = get_logger("coffeebot.migrations.cli")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Apply pending CoffeeBot migrations")
    parser.add_argument("--team-id", default="", help="Slack team id that owns existing coffee rows")
    parser.add_argument("--team-domain", default="", help="Slack team domain for the team record")
    parser.add_argument("--user-id", default="cli", help="Recorded as the user that triggered the run")
    parser.add_argument("--user-name", default="cli")
    parser.add_argument(
        "--target-level",
        type=int,
        default=settings.TARGET_MIGRATION_LEVEL,
        help="Highest level to apply (default: %(default)s)",
    )
    parser.add_argument("--create-database", action="store_true", help="Create the PostgreSQL database first")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    if args.create_database:
        await create_database_if_not_exists(settings.DATABASE_URL)

    ledger = MigrationLedger(engine)
    try:
        await ledger.ensure_table()
        migration_engine = MigrationEngine(
            engine,
            default_registry(),
            ledger,
            target_level=args.target_level,
            clock=Clock(settings.TIMEZONE),
        )
        result = await migration_engine.run_pending_migrations(
            MigrationContext(
                user_id=args.user_id,
                user_name=args.user_name,
                team_id=args.team_id,
                team_domain=args.team_domain,
            )
        )
    finally:
        await engine.dispose()

    print(result.message)
    print(f"Level {result.starting_level} -> {result.final_level}; applied {result.applied_levels}")
    if result.error is not None:
        print(f"Error: {result.error}", file=sys.stderr)
    return 0 if result.success else 1


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run(parse_args())))
