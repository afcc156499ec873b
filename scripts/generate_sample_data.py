#!/usr/bin/env python3
"""
Sample data generator for the flat coffee table
This script fills a level 1 store with realistic coffee history, so the
level 2 normalization has something to copy
"""

import asyncio
import random
from datetime import timedelta
from sqlalchemy import func, select
from coffeebot.core.clock import Clock
from coffeebot.core.config import settings
from coffeebot.db.database import AsyncSessionLocal, engine
from coffeebot.migrations import MigrationContext, MigrationEngine, MigrationLedger, default_registry
from coffeebot.models import Coffee


# Sample drinkers with how keen they are on coffee
SAMPLE_USERS = [
    ("U0001AAAA", "alice", 3.0),
    ("U0002BBBB", "bob", 1.5),
    ("U0003CCCC", "carol", 2.2),
    ("U0004DDDD", "dave", 0.8),
    ("U0005EEEE", "erin", 4.1),
    ("U0006FFFF", "frank", 1.0),
]

DAYS_OF_HISTORY = 60


async def ensure_flat_table(clock: Clock) -> bool:
    """Bring an empty store to level 1; False if it is already past it"""
    ledger = MigrationLedger(engine)
    await ledger.ensure_table()
    level = await ledger.current_level()

    if level is None:
        migration_engine = MigrationEngine(engine, default_registry(), ledger, target_level=1, clock=clock)
        result = await migration_engine.run_pending_migrations(
            MigrationContext(user_id="sample-data", user_name="sample-data", team_id="", team_domain="")
        )
        print(f"Level 1: {result.message}")
        return result.success

    if level > 1:
        print(f"Store is already at migration level {level}. The flat coffee table is no longer used.")
        return False
    return True


async def generate_sample_data():
    """Generate and insert sample coffees into the flat table"""
    clock = Clock(settings.TIMEZONE)
    if not await ensure_flat_table(clock):
        return

    start_of_today, _ = clock.today_bounds()
    start_date = start_of_today - timedelta(days=DAYS_OF_HISTORY)

    print(f"Generating sample coffees from {start_date.date()} to {start_of_today.date()}")

    async with AsyncSessionLocal() as db:
        # Check if data already exists
        existing_count = (await db.execute(select(func.count(Coffee.id)))).scalar_one()

        if existing_count > 0:
            print(f"Found {existing_count} existing coffees. Skipping data generation.")
            return

        total_records = 0
        for day in range(DAYS_OF_HISTORY):
            current_day = start_date + timedelta(days=day)
            # Fewer coffees on weekends
            is_weekend = current_day.weekday() >= 5

            for user_id, user_name, keenness in SAMPLE_USERS:
                mean = keenness * (0.3 if is_weekend else 1.0)
                coffees = max(0, round(random.gauss(mean, 0.8)))

                for _ in range(coffees):
                    created_at = current_day + timedelta(
                        hours=random.randint(7, 17),
                        minutes=random.randint(0, 59),
                    )
                    db.add(Coffee(user_id=user_id, user_name=user_name, created_at=created_at))
                    total_records += 1

        # Commit all records
        await db.commit()
        print(f"Successfully generated {total_records} sample coffees!")

        # Show the totals per drinker
        print("\nCoffees per drinker:")
        totals = await db.execute(
            select(Coffee.user_name, func.count(Coffee.id)).group_by(Coffee.user_name).order_by(Coffee.user_name)
        )
        for user_name, count in totals.all():
            print(f"  {user_name}: {count}")

    await engine.dispose()


if __name__ == "__main__":
    print("Starting sample data generation...")
    asyncio.run(generate_sample_data())
    print("Sample data generation complete!")
