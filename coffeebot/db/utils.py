from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine
import asyncpg
from coffeebot.core.logging_config import get_logger

logger = get_logger("coffeebot.db")


async def check_database_connection(db_engine: AsyncEngine) -> bool:
    """Check if database connection is working"""
    try:
        async with db_engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


async def create_database_if_not_exists(database_url: str) -> None:
    """Create the PostgreSQL database if it doesn't exist using asyncpg"""
    url = make_url(database_url)
    if url.get_backend_name() != "postgresql":
        logger.info(f"Skipping database creation for backend {url.get_backend_name()}")
        return

    # Connect to postgres database to create the target database
    conn = await asyncpg.connect(
        host=url.host,
        port=url.port or 5432,
        user=url.username,
        password=url.password,
        database="postgres",
    )
    try:
        result = await conn.fetchval(
            "SELECT 1 FROM pg_database WHERE datname = $1",
            url.database
        )

        if not result:
            await conn.execute(f'CREATE DATABASE "{url.database}" ENCODING = \'UTF8\'')
            logger.info(f"Database '{url.database}' created successfully")
        else:
            logger.info(f"Database '{url.database}' already exists")
    finally:
        await conn.close()
