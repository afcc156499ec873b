from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from coffeebot.core.config import settings

# Execution option that asks SQLite to take the write lock at BEGIN
SQLITE_BEGIN_IMMEDIATE = "coffeebot_sqlite_begin_immediate"


class Base(DeclarativeBase):
    pass


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine; SQLite gets transactional DDL"""
    db_engine = create_async_engine(url, echo=echo, future=True)

    if db_engine.dialect.name == "sqlite":
        # pysqlite neither emits BEGIN before DDL nor keeps DDL inside the
        # surrounding transaction; take over transaction control so a failed
        # migration step rolls back its CREATE TABLE statements too.
        @event.listens_for(db_engine.sync_engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(db_engine.sync_engine, "begin")
        def _emit_begin(conn):
            if conn.get_execution_options().get(SQLITE_BEGIN_IMMEDIATE):
                # Writers queue up here instead of failing at their first write
                conn.exec_driver_sql("BEGIN IMMEDIATE")
            else:
                conn.exec_driver_sql("BEGIN")

    return db_engine


def build_session_factory(db_engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)

AsyncSessionLocal = build_session_factory(engine)
