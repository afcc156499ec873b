from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
import time

from coffeebot.api.slack import router as slack_router
from coffeebot.core.clock import Clock
from coffeebot.core.config import Settings, settings as default_settings
from coffeebot.core.logging_config import setup_logging, get_logger
from coffeebot.db import build_engine, build_session_factory, check_database_connection
from coffeebot.migrations import MigrationEngine, MigrationGate, MigrationLedger, default_registry
from coffeebot.services import BackupScheduler, BackupService, CoffeeService, IdentityService
from coffeebot.slack.dispatcher import CommandDispatcher
from coffeebot.slack.verification import RequestVerifier
from coffeebot.storage import BlobStoreFactory, BlobStoreInterface

# Setup logging FIRST
setup_logging()
logger = get_logger("coffeebot.main")


def create_app(
    app_settings: Optional[Settings] = None,
    db_engine: Optional[AsyncEngine] = None,
    blob_store: Optional[BlobStoreInterface] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Build the application and wire its services.

    Anything not passed in is created from settings; an engine created
    here is disposed on shutdown.
    """
    app_settings = app_settings or default_settings
    owns_engine = db_engine is None
    db_engine = db_engine or build_engine(app_settings.DATABASE_URL, echo=app_settings.DB_ECHO)
    clock = clock or Clock(app_settings.TIMEZONE)
    session_factory = build_session_factory(db_engine)
    blob_store = blob_store or BlobStoreFactory.create_store(app_settings.BACKUP_BACKEND.lower())

    ledger = MigrationLedger(db_engine)
    gate = MigrationGate(ledger, app_settings.TARGET_MIGRATION_LEVEL)
    migration_engine = MigrationEngine(
        db_engine,
        default_registry(),
        ledger,
        target_level=app_settings.TARGET_MIGRATION_LEVEL,
        clock=clock,
    )
    backup_service = BackupService(
        session_factory,
        blob_store,
        clock,
        folder=app_settings.AWS_BACKUP_FOLDER,
    )
    scheduler = BackupScheduler(backup_service, clock, hour=app_settings.BACKUP_HOUR)
    dispatcher = CommandDispatcher(
        gate=gate,
        migration_engine=migration_engine,
        identity=IdentityService(
            session_factory,
            clock,
            admin_key=app_settings.ADMIN_KEY,
            link_code_words=app_settings.LINK_CODE_WORDS,
            link_code_ttl_hours=app_settings.LINK_CODE_TTL_HOURS,
        ),
        coffee=CoffeeService(
            session_factory,
            clock,
            max_add=app_settings.MAX_COFFEE_ADD,
            max_subtract=app_settings.MAX_COFFEE_SUBTRACT,
        ),
        backup=backup_service,
        slash_command=app_settings.SLASH_COMMAND,
        migration_allowed_users=app_settings.migration_allowed_users,
        count_display_size=app_settings.COUNT_DISPLAY_SIZE,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info(f"""
--------------------------------------------------------------
🚀 {app_settings.PROJECT_NAME} v{app_settings.VERSION} starting up...""")

        logger.info("🔍 Checking migration ledger...")
        try:
            await ledger.ensure_table()
            current_level = await ledger.current_level()
        except SQLAlchemyError as e:
            logger.error(f"❌ Migration ledger unavailable: {e}")
            logger.warning("🚀 Starting anyway - commands will report pending migrations until the database is reachable")
        else:
            if await gate.is_migration_pending():
                logger.warning(
                    f"⚠️ Migrations pending: ledger at {current_level}, code expects {app_settings.TARGET_MIGRATION_LEVEL}"
                )
                logger.warning(f"🚀 Starting anyway - run '{app_settings.SLASH_COMMAND} migrate' before other commands")
            else:
                logger.info(f"✅ Migrations are up to date at level {current_level}")

        logger.info("🔍 Checking backup store health...")
        store_health = await blob_store.health_check()
        if store_health["status"] == "healthy":
            logger.info(f"✅ Backup store ({store_health['backend']}) is healthy")
        else:
            logger.warning(f"⚠️ Backup store ({store_health['backend']}) is unhealthy: {store_health.get('error', 'Unknown error')}")
            logger.warning("🚀 Starting anyway - backups will fail until the store is reachable")

        if app_settings.BACKUP_SCHEDULE_ENABLED:
            scheduler.start()

        yield

        # Shutdown
        logger.info("🛑 Stopping backup scheduler...")
        await scheduler.stop()
        if owns_engine:
            await db_engine.dispose()
        logger.info(f"🛑 {app_settings.PROJECT_NAME} shutting down...")

    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        version=app_settings.VERSION,
        lifespan=lifespan,
    )
    app.state.dispatcher = dispatcher
    app.state.request_verifier = RequestVerifier(
        auth_key=app_settings.AUTH_KEY,
        signing_secret=app_settings.SLACK_SIGNING_SECRET,
    )
    app.state.gate = gate
    app.state.db_engine = db_engine
    app.state.backup_scheduler = scheduler

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        logger.info(f"Request: {request.method} {request.url.path}")

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"Response: {response.status_code} - {request.method} {request.url.path} - {process_time:.4f}s"
        )

        return response

    app.include_router(slack_router)

    @app.get("/")
    async def root():
        logger.info("Root endpoint accessed")
        return {"message": f"{app_settings.PROJECT_NAME} project is running!"}

    @app.get("/health")
    async def health_check():
        logger.info("Health check endpoint accessed")
        database_ok = await check_database_connection(db_engine)
        migrations_pending = await gate.is_migration_pending()
        store_health = await blob_store.health_check()
        return {
            "status": "healthy" if database_ok else "unhealthy",
            "database": "connected" if database_ok else "unavailable",
            "backup_store": store_health["status"],
            "migrations_pending": migrations_pending,
        }

    return app


app = create_app()
