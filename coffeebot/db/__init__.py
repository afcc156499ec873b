from .database import Base, engine, AsyncSessionLocal, SQLITE_BEGIN_IMMEDIATE, build_engine, build_session_factory
from .utils import check_database_connection, create_database_if_not_exists

__all__ = ["Base", "engine", "AsyncSessionLocal", "SQLITE_BEGIN_IMMEDIATE", "build_engine", "build_session_factory", "check_database_connection", "create_database_if_not_exists"]
