"""
Database engine and session management.
"""
import logging
import os
from pathlib import Path
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

SQLITE_PREFIX = "sqlite+aiosqlite:///"

# Base class for models
Base = declarative_base()


def _ensure_sqlite_directory(database_url: str) -> None:
    """
    Create the parent directory of a file-backed SQLite database.
    """
    if not database_url.startswith(SQLITE_PREFIX):
        return

    db_path = database_url[len(SQLITE_PREFIX):]
    if not db_path or db_path == ":memory:":
        return
    # Handle relative paths (./data/faultline.db -> data/faultline.db)
    if db_path.startswith("./"):
        db_path = db_path[2:]
    if not db_path.startswith("/"):
        db_path = os.path.abspath(db_path)

    db_dir = os.path.dirname(db_path)
    if db_dir and not os.path.exists(db_dir):
        Path(db_dir).mkdir(parents=True, exist_ok=True)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the given URL.
    """
    _ensure_sqlite_directory(database_url)
    return create_async_engine(
        database_url,
        echo=echo,
        future=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """
    Create the session factory handed to services.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    Initialize database - create tables if they don't exist.
    """
    # Models must be registered on Base before create_all
    from faultline import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database schema ready ({engine.dialect.name})")
