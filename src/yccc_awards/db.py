"""Database engine and session factory for award storage.

By default the award database is ``awards.db`` under ``DATA_DIR``
(``~/.yccc-awards``). ``DATABASE_URL`` replaces that with any SQLAlchemy async
URL. SQLite connections run in WAL mode so leaderboard reads proceed while a
recompute transaction is open.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = os.path.expanduser("~/.yccc-awards")
DB_FILENAME = "awards.db"

SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA busy_timeout=5000",
    "PRAGMA foreign_keys=ON",
)


def get_data_dir() -> Path:
    data_dir = Path(os.environ.get("DATA_DIR", DEFAULT_DATA_DIR))
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_db_url() -> str:
    """DATABASE_URL if set, else the SQLite file in the data directory."""
    return os.environ.get("DATABASE_URL") or f"sqlite+aiosqlite:///{get_data_dir() / DB_FILENAME}"


def _apply_sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    for pragma in SQLITE_PRAGMAS:
        cursor.execute(pragma)
    cursor.close()


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        url = get_db_url()
        _engine = create_async_engine(url, echo=False)
        if _engine.dialect.name == "sqlite":
            event.listen(_engine.sync_engine, "connect", _apply_sqlite_pragmas)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def init_db():
    """Create the award tables if they are missing."""
    from .sqlmodels import Base

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Award database ready at %s", engine.url.render_as_string(hide_password=True))


async def close_db():
    """Dispose of the engine; the next call to get_engine() reconnects."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
