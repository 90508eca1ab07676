"""
Database Connection Manager
===========================

Handles the async connection to the project's SQLite database.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from codebakers.db.models import Base

DB_FILENAME = "engineering.db"


@dataclass
class Database:
    """An engine and the session maker bound to it."""
    engine: AsyncEngine
    session_maker: async_sessionmaker[AsyncSession]

    async def dispose(self) -> None:
        await self.engine.dispose()


async def init_db(
    project_path: Path,
    state_dir: str = ".codebakers",
    db_url: Optional[str] = None,
) -> Database:
    """
    Initialize the database connection and create tables if they don't exist.

    The database file is stored in ``<state_dir>/engineering.db`` within the
    project root unless an explicit ``db_url`` is given.
    """
    if db_url is None:
        db_dir = Path(project_path) / state_dir
        db_dir.mkdir(parents=True, exist_ok=True)
        db_url = f"sqlite+aiosqlite:///{db_dir / DB_FILENAME}"

    engine = create_async_engine(db_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return Database(engine=engine, session_maker=async_sessionmaker(engine, expire_on_commit=False))
