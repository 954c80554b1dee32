"""Database connection and session management."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..errors import StorageError
from ..orm.base import Base

logger = logging.getLogger(__name__)


def _add_missing_columns(conn: Connection) -> list[str]:
    """Add columns present in the models but missing from existing tables.

    Only additive changes are made; columns are never dropped or altered.
    """
    inspector = inspect(conn)
    added = []
    for table in Base.metadata.sorted_tables:
        if not inspector.has_table(table.name):
            continue
        existing = {col["name"] for col in inspector.get_columns(table.name)}
        for column in table.columns:
            if column.name in existing:
                continue
            ddl = (
                f"ALTER TABLE {table.name} ADD COLUMN {column.name} "
                f"{column.type.compile(dialect=conn.dialect)}"
            )
            if column.server_default is not None:
                ddl += f" NOT NULL DEFAULT {column.server_default.arg.text}"
            conn.execute(text(ddl))
            added.append(f"{table.name}.{column.name}")
    return added


class DatabaseService:
    """Manages database connection and session lifecycle.

    SQLite does not tolerate concurrent writers, so the engine keeps a
    single connection; callers serialize access on top of that.
    """

    def __init__(self, database_path: str | Path):
        self.database_path = Path(database_path).expanduser()
        self.database_path.parent.mkdir(parents=True, exist_ok=True)

        # Create async SQLite engine
        db_url = f"sqlite+aiosqlite:///{self.database_path}"
        self.engine: AsyncEngine = create_async_engine(
            db_url,
            echo=False,
            pool_pre_ping=True,
            pool_size=1,
            max_overflow=0,
        )

        self.async_session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    async def initialize(self):
        """Create all tables and add any newly introduced columns."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
                added = await conn.run_sync(_add_missing_columns)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to open database {self.database_path}: {e}") from e

        if added:
            logger.info("Added columns: %s", ", ".join(added))
        logger.info("Notification database ready at %s", self.database_path)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for database operations."""
        async with self.async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self):
        """Close database engine."""
        await self.engine.dispose()


async def open_database(database_path: str | Path) -> DatabaseService:
    """Create and initialize a database service for ``database_path``."""
    db = DatabaseService(database_path)
    await db.initialize()
    return db
