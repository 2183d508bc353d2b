"""
Database engine and session management.

One Database per process, built from DatabaseConfig. Every repository call
opens its own session through Database.session(), which is one transaction.

Responsibility: Manage database connections and sessions
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker
)
from sqlalchemy.pool import NullPool
import logging

from ..config import DatabaseConfig

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores FOREIGN KEY / ON DELETE CASCADE unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Async engine plus session factory.

    PostgreSQL (asyncpg) gets a sized connection pool; SQLite (aiosqlite)
    gets NullPool and foreign-key enforcement.

    Example:
        db = Database(settings.db)
        await db.initialize()

        async with db.session() as session:
            result = await session.execute(query)

        await db.close()
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine: AsyncEngine | None = None
        self.session_factory: async_sessionmaker[AsyncSession] | None = None
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Create the engine and session factory (no connection is opened yet)"""
        if self._initialized:
            logger.warning("Database already initialized")
            return

        connection_string = self.config.connection_string
        logger.info(f"Initializing database: {connection_string.split('://')[0]}")

        if self.config.is_sqlite:
            engine_kwargs = {"poolclass": NullPool}
        else:
            engine_kwargs = {
                "pool_size": self.config.pool_size,
                "max_overflow": self.config.max_overflow,
                "pool_timeout": self.config.pool_timeout,
                "pool_recycle": self.config.pool_recycle,
                "pool_pre_ping": True,
            }
            logger.info(
                f"PostgreSQL pool: size={self.config.pool_size}, "
                f"max_overflow={self.config.max_overflow}"
            )

        self.engine = create_async_engine(
            connection_string,
            echo=self.config.echo,
            **engine_kwargs
        )

        if self.config.is_sqlite:
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,  # rows are read after the session closes
            autoflush=False,
        )

        self._initialized = True

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Open a session that commits on success and rolls back on error.

        Yields:
            AsyncSession for database operations
        """
        if not self._initialized or not self.session_factory:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        session = self.session_factory()

        try:
            yield session
            if session.in_transaction():
                await session.commit()
        except Exception as e:
            logger.error(f"Session error, rolling back: {e}")
            await session.rollback()
            raise
        finally:
            await session.close()

    async def create_tables(self) -> None:
        """
        Create all tables that do not exist yet.

        Deployed databases are migrated with Alembic instead.
        """
        if not self._initialized or not self.engine:
            raise RuntimeError("Database not initialized")

        from .models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database tables created")

    async def close(self) -> None:
        """Dispose of the engine; safe to call twice"""
        if not self._initialized:
            return

        if self.engine:
            await self.engine.dispose()
            self.engine = None

        self.session_factory = None
        self._initialized = False
        logger.info("Database closed")
