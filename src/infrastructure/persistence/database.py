"""Database connection and session management.

This module provides async SQLAlchemy database connectivity with connection
pooling, the storage preparation run at startup, session lifecycle
management, and health check capabilities.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.domain.models.base import Base
from src.infrastructure.config import Settings
from src.infrastructure.logging.config import get_logger


logger = get_logger(__name__)


class Database:
    """Database connection manager with async SQLAlchemy support.

    Handles database engine creation, connection pooling, schema preparation,
    session factory management, and provides transactional session context
    managers.

    Connection Pool Configuration:
        - pool_size: Base number of persistent connections
        - max_overflow: Additional connections during traffic spikes
        - pool_pre_ping: Validates connections before use (prevents stale connections)
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize database manager with application settings.

        Args:
            settings: Application configuration containing database connection details
        """
        self.settings = settings
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def get_engine(self) -> AsyncEngine:
        """Get or create the database engine (singleton pattern).

        Lazily initializes the engine on first access with configured
        connection pool settings.

        Returns:
            Async SQLAlchemy engine instance
        """
        if self._engine is None:
            self._engine = create_async_engine(
                self.settings.database_url,
                echo=self.settings.database_echo,
                pool_size=self.settings.database_pool_size,
                max_overflow=self.settings.database_max_overflow,
                pool_pre_ping=True,
            )
        return self._engine

    def get_session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create the session factory (singleton pattern).

        Configures sessions with:
        - expire_on_commit=False: Allows access to objects after commit
        - autocommit=False: Requires explicit commit for changes
        - autoflush=False: Requires explicit flush for database writes

        Returns:
            Session factory for creating database sessions
        """
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.get_engine(),
                class_=AsyncSession,
                expire_on_commit=False,
                autocommit=False,
                autoflush=False,
            )
        return self._session_factory

    async def prepare(self) -> None:
        """Create the wiki tables if they do not exist yet.

        Acquires a single connection for the DDL; the connection is returned
        to the pool whether or not preparation succeeds.

        Raises:
            Exception: The connection or DDL error, after logging it
        """
        try:
            async with self.get_engine().begin() as connection:
                await connection.run_sync(Base.metadata.create_all)
        except Exception as exc:
            logger.error(
                "database_preparation_failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise
        logger.info("database_prepared", tables=sorted(Base.metadata.tables))

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """Provide a transactional database session with automatic commit/rollback.

        Usage:
            async with database.session() as session:
                # Perform database operations
                result = await session.execute(query)
                # Automatic commit on success, rollback on exception

        Yields:
            Active database session

        Raises:
            Exception: Re-raises any exception after rolling back transaction
        """
        session_factory = self.get_session_factory()
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Close all database connections and dispose of the engine.

        Called by the server lifecycle on exit, whether or not startup
        succeeded, so no pooled connection outlives the process.
        """
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    async def ping(self) -> None:
        """Run a lightweight SELECT 1 round trip.

        Raises:
            Exception: The connection or query error, unchanged
        """
        async with self.session() as session:
            await session.execute(text("SELECT 1"))

    async def health_check(self) -> bool:
        """Verify database connectivity with a simple query.

        Executes a lightweight SELECT 1 query to confirm the database
        is accessible and responsive.

        Returns:
            True if database is accessible, False on any error
        """
        try:
            await self.ping()
            return True
        except Exception as exc:
            logger.warning("database_health_check_failed", error=str(exc))
            return False
