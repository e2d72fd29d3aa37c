"""
Database connection and session management for the Contact Reconciliation Service
This module sets up the SQLAlchemy async engine with lazy initialization and
provides a transactional session context manager. Supports PostgreSQL (asyncpg)
in deployment and SQLite (aiosqlite) for local tests.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config import settings
from models.base import Base

# Configure logging
logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Database connection manager that handles the SQLAlchemy engine,
    session creation, and connection lifecycle management

    The engine is created on first use, so building a manager never opens
    a connection. Extra keyword arguments are passed to create_async_engine
    and override the defaults derived from settings.
    """

    def __init__(self, database_url: Optional[str] = None, **engine_options: Any):
        self.database_url = settings.get_database_url(database_url)
        self.engine_options = engine_options
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._initialize_database()
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker:
        if self._session_factory is None:
            self._initialize_database()
        return self._session_factory

    def _engine_kwargs(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"echo": settings.DB_ECHO}

        if not self.database_url.startswith("sqlite"):
            if settings.is_lambda_environment():
                # Lambda runs one request at a time per container
                options.update(pool_size=1, max_overflow=0, pool_timeout=10)
            else:
                options.update(
                    pool_size=settings.DB_POOL_SIZE,
                    max_overflow=settings.DB_MAX_OVERFLOW,
                    pool_timeout=settings.DB_POOL_TIMEOUT,
                )
            options.update(
                pool_pre_ping=True,  # Validate connections before use
                pool_recycle=settings.DB_POOL_RECYCLE,
                isolation_level=settings.DB_ISOLATION_LEVEL or None,
            )

        options.update(self.engine_options)
        return {key: value for key, value in options.items() if value is not None}

    def _initialize_database(self):
        """Initialize database engine and session factory"""
        try:
            logger.info(f"Initializing database connection to: {settings.mask_database_url(self.database_url)}")

            self._engine = create_async_engine(self.database_url, **self._engine_kwargs())
            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,  # Response is built from objects after commit
                autoflush=False,  # Repository flushes explicitly after each write
            )

            logger.info("Database connection initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database connection: {e}")
            raise

    async def create_tables(self):
        """Create all database tables defined in models"""
        try:
            logger.info("Creating database tables...")
            async with self.engine.begin() as connection:
                await connection.run_sync(Base.metadata.create_all)
            logger.info("Database tables created successfully")
        except Exception as e:
            logger.error(f"Failed to create database tables: {e}")
            raise

    async def test_connection(self) -> bool:
        """Test database connection"""
        try:
            async with self.engine.connect() as connection:
                await connection.execute(text("SELECT 1"))
            logger.debug("Database connection test successful")
            return True
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            return False

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """
        Context manager for one transactional unit of work
        Commits when the block exits normally, rolls back on error.
        Usage:
            async with db_manager.get_session() as session:
                # database operations
        """
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            await session.close()

    async def dispose(self):
        """Close all pooled connections"""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database connection pool closed")


# Global database manager instance
db_manager = DatabaseManager()
