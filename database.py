"""
Database connection and session management for Identity Reconciliation API
This module sets up the async SQLAlchemy engine and session factory used by
the reconciliation engine. Supports local PostgreSQL, AWS RDS (including
Lambda-sized pools) and SQLite files for local testing.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from config import settings
from models import Base

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Database connection manager that handles SQLAlchemy engine,
    session creation, and connection lifecycle management
    """

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        self.database_url = database_url or settings.get_active_database_url()
        self.echo = settings.DEBUG if echo is None else echo
        self.engine = None
        self.SessionLocal = None
        self._initialize_database()

    def _initialize_database(self):
        """Initialize database engine and session factory"""
        logger.info(f"Initializing database connection to: {self.database_url.split('@')[-1]}")

        self.engine = create_async_engine(self.database_url, **self._engine_options())

        self.SessionLocal = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Don't expire objects after commit
            autoflush=False  # Don't auto-flush - better control over operations
        )

    def _engine_options(self) -> dict:
        """Pool settings for the current environment"""
        options = {"echo": self.echo}

        if self.database_url.startswith("sqlite"):
            # One connection per session; nothing is shared between event loops
            options["poolclass"] = NullPool
            return options

        options["pool_pre_ping"] = True
        if settings.is_lambda_environment():
            # Lambda-optimized settings for RDS Proxy
            options.update(
                pool_size=1,
                max_overflow=0,
                pool_recycle=3600,
                pool_timeout=10,
                connect_args={
                    "command_timeout": 10,
                    "server_settings": {"application_name": "identity-reconciliation-lambda"},
                },
            )
        else:
            options.update(
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT,
                connect_args={
                    "server_settings": {"application_name": "identity-reconciliation-local"},
                },
            )
        return options

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    async def create_tables(self):
        """Create all database tables defined in models"""
        logger.info("Creating database tables...")
        async with self.engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

    async def drop_tables(self):
        """Drop all database tables defined in models"""
        async with self.engine.begin() as connection:
            await connection.run_sync(Base.metadata.drop_all)

    async def test_connection(self) -> bool:
        """Test database connection"""
        try:
            async with self.engine.connect() as connection:
                await connection.execute(text("SELECT 1"))
            logger.info("Database connection test successful")
            return True
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            return False

    @asynccontextmanager
    async def get_session(self):
        """
        Context manager for database sessions with automatic cleanup
        Usage:
            async with db_manager.get_session() as session:
                # database operations
        Commits when the block exits normally, rolls back and re-raises otherwise.
        """
        session = self.SessionLocal()
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
        """Close every pooled connection"""
        await self.engine.dispose()


# Global database manager instance
db_manager = DatabaseManager()
