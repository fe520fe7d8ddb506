"""
PantryPal Database Configuration
Async database setup with SQLAlchemy 2.0 (PostgreSQL in production, SQLite for local runs and tests)
"""

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, declared_attr
from sqlalchemy.pool import StaticPool
from sqlalchemy import MetaData, event, text
from contextlib import asynccontextmanager
import structlog
from typing import Any, AsyncGenerator, Dict, Optional

from core.config import settings
from core.exceptions import PantryPalError

logger = structlog.get_logger()

# Database engine
engine: Optional[AsyncEngine] = None
async_session_factory: Optional[async_sessionmaker] = None


class Base(DeclarativeBase):
    """Base class for all database models"""

    metadata = MetaData(
        naming_convention={
            "ix": "ix_%(column_0_label)s",
            "uq": "uq_%(table_name)s_%(column_0_name)s",
            "ck": "ck_%(table_name)s_%(constraint_name)s",
            "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
            "pk": "pk_%(table_name)s"
        }
    )

    @declared_attr
    def __tablename__(cls) -> str:
        return cls.__name__.lower()


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool settings per backend"""
    if database_url.startswith("sqlite"):
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url:
            # One shared connection, otherwise every checkout sees an empty database
            options.update(poolclass=StaticPool, pool_reset_on_return=None)
        return options

    return {
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_timeout": settings.DATABASE_POOL_TIMEOUT,
        "pool_pre_ping": True,
        "pool_recycle": 3600,  # 1 hour
    }


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async def init_db(database_url: Optional[str] = None) -> None:
    """Initialize database connection and create tables"""
    global engine, async_session_factory

    url = database_url or settings.DATABASE_URL

    try:
        engine = create_async_engine(
            url,
            echo=settings.DEBUG and settings.LOG_LEVEL == "DEBUG",
            **_engine_options(url),
        )

        if url.startswith("sqlite"):
            event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        async_session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        if settings.DATABASE_AUTO_CREATE:
            import models  # noqa: F401  registers tables on Base.metadata

            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        else:
            async with engine.begin() as conn:
                await conn.run_sync(lambda _: None)

        logger.info("Database connection initialized successfully", backend=engine.dialect.name)

    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise


async def close_db() -> None:
    """Close database connections"""
    global engine, async_session_factory

    if engine:
        await engine.dispose()
        logger.info("Database connections closed")
    engine = None
    async_session_factory = None


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Async context manager for database sessions
    Commits on success, rolls back on any error
    """
    if not async_session_factory:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except PantryPalError:
            await session.rollback()
            raise
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {str(e)}")
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI to get database session
    """
    async with get_db_session() as session:
        yield session


class DatabaseHealthCheck:
    """Database health check utilities"""

    @staticmethod
    async def check_connection() -> bool:
        """Check if database connection is healthy"""
        try:
            async with get_db_session() as session:
                result = await session.execute(text("SELECT 1"))
                return result.scalar() == 1
        except Exception as e:
            logger.error(f"Database health check failed: {str(e)}")
            return False

    @staticmethod
    async def get_connection_info() -> dict:
        """Get database connection information"""
        if not engine:
            return {"status": "not_initialized"}

        return {
            "status": "healthy",
            "backend": engine.dialect.name,
            "pool": engine.pool.status(),
        }


# Export commonly used items
__all__ = [
    "Base",
    "engine",
    "async_session_factory",
    "init_db",
    "close_db",
    "get_db_session",
    "get_db",
    "DatabaseHealthCheck"
]
