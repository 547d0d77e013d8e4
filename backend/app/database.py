"""
PlantLog Backend — Database Session Management
================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   Creates an async engine with connection pooling and provides a session
       dependency that commits on success and rolls back on error.
Who:   Route handlers via FastAPI's dependency injection; the dashboard
       service opens extra sessions from `async_session_factory` for its
       concurrent count queries.
When:  Engine is created at module import; sessions are created per-request.

Transaction model:
    One request = one session = one transaction. A sample insert, its
    environmental reading insert, and the implicit location insert are
    either all committed or all rolled back together.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=settings.db_pool_pre_ping,
    pool_recycle=3600,
    echo=settings.log_level == "DEBUG",
)

# expire_on_commit=False keeps attributes readable after the request commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models share a single metadata object, which Alembic reads for
    migrations.
    """

    def to_row(self) -> Dict[str, Any]:
        """
        Column values keyed by column name (not attribute name), the raw
        row shape the record shapers consume. Relationships are not included.
        """
        mapper = inspect(self).mapper
        return {
            attr.columns[0].name: getattr(self, attr.key)
            for attr in mapper.column_attrs
        }


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back the transaction and re-raises
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/samples")
        async def list_samples(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker:
    """Dependency for handlers that open several independent read sessions."""
    return async_session_factory


async def dispose_engine() -> None:
    """Closes all pooled connections. Called from the lifespan shutdown."""
    await engine.dispose()
