"""Database handle.

The engine and session factory are owned by an explicitly constructed
``Database`` object. The API opens one in its lifespan and the worker opens one
in ``on_startup``; both dispose it on shutdown.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from libs.common.config import Settings
from libs.db.base import Base


class Database:
    """Async engine plus session factory with an explicit lifecycle."""

    def __init__(self, url: str, **engine_kwargs):
        self.url = url
        self._engine_kwargs = engine_kwargs
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        kwargs = {"pool_pre_ping": True}
        if not settings.DATABASE_URL.startswith("sqlite"):
            kwargs.update(
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT,
                pool_recycle=settings.DB_POOL_RECYCLE,
            )
        return cls(settings.DATABASE_URL, **kwargs)

    def connect(self) -> None:
        if self._engine is not None:
            return
        self._engine = create_async_engine(self.url, **self._engine_kwargs)
        self._sessionmaker = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def dispose(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    def session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected")
        return self._sessionmaker()

    async def create_all(self) -> None:
        """Create every table registered on ``Base.metadata``."""
        # Import models so the metadata is complete.
        import services.access_service.models  # noqa: F401
        import services.catalog_service.models  # noqa: F401
        import services.members_service.models  # noqa: F401
        import services.orders_service.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
