"""
Async persistence service for translatable models.

Provides:
- Async database connection management
- Create/read/update/delete of translatable owners
- Translation record listing
"""

from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from typing import Any, Optional

from sqlalchemy import MetaData, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.yalt.core.config import get_settings
from src.yalt.core.logging_setup import configure_logging, get_logger

logger = get_logger("store")

# Module-level singleton
_translation_store: Optional["TranslationStore"] = None


def get_translation_store(db_url: str | None = None) -> "TranslationStore":
    """
    Get or create the singleton TranslationStore instance.

    Args:
        db_url: Database URL. Only used on first call.
    """
    global _translation_store
    if _translation_store is None:
        _translation_store = TranslationStore(db_url=db_url)
    return _translation_store


def reset_translation_store() -> None:
    """Forget the singleton (does not close it)."""
    global _translation_store
    _translation_store = None


class TranslationStore:
    """
    Async store for translatable owners and their translation records.

    Translation records ride along with their owner: they are written by the
    flush hook and loaded eagerly with it.
    """

    def __init__(self, db_url: str | None = None, echo: bool | None = None):
        """
        Initialize the store.

        Args:
            db_url: SQLAlchemy database URL. Defaults to the configured one.
            echo: Log SQL statements. Defaults to the configured flag.
        """
        database = get_settings().database
        self._db_url = db_url or database.url
        self._echo = database.echo if echo is None else echo
        self._engine = None
        self._session_factory = None

    @property
    def is_connected(self) -> bool:
        """Check if database is connected."""
        return self._engine is not None

    async def initialize(self, metadata: MetaData | None = None) -> None:
        """
        Initialize the connection and optionally create tables.

        Must be called before using the store.
        """
        if self._engine is not None:
            return

        configure_logging()
        self._engine = create_async_engine(self._db_url, echo=self._echo)
        self._session_factory = async_sessionmaker(
            self._engine,
            expire_on_commit=False,
        )

        if metadata is not None:
            async with self._engine.begin() as conn:
                await conn.run_sync(metadata.create_all)

        logger.info(f"Translation store initialized: {self._db_url}")

    async def close(self) -> None:
        """Close database connection."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Translation store closed")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession]:
        """
        Get an async session that commits on success and rolls back on error.

        Usage:
            async with store.get_session() as session:
                # use session
        """
        if not self._session_factory:
            raise RuntimeError("Translation store not initialized. Call initialize() first.")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    # ==================== Owners ====================

    async def create(self, model: type, attributes: Mapping[str, Any]):
        """
        Create an owner from a multi-locale payload.

        Raises:
            UnsupportedLocaleError: A locale key is not registered.
            TranslationShapeError: A translatable value is not a mapping.
        """
        async with self.get_session() as session:
            instance = model.build(attributes)
            session.add(instance)
            await session.flush()
            return instance

    async def get(self, model: type, pk: Any):
        """Get an owner with its translations, or None if not found."""
        async with self.get_session() as session:
            return await session.get(model, pk)

    async def update(self, model: type, pk: Any, attributes: Mapping[str, Any]):
        """
        Fill an existing owner and save it.

        Returns:
            The updated owner, or None if not found.
        """
        async with self.get_session() as session:
            instance = await session.get(model, pk)
            if instance is None:
                return None

            instance.fill(attributes)
            await session.flush()
            return instance

    async def delete(self, model: type, pk: Any) -> bool:
        """
        Delete an owner and its translations.

        Returns:
            True if deleted, False if not found.
        """
        async with self.get_session() as session:
            instance = await session.get(model, pk)
            if instance is None:
                return False
            await session.delete(instance)
            return True

    async def list_translations(self, model: type, pk: Any) -> list:
        """Load the translation records stored for one owner."""
        translation = model.translation_model()
        foreign_key = getattr(translation, translation.__owner_foreign_key__)
        async with self.get_session() as session:
            result = await session.execute(
                select(translation).where(foreign_key == pk).order_by(translation.id)
            )
            return list(result.scalars().all())
