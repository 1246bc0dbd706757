"""Unit of work pattern implementation."""
from contextlib import asynccontextmanager
from types import TracebackType
from typing import AsyncGenerator, Optional, Type

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from facefinder.core.config import settings
from facefinder.infrastructure.database.repositories import (
    EventRepository,
    FaceRepository,
    MatchRepository,
    PhotoRepository,
)
from facefinder.infrastructure.database.session import get_db_session


class UnitOfWork:
    """Unit of work for managing database transactions and repositories."""

    def __init__(self, session: AsyncSession, deduplicate_matches: Optional[bool] = None) -> None:
        """Initialize unit of work.

        Args:
            session: Database session
            deduplicate_matches: Ledger dedup policy, defaults to settings.DEDUPLICATE_MATCHES
        """
        self._session = session
        self.events = EventRepository(session)
        self.photos = PhotoRepository(session)
        self.faces = FaceRepository(session)
        self.matches = MatchRepository(
            session,
            deduplicate=settings.DEDUPLICATE_MATCHES if deduplicate_matches is None else deduplicate_matches,
        )

    async def __aenter__(self) -> "UnitOfWork":
        """Enter async context manager.

        Returns:
            UnitOfWork: Self
        """
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        """Commit on clean exit, roll back if an error occurred."""
        if exc_type is not None:
            await self.rollback()
        else:
            await self.commit()

    async def commit(self) -> None:
        """Commit the current transaction."""
        await self._session.commit()

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        await self._session.rollback()


@asynccontextmanager
async def unit_of_work(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[UnitOfWork, None]:
    """Open a session and a unit of work on it.

    Example:
        ```python
        async with unit_of_work(session_factory) as uow:
            event = await uow.events.get(event_id)
        ```
    """
    async with get_db_session(session_factory) as session:
        async with UnitOfWork(session) as uow:
            yield uow
