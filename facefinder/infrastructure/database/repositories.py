"""Database repositories for the face finder service."""
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from facefinder.core.exceptions import (
    DuplicateEventCodeError,
    EventNotFoundError,
    MatchNotFoundError,
    PhotoNotFoundError,
    StorageError,
)
from facefinder.core.logging import get_logger
from facefinder.domain.embedding import EmbeddingLike, ensure_well_formed
from facefinder.domain.entities.face import BoundingBox
from facefinder.domain.interfaces.storage import EmbeddingStore, MatchLedger
from facefinder.domain.value_objects.recognition import Candidate, CandidateSet, MatchRecord
from facefinder.infrastructure.database.models import (
    Event,
    Face,
    Photo,
    PhotoMatch,
    PhotoStatus,
    utcnow,
)

logger = get_logger(__name__)

UPDATABLE_EVENT_FIELDS = {"name", "description", "is_active"}


class EventRepository:
    """Repository for event operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository.

        Args:
            session: Database session
        """
        self._session = session

    async def create(
        self,
        name: str,
        code: str,
        description: Optional[str] = None,
        is_active: bool = True,
    ) -> Event:
        """Create a new event.

        The access code is stored upper-case so lookups are case-insensitive.

        Raises:
            DuplicateEventCodeError: If another event already uses the code
        """
        normalized_code = code.strip().upper()
        if await self.get_by_code(normalized_code) is not None:
            raise DuplicateEventCodeError(f"Event code already in use: {normalized_code}")

        event = Event(
            name=name,
            code=normalized_code,
            description=description,
            is_active=is_active,
        )
        self._session.add(event)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise DuplicateEventCodeError(
                f"Event code already in use: {normalized_code}"
            ) from e
        return event

    async def get(self, event_id: UUID) -> Event:
        """Get event by ID.

        Raises:
            EventNotFoundError: If event not found
        """
        event = await self._session.get(Event, event_id)
        if not event:
            raise EventNotFoundError(f"Event not found: {event_id}")
        return event

    async def update(self, event_id: UUID, **changes: Any) -> Event:
        """Apply the given field changes to an event; the access code cannot change.

        Only the fields passed are written, so ``description=None`` clears the
        description while omitting it keeps the current one.

        Raises:
            EventNotFoundError: If event not found
            ValueError: If a field other than name, description or is_active is given
        """
        unknown = set(changes) - UPDATABLE_EVENT_FIELDS
        if unknown:
            raise ValueError(f"Event fields cannot be updated: {sorted(unknown)}")

        event = await self.get(event_id)
        for field, value in changes.items():
            setattr(event, field, value)
        await self._session.flush()
        return event

    async def get_by_code(self, code: str) -> Optional[Event]:
        stmt = select(Event).where(Event.code == code.strip().upper())
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_all(self) -> List[Event]:
        stmt = select(Event).order_by(Event.created_at.desc())
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def delete(self, event_id: UUID) -> None:
        """Delete an event together with its photos, faces and matches.

        Raises:
            EventNotFoundError: If event not found
        """
        await self.get(event_id)
        await self._session.execute(delete(Event).where(Event.id == event_id))

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(Event))
        return int(result.scalar_one())


class PhotoRepository:
    """Repository for photo operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository.

        Args:
            session: Database session
        """
        self._session = session

    async def create(self, event_id: UUID, filename: str, storage_path: str) -> Photo:
        """Create a new, not yet processed, photo record."""
        photo = Photo(
            event_id=event_id,
            filename=filename,
            storage_path=storage_path,
            status=PhotoStatus.PENDING,
            processed=False,
        )
        self._session.add(photo)
        await self._session.flush()
        return photo

    async def get(self, photo_id: UUID) -> Photo:
        """Get photo by ID.

        Raises:
            PhotoNotFoundError: If photo not found
        """
        photo = await self._session.get(Photo, photo_id)
        if not photo:
            raise PhotoNotFoundError(f"Photo not found: {photo_id}")
        return photo

    async def list_by_event(self, event_id: UUID) -> List[Photo]:
        stmt = (
            select(Photo)
            .where(Photo.event_id == event_id)
            .order_by(Photo.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_pending(self) -> List[Photo]:
        stmt = (
            select(Photo)
            .where(Photo.status == PhotoStatus.PENDING)
            .order_by(Photo.created_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def record_attempt(self, photo_id: UUID) -> int:
        """Increment and return the number of ingestion attempts of a photo."""
        photo = await self.get(photo_id)
        photo.attempts += 1
        await self._session.flush()
        return photo.attempts

    async def mark_processed(self, photo_id: UUID) -> Photo:
        photo = await self.get(photo_id)
        photo.processed = True
        photo.status = PhotoStatus.PROCESSED
        photo.last_error = None
        photo.processed_at = utcnow()
        await self._session.flush()
        return photo

    async def mark_failed(self, photo_id: UUID, error: str) -> Photo:
        photo = await self.get(photo_id)
        photo.processed = False
        photo.status = PhotoStatus.FAILED
        photo.last_error = error
        await self._session.flush()
        return photo

    async def delete(self, photo_id: UUID) -> None:
        """Delete a photo together with its faces and matches.

        Raises:
            PhotoNotFoundError: If photo not found
        """
        await self.get(photo_id)
        await self._session.execute(delete(Photo).where(Photo.id == photo_id))

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(Photo))
        return int(result.scalar_one())


class FaceRepository(EmbeddingStore):
    """SQL-backed embedding store."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository.

        Args:
            session: Database session
        """
        self._session = session

    async def record_detection(
        self,
        photo_id: UUID,
        embedding: EmbeddingLike,
        bounding_box: BoundingBox,
        confidence: float,
    ) -> UUID:
        vector = ensure_well_formed(embedding)
        face = Face(
            photo_id=photo_id,
            embedding=vector.tolist(),
            dimension=len(vector),
            confidence=float(confidence),
            bbox_x=bounding_box.x,
            bbox_y=bounding_box.y,
            bbox_width=bounding_box.width,
            bbox_height=bounding_box.height,
        )
        self._session.add(face)
        try:
            await self._session.flush()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to store face embedding",
                error=str(e),
                photo_id=str(photo_id),
                exc_info=True
            )
            raise StorageError(f"Failed to store face embedding: {str(e)}") from e
        return face.id

    async def fetch_candidate_set(self, event_id: UUID) -> CandidateSet:
        stmt = (
            select(Face.id, Face.photo_id, Face.embedding)
            .join(Photo, Face.photo_id == Photo.id)
            .where(Photo.event_id == event_id, Photo.processed.is_(True))
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch candidate faces",
                error=str(e),
                event_id=str(event_id),
                exc_info=True
            )
            raise StorageError(f"Failed to fetch candidate faces: {str(e)}") from e

        candidates = [
            Candidate(face_id=face_id, photo_id=photo_id, embedding=embedding)
            for face_id, photo_id, embedding in result.all()
        ]
        logger.debug(
            "Fetched candidate set",
            event_id=str(event_id),
            candidates_count=len(candidates)
        )
        return CandidateSet(event_id=event_id, candidates=candidates)

    async def count_by_photo(self, photo_ids: List[UUID]) -> Dict[UUID, int]:
        """Number of stored faces for each of the given photos."""
        if not photo_ids:
            return {}
        stmt = (
            select(Face.photo_id, func.count(Face.id))
            .where(Face.photo_id.in_(photo_ids))
            .group_by(Face.photo_id)
        )
        result = await self._session.execute(stmt)
        counts = {photo_id: int(count) for photo_id, count in result.all()}
        return {photo_id: counts.get(photo_id, 0) for photo_id in photo_ids}

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(Face))
        return int(result.scalar_one())


class MatchRepository(MatchLedger):
    """SQL-backed match ledger.

    With ``deduplicate`` enabled, recording a match for a (requester, photo)
    pair that already has one returns the existing record untouched.
    """

    def __init__(self, session: AsyncSession, deduplicate: bool = True) -> None:
        """Initialize repository.

        Args:
            session: Database session
            deduplicate: Keep a single record per (requester, photo) pair
        """
        self._session = session
        self._deduplicate = deduplicate

    async def _find_existing(self, requester_id: str, photo_id: UUID) -> Optional[PhotoMatch]:
        stmt = (
            select(PhotoMatch)
            .where(
                PhotoMatch.requester_id == requester_id,
                PhotoMatch.photo_id == photo_id,
            )
            .order_by(PhotoMatch.created_at)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def record_match(
        self,
        requester_id: str,
        photo_id: UUID,
        event_id: UUID,
        confidence_percent: int,
        selfie_ref: Optional[str] = None,
    ) -> UUID:
        try:
            if self._deduplicate:
                existing = await self._find_existing(requester_id, photo_id)
                if existing is not None:
                    logger.debug(
                        "Match already recorded",
                        match_id=str(existing.id),
                        requester_id=requester_id,
                        photo_id=str(photo_id)
                    )
                    return existing.id

            match = PhotoMatch(
                requester_id=requester_id,
                photo_id=photo_id,
                event_id=event_id,
                confidence=confidence_percent,
                selfie_ref=selfie_ref,
                notification_sent=False,
            )
            self._session.add(match)
            await self._session.flush()
            return match.id
        except SQLAlchemyError as e:
            logger.error(
                "Failed to record match",
                error=str(e),
                requester_id=requester_id,
                photo_id=str(photo_id),
                exc_info=True
            )
            raise StorageError(f"Failed to record match: {str(e)}") from e

    async def get(self, match_id: UUID) -> MatchRecord:
        match = await self._session.get(PhotoMatch, match_id)
        if not match:
            raise MatchNotFoundError(f"Match not found: {match_id}")
        return MatchRecord.model_validate(match)

    async def list_matches(self, requester_id: str) -> List[MatchRecord]:
        stmt = (
            select(PhotoMatch)
            .where(PhotoMatch.requester_id == requester_id)
            .order_by(PhotoMatch.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [MatchRecord.model_validate(match) for match in result.scalars().all()]

    async def mark_notification_sent(self, match_id: UUID) -> MatchRecord:
        result = await self._session.execute(
            update(PhotoMatch)
            .where(PhotoMatch.id == match_id)
            .values(notification_sent=True)
        )
        if result.rowcount == 0:
            raise MatchNotFoundError(f"Match not found: {match_id}")
        await self._session.flush()
        match = await self._session.get(PhotoMatch, match_id, populate_existing=True)
        return MatchRecord.model_validate(match)

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(PhotoMatch))
        return int(result.scalar_one())
