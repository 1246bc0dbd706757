"""Match ledger interface for accepted matches."""
from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from ...value_objects.recognition import MatchRecord


class MatchLedger(ABC):
    """Interface for persisting accepted selfie matches."""

    @abstractmethod
    async def record_match(
        self,
        requester_id: str,
        photo_id: UUID,
        event_id: UUID,
        confidence_percent: int,
        selfie_ref: Optional[str] = None,
    ) -> UUID:
        """
        Record an accepted match.

        Args:
            requester_id: Identity of the person who submitted the selfie
            photo_id: Photo the requester was found in
            event_id: Event the photo belongs to
            confidence_percent: Match confidence (0-100)
            selfie_ref: Optional reference to the stored selfie

        Returns:
            Identifier of the match record

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_matches(self, requester_id: str) -> List[MatchRecord]:
        """Return every match recorded for a requester, newest first."""
        pass

    @abstractmethod
    async def mark_notification_sent(self, match_id: UUID) -> MatchRecord:
        """
        Flag a match as notified.

        Raises:
            MatchNotFoundError: If the match does not exist
        """
        pass
