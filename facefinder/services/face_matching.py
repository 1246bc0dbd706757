"""Face matching service for finding an attendee's photos within an event."""
import asyncio
from typing import List, Optional, Tuple
from uuid import UUID

from facefinder.core.config import settings
from facefinder.core.exceptions import NoFaceDetectedError, SearchTimeoutError
from facefinder.core.logging import get_logger
from facefinder.domain.entities.face import Detection
from facefinder.domain.interfaces.recognition import FaceDetector
from facefinder.domain.interfaces.storage import EmbeddingStore, MatchLedger
from facefinder.domain.similarity import (
    ScoringPolicy,
    best_per_photo,
    confidence_percent,
    rank,
)
from facefinder.domain.value_objects.recognition import (
    MatchCandidate,
    QueryFace,
    SearchResult,
)

logger = get_logger(__name__)


class FaceMatchingService:
    """Service for matching a selfie against the faces indexed for an event.

    This service:
    1. Detects the face in the selfie
    2. Fetches the event's candidate faces from the embedding store
    3. Ranks them with the similarity engine
    4. Records one ledger entry per matched photo

    Example:
        ```python
        matcher = FaceMatchingService(detector, uow.faces, uow.matches)

        result = await matcher.find_matches(
            event_id=event.id,
            selfie_bytes=selfie,
            requester_id="attendee-42",
            threshold=0.6
        )
        ```
    """

    def __init__(
        self,
        detector: FaceDetector,
        embedding_store: EmbeddingStore,
        match_ledger: MatchLedger,
        policy: Optional[ScoringPolicy] = None,
        search_timeout: Optional[float] = None,
    ) -> None:
        """Initialize the face matching service.

        Args:
            detector: Face detector used on the selfie
            embedding_store: Source of the event's candidate faces
            match_ledger: Destination of accepted matches
            policy: Default threshold and limit, from settings when omitted
            search_timeout: Seconds allowed for detection and ranking
        """
        self._detector = detector
        self._store = embedding_store
        self._ledger = match_ledger
        self._policy = policy or ScoringPolicy(
            threshold=settings.MATCH_THRESHOLD,
            limit=settings.MAX_MATCHES,
        )
        self._search_timeout = (
            settings.SEARCH_TIMEOUT_SECONDS if search_timeout is None else search_timeout
        )

    @staticmethod
    def select_query_face(detections: List[Detection]) -> Detection:
        """Use the first face the detector reported."""
        return detections[0]

    async def _search(
        self,
        event_id: UUID,
        selfie_bytes: bytes,
        policy: ScoringPolicy,
    ) -> Tuple[Detection, int, List[MatchCandidate]]:
        detections = await self._detector.detect_faces(selfie_bytes)
        if not detections:
            raise NoFaceDetectedError("No face detected in selfie")

        query_face = self.select_query_face(detections)
        candidate_set = await self._store.fetch_candidate_set(event_id)

        logger.info(
            "Found query face, ranking event candidates",
            event_id=str(event_id),
            candidates_count=len(candidate_set),
            threshold=policy.threshold,
            limit=policy.limit
        )

        # Collapse to one match per photo before applying the photo limit
        ranked = rank(
            query_face.embedding,
            candidate_set.candidates,
            threshold=policy.threshold,
            limit=max(len(candidate_set.candidates), 1),
        )
        photo_matches = best_per_photo(ranked)[:policy.limit]
        return query_face, len(candidate_set), photo_matches

    async def find_matches(
        self,
        event_id: UUID,
        selfie_bytes: bytes,
        requester_id: str,
        selfie_ref: Optional[str] = None,
        threshold: Optional[float] = None,
        max_matches: Optional[int] = None,
    ) -> SearchResult:
        """Find the event photos showing the person in the selfie.

        Detection, candidate fetch and ranking share one time budget. Matches
        are only written to the ledger after ranking finished, so a search
        that times out or fails leaves no records behind.

        Args:
            event_id: Event to search in
            selfie_bytes: Raw selfie image
            requester_id: Identity of the person searching
            selfie_ref: Optional reference to the stored selfie
            threshold: Minimum similarity (0-1), defaults to the service policy
            max_matches: Maximum number of photos, defaults to the service policy

        Returns:
            SearchResult with the ranked matches (one per photo) and the ids
            of the ledger records written for them

        Raises:
            NoFaceDetectedError: If the selfie contains no face
            DimensionMismatchError: If the selfie and stored embeddings differ in length
            SearchTimeoutError: If the search exceeds its time budget
            InvalidImageError: If the selfie cannot be decoded
        """
        policy = ScoringPolicy.resolve(threshold, max_matches, default=self._policy)

        try:
            query_face, compared, face_matches = await asyncio.wait_for(
                self._search(event_id, selfie_bytes, policy),
                timeout=self._search_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Selfie search timed out",
                event_id=str(event_id),
                timeout=self._search_timeout
            )
            raise SearchTimeoutError(
                f"Search did not finish within {self._search_timeout} seconds",
                details={"event_id": str(event_id)},
            )

        match_ids = []
        for match in face_matches:
            match_id = await self._ledger.record_match(
                requester_id=requester_id,
                photo_id=match.photo_id,
                event_id=event_id,
                confidence_percent=confidence_percent(match.similarity),
                selfie_ref=selfie_ref,
            )
            match_ids.append(match_id)

        logger.info(
            "Found matches in event",
            event_id=str(event_id),
            requester_id=requester_id,
            matches_count=len(face_matches)
        )

        return SearchResult(
            event_id=event_id,
            requester_id=requester_id,
            query_face=QueryFace(
                bounding_box=query_face.bounding_box,
                confidence=query_face.confidence,
            ),
            candidates_compared=compared,
            face_matches=face_matches,
            match_ids=match_ids,
        )
