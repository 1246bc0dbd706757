"""Selfie search and match ledger API endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from facefinder.api.models.match import MatchHistoryResponse, MatchSearchResponse
from facefinder.core.config import settings
from facefinder.core.exceptions import (
    DetectorError,
    DimensionMismatchError,
    EventNotFoundError,
    ImageTooLargeError,
    InvalidImageError,
    MalformedEmbeddingError,
    MatchNotFoundError,
    NoFaceDetectedError,
    SearchTimeoutError,
    StorageError,
)
from facefinder.core.logging import get_logger
from facefinder.domain.value_objects.recognition import MatchRecord
from facefinder.infrastructure.database.unit_of_work import UnitOfWork
from facefinder.infrastructure.dependencies import (
    get_face_matching_service,
    get_photo_storage,
    get_uow,
)
from facefinder.services.face_matching import FaceMatchingService
from facefinder.services.file_service import PhotoStorage

logger = get_logger(__name__)
router = APIRouter(
    responses={
        400: {"description": "Invalid request"},
        500: {"description": "Internal server error"}
    }
)


@router.post(
    "/events/{event_id}/matches",
    response_model=MatchSearchResponse,
    summary="Find an attendee's photos",
    description=(
        "Detects the face in a selfie, compares it with every face indexed for the "
        "event and records a match for each photo above the threshold."
    ),
    responses={
        200: {
            "description": "Search completed",
            "content": {
                "application/json": {
                    "example": {
                        "event_id": "550e8400-e29b-41d4-a716-446655440000",
                        "requester_id": "attendee-42",
                        "query_face": {
                            "bounding_box": {"x": 120, "y": 80, "width": 200, "height": 240},
                            "confidence": 0.97,
                        },
                        "candidates_compared": 812,
                        "matches": [
                            {
                                "match_id": "7d444840-9dc0-11d1-b245-5ffdce74fad2",
                                "photo_id": "123e4567-e89b-12d3-a456-426614174000",
                                "face_id": "550e8400-e29b-41d4-a716-446655440001",
                                "similarity": 0.91,
                                "confidence": 91,
                            }
                        ],
                    }
                }
            },
        },
        400: {
            "description": "Invalid selfie",
            "content": {
                "application/json": {
                    "example": {"detail": "Invalid image format. Only JPEG and PNG are supported."}
                }
            },
        },
        404: {
            "description": "Event not found",
            "content": {
                "application/json": {
                    "example": {"detail": "Event not found: 550e8400-e29b-41d4-a716-446655440000"}
                }
            },
        },
        422: {
            "description": "No face in selfie",
            "content": {
                "application/json": {
                    "example": {"detail": "No face detected in selfie"}
                }
            },
        },
        504: {
            "description": "Search timed out",
            "content": {
                "application/json": {
                    "example": {"detail": "Search did not finish within 30.0 seconds"}
                }
            },
        },
    },
)
async def find_matches(
    event_id: UUID,
    selfie: UploadFile = File(..., description="Selfie of the attendee"),
    requester_id: str = Form(..., min_length=1, max_length=255),
    threshold: Optional[float] = Form(
        None,
        ge=0.0, le=1.0,
        description=f"Minimum similarity (0.0 to 1.0), defaults to {settings.MATCH_THRESHOLD}"
    ),
    max_matches: Optional[int] = Form(
        None,
        ge=1, le=settings.MAX_MATCHES,
        description=f"Maximum number of photos to return (1-{settings.MAX_MATCHES})"
    ),
    uow: UnitOfWork = Depends(get_uow),
    storage: PhotoStorage = Depends(get_photo_storage),
    service: FaceMatchingService = Depends(get_face_matching_service),
) -> MatchSearchResponse:
    """Search an event for photos of the person in the selfie.

    Matches are committed only when the whole search succeeds.

    Raises:
        HTTPException: If the request is invalid or processing fails
    """
    try:
        selfie_bytes = await selfie.read()
        storage.validate(selfie_bytes, selfie.content_type)
        await uow.events.get(event_id)

        result = await service.find_matches(
            event_id=event_id,
            selfie_bytes=selfie_bytes,
            requester_id=requester_id,
            selfie_ref=selfie.filename,
            threshold=threshold,
            max_matches=max_matches,
        )
        await uow.commit()
        return MatchSearchResponse.from_service_response(result)

    except InvalidImageError as e:
        logger.error("Invalid selfie", error=str(e))
        raise HTTPException(
            status_code=400,
            detail="Invalid image format. Only JPEG and PNG are supported."
        )
    except ImageTooLargeError as e:
        logger.warning("Selfie too large", **e.details)
        raise HTTPException(status_code=413, detail=e.message)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except NoFaceDetectedError as e:
        logger.warning("No faces detected in selfie", error=str(e))
        raise HTTPException(status_code=422, detail=e.message)
    except SearchTimeoutError as e:
        raise HTTPException(status_code=504, detail=e.message)
    except DetectorError as e:
        logger.error("Face detector failed", error=str(e))
        raise HTTPException(status_code=502, detail="Face detection failed")
    except (DimensionMismatchError, MalformedEmbeddingError) as e:
        logger.error("Selfie embedding unusable for search", error=str(e))
        raise HTTPException(status_code=500, detail=e.message)
    except StorageError as e:
        logger.error("Failed to search or record matches", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to record matches")


@router.get(
    "/requesters/{requester_id}/matches",
    response_model=MatchHistoryResponse,
    summary="List a requester's matches",
)
async def list_matches(requester_id: str, uow: UnitOfWork = Depends(get_uow)) -> MatchHistoryResponse:
    """Match history of a requester, newest first."""
    matches = await uow.matches.list_matches(requester_id)
    return MatchHistoryResponse(requester_id=requester_id, matches=matches)


@router.post(
    "/matches/{match_id}/notification-sent",
    response_model=MatchRecord,
    summary="Flag a match as notified",
    description="Marks that the requester has been told about this match.",
)
async def mark_notification_sent(
    match_id: UUID,
    uow: UnitOfWork = Depends(get_uow),
) -> MatchRecord:
    try:
        record = await uow.matches.mark_notification_sent(match_id)
        await uow.commit()
    except MatchNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return record
