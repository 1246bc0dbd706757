"""Event management API endpoints."""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status

from facefinder.api.models.event import EventCreateRequest, EventResponse, EventUpdateRequest
from facefinder.core.exceptions import (
    DuplicateEventCodeError,
    EventNotFoundError,
    StorageError,
)
from facefinder.core.logging import get_logger
from facefinder.infrastructure.database.unit_of_work import UnitOfWork
from facefinder.infrastructure.dependencies import get_photo_storage, get_uow
from facefinder.services.file_service import PhotoStorage

logger = get_logger(__name__)
router = APIRouter(
    responses={
        404: {"description": "Event not found"},
        500: {"description": "Internal server error"}
    }
)


@router.post(
    "",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an event",
    description="Creates an event that photos can be uploaded to. The access code is stored upper-case.",
    responses={
        201: {
            "description": "Event created",
            "content": {
                "application/json": {
                    "example": {
                        "id": "550e8400-e29b-41d4-a716-446655440000",
                        "name": "Spring Marathon 2024",
                        "code": "MARATHON24",
                        "description": "Finish line photos",
                        "is_active": True,
                        "created_at": "2024-04-14T09:30:00Z",
                    }
                }
            },
        },
        409: {
            "description": "Event code already in use",
            "content": {
                "application/json": {
                    "example": {"detail": "Event code already in use: MARATHON24"}
                }
            },
        },
    },
)
async def create_event(
    request: EventCreateRequest,
    uow: UnitOfWork = Depends(get_uow),
) -> EventResponse:
    """Create a new event.

    Raises:
        HTTPException: 409 if the code is taken, 500 if storing fails
    """
    try:
        event = await uow.events.create(
            name=request.name,
            code=request.code,
            description=request.description,
            is_active=request.is_active,
        )
        await uow.commit()
    except DuplicateEventCodeError as e:
        logger.warning("Duplicate event code", code=request.code)
        raise HTTPException(status_code=409, detail=e.message)
    except StorageError as e:
        logger.error("Failed to create event", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to create event")

    logger.info("Created event", event_id=str(event.id), code=event.code)
    return EventResponse.model_validate(event)


@router.get("", response_model=List[EventResponse], summary="List events")
async def list_events(uow: UnitOfWork = Depends(get_uow)) -> List[EventResponse]:
    """List all events, newest first."""
    events = await uow.events.list_all()
    return [EventResponse.model_validate(event) for event in events]


@router.get(
    "/by-code/{code}",
    response_model=EventResponse,
    summary="Look up an event by access code",
)
async def get_event_by_code(code: str, uow: UnitOfWork = Depends(get_uow)) -> EventResponse:
    """Find an event from the code attendees type in; matching is case-insensitive."""
    event = await uow.events.get_by_code(code)
    if event is None:
        raise HTTPException(status_code=404, detail=f"No event with code {code.upper()}")
    return EventResponse.model_validate(event)


@router.get("/{event_id}", response_model=EventResponse, summary="Get an event")
async def get_event(event_id: UUID, uow: UnitOfWork = Depends(get_uow)) -> EventResponse:
    try:
        event = await uow.events.get(event_id)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return EventResponse.model_validate(event)


@router.patch("/{event_id}", response_model=EventResponse, summary="Update an event")
async def update_event(
    event_id: UUID,
    request: EventUpdateRequest,
    uow: UnitOfWork = Depends(get_uow),
) -> EventResponse:
    """Change the name, description or active flag of an event."""
    try:
        event = await uow.events.update(event_id, **request.model_dump(exclude_unset=True))
        await uow.commit()
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return EventResponse.model_validate(event)


@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an event",
    description="Deletes the event with all of its photos, faces and match records.",
)
async def delete_event(
    event_id: UUID,
    uow: UnitOfWork = Depends(get_uow),
    storage: PhotoStorage = Depends(get_photo_storage),
) -> Response:
    """Delete an event and remove its stored photo files."""
    try:
        photos = await uow.photos.list_by_event(event_id)
        await uow.events.delete(event_id)
        await uow.commit()
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

    for photo in photos:
        await storage.delete(photo.storage_path)

    logger.info("Deleted event", event_id=str(event_id), photos_count=len(photos))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
