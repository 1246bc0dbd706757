"""Photo upload and management API endpoints."""
from typing import List, Tuple
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status

from facefinder.api.models.photo import PhotoResponse, PhotoUploadResponse
from facefinder.consumers.ingestion_queue import IngestionQueue
from facefinder.core.config import settings
from facefinder.core.exceptions import (
    EventNotFoundError,
    ImageTooLargeError,
    InvalidImageError,
    PhotoNotFoundError,
    StorageError,
)
from facefinder.core.logging import get_logger
from facefinder.infrastructure.database.models import Photo
from facefinder.infrastructure.database.unit_of_work import UnitOfWork
from facefinder.infrastructure.dependencies import (
    get_ingestion_queue,
    get_photo_storage,
    get_uow,
)
from facefinder.services.file_service import PhotoStorage

logger = get_logger(__name__)
router = APIRouter(
    responses={
        404: {"description": "Event or photo not found"},
        500: {"description": "Internal server error"}
    }
)


def _to_response(photo: Photo, faces_count: int) -> PhotoResponse:
    return PhotoResponse.model_validate(photo).model_copy(update={"faces_count": faces_count})


@router.post(
    "/events/{event_id}/photos",
    response_model=PhotoUploadResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Upload event photos",
    description=(
        "Stores one or more images and queues them for face indexing. Photos "
        "become searchable once their status is 'processed'."
    ),
    responses={
        202: {
            "description": "Photos stored and queued for indexing",
            "content": {
                "application/json": {
                    "example": {
                        "event_id": "550e8400-e29b-41d4-a716-446655440000",
                        "photos": [
                            {
                                "id": "123e4567-e89b-12d3-a456-426614174000",
                                "event_id": "550e8400-e29b-41d4-a716-446655440000",
                                "filename": "finish_line_001.jpg",
                                "status": "pending",
                                "processed": False,
                                "attempts": 0,
                                "last_error": None,
                                "faces_count": 0,
                                "created_at": "2024-04-14T10:02:11Z",
                                "processed_at": None,
                            }
                        ],
                    }
                }
            },
        },
        400: {
            "description": "Invalid upload",
            "content": {
                "application/json": {
                    "example": {"detail": "Unsupported content type: application/pdf"}
                }
            },
        },
        413: {
            "description": "Image too large",
            "content": {
                "application/json": {
                    "example": {"detail": "Image exceeds the maximum size of 10485760 bytes"}
                }
            },
        },
    },
)
async def upload_photos(
    event_id: UUID,
    files: List[UploadFile] = File(..., description="Images to add to the event"),
    uow: UnitOfWork = Depends(get_uow),
    storage: PhotoStorage = Depends(get_photo_storage),
    queue: IngestionQueue = Depends(get_ingestion_queue),
) -> PhotoUploadResponse:
    """Upload photos to an event.

    Every file is checked before anything is stored, so a rejected request
    leaves no photos behind.

    Raises:
        HTTPException: 400 for invalid uploads, 404 for unknown events,
            413 for oversized images
    """
    if len(files) > settings.MAX_PHOTOS_PER_UPLOAD:
        raise HTTPException(
            status_code=400,
            detail=f"At most {settings.MAX_PHOTOS_PER_UPLOAD} photos per upload"
        )

    try:
        await uow.events.get(event_id)

        uploads: List[Tuple[str, bytes]] = []
        for upload in files:
            content = await upload.read()
            storage.validate(content, upload.content_type)
            uploads.append((upload.filename or "upload", content))

        photos = []
        saved_paths: List[str] = []
        try:
            for filename, content in uploads:
                storage_path = await storage.save(event_id, filename, content)
                saved_paths.append(storage_path)
                photo = await uow.photos.create(
                    event_id=event_id,
                    filename=filename,
                    storage_path=storage_path,
                )
                photos.append(photo)
            await uow.commit()
        except Exception:
            # no photo rows survive, so the files written so far are orphans
            for path in saved_paths:
                await storage.delete(path)
            raise

    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except InvalidImageError as e:
        logger.warning("Rejected upload", event_id=str(event_id), error=str(e))
        raise HTTPException(status_code=400, detail=e.message)
    except ImageTooLargeError as e:
        logger.warning("Rejected oversized upload", event_id=str(event_id), **e.details)
        raise HTTPException(status_code=413, detail=e.message)
    except StorageError as e:
        logger.error("Failed to store uploaded photos", event_id=str(event_id), error=str(e))
        raise HTTPException(status_code=500, detail="Failed to store photos")

    for photo in photos:
        await queue.enqueue(photo.id, photo.storage_path)

    logger.info("Queued uploaded photos", event_id=str(event_id), photos_count=len(photos))
    return PhotoUploadResponse(
        event_id=event_id,
        photos=[_to_response(photo, 0) for photo in photos],
    )


@router.get(
    "/events/{event_id}/photos",
    response_model=List[PhotoResponse],
    summary="List event photos",
)
async def list_photos(event_id: UUID, uow: UnitOfWork = Depends(get_uow)) -> List[PhotoResponse]:
    try:
        await uow.events.get(event_id)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

    photos = await uow.photos.list_by_event(event_id)
    counts = await uow.faces.count_by_photo([photo.id for photo in photos])
    return [_to_response(photo, counts[photo.id]) for photo in photos]


@router.get("/photos/{photo_id}", response_model=PhotoResponse, summary="Get a photo")
async def get_photo(photo_id: UUID, uow: UnitOfWork = Depends(get_uow)) -> PhotoResponse:
    """Get a photo with its indexing status and number of stored faces."""
    try:
        photo = await uow.photos.get(photo_id)
    except PhotoNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

    counts = await uow.faces.count_by_photo([photo.id])
    return _to_response(photo, counts[photo.id])


@router.delete(
    "/photos/{photo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a photo",
    description="Deletes the photo together with its faces and match records.",
)
async def delete_photo(
    photo_id: UUID,
    uow: UnitOfWork = Depends(get_uow),
    storage: PhotoStorage = Depends(get_photo_storage),
) -> Response:
    try:
        photo = await uow.photos.get(photo_id)
        storage_path = photo.storage_path
        await uow.photos.delete(photo_id)
        await uow.commit()
    except PhotoNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

    await storage.delete(storage_path)
    logger.info("Deleted photo", photo_id=str(photo_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
