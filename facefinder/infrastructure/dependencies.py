"""FastAPI dependency providers."""
from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from facefinder.consumers.ingestion_queue import IngestionQueue
from facefinder.core.container import ServiceContainer, container
from facefinder.core.exceptions import ServiceNotInitializedError
from facefinder.domain.interfaces.recognition import FaceDetector
from facefinder.infrastructure.database.session import get_db_session
from facefinder.infrastructure.database.unit_of_work import UnitOfWork
from facefinder.services.face_matching import FaceMatchingService
from facefinder.services.file_service import PhotoStorage


async def get_container() -> ServiceContainer:
    """Dependency provider for the global ServiceContainer instance."""
    if not container.initialized:
        # Attempt to initialize if not already done (e.g., during testing)
        try:
            await container.initialize()
        except Exception as e:
            # Raise specific error if container is needed but fails init
            raise ServiceNotInitializedError(f"Service container could not be initialized: {e}")
    return container


async def get_session(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session.

    Yields:
        AsyncSession: Database session
    """
    async with get_db_session(container.session_factory) as session:
        yield session


async def get_uow(
    session: AsyncSession = Depends(get_session)
) -> AsyncGenerator[UnitOfWork, None]:
    """Get unit of work.

    Args:
        session: Database session

    Yields:
        UnitOfWork: Unit of work instance
    """
    async with UnitOfWork(session) as uow:
        yield uow


async def get_face_detector(
    container: ServiceContainer = Depends(get_container),
) -> FaceDetector:
    """Provide the configured face detector.

    Raises:
        ServiceNotInitializedError: If the detector is not initialized
    """
    if container.face_detector is None:
        raise ServiceNotInitializedError("Face detector not initialized")
    return container.face_detector


async def get_photo_storage(
    container: ServiceContainer = Depends(get_container),
) -> PhotoStorage:
    """Provide the photo storage."""
    if container.photo_storage is None:
        raise ServiceNotInitializedError("Photo storage not initialized")
    return container.photo_storage


async def get_ingestion_queue(
    container: ServiceContainer = Depends(get_container),
) -> IngestionQueue:
    """Provide the background ingestion queue."""
    if container.ingestion_queue is None:
        raise ServiceNotInitializedError("Ingestion queue not initialized")
    return container.ingestion_queue


async def get_face_matching_service(
    detector: FaceDetector = Depends(get_face_detector),
    uow: UnitOfWork = Depends(get_uow),
) -> AsyncGenerator[FaceMatchingService, None]:
    """Provide the face matching service bound to the request's unit of work.

    Args:
        detector: Face detector instance
        uow: Unit of work providing the embedding store and match ledger

    Yields:
        FaceMatchingService: Initialized matching service
    """
    service = FaceMatchingService(
        detector=detector,
        embedding_store=uow.faces,
        match_ledger=uow.matches,
    )
    yield service
