"""Service container for dependency injection."""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from facefinder.consumers.ingestion_queue import IngestionQueue
from facefinder.core.logging import get_logger
from facefinder.domain.interfaces.recognition import FaceDetector
from facefinder.infrastructure.database.session import (
    create_engine,
    create_session_factory,
    init_models,
)
from facefinder.services.face_indexing import FaceIndexingService
from facefinder.services.file_service import PhotoStorage
from facefinder.services.recognition import build_face_detector

logger = get_logger(__name__)


class ServiceContainer:
    """Container for application services.

    This container manages the lifecycle and dependencies of all services in the application.
    It ensures proper initialization order and provides a single source of truth for service instances.

    Matching services are not held here: they are bound to the unit of work of
    each request and built by the dependency providers.

    Example:
        ```python
        container = ServiceContainer()
        await container.initialize()

        # Get services from container
        face_indexing = container.face_indexing_service
        queue = container.ingestion_queue
        ```
    """

    def __init__(self) -> None:
        """Initialize empty container."""
        # Infrastructure
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None

        # Core services - Use interface type hints
        self.face_detector: Optional[FaceDetector] = None
        self.photo_storage: Optional[PhotoStorage] = None

        # Domain services (depend on interfaces)
        self.face_indexing_service: Optional[FaceIndexingService] = None
        self.ingestion_queue: Optional[IngestionQueue] = None

    @property
    def initialized(self) -> bool:
        return self.session_factory is not None

    async def initialize(
        self,
        database_url: Optional[str] = None,
        face_detector: Optional[FaceDetector] = None,
    ) -> None:
        """Initialize all services in the correct order.

        Args:
            database_url: Overrides settings.DATABASE_URL
            face_detector: Overrides the detector selected by settings.DETECTOR_BACKEND
        """
        if self.initialized:
            return

        self.engine = create_engine(database_url)
        await init_models(self.engine)
        self.session_factory = create_session_factory(self.engine)

        self.face_detector = face_detector or build_face_detector()
        self.photo_storage = PhotoStorage()
        self.face_indexing_service = FaceIndexingService(
            detector=self.face_detector,
            session_factory=self.session_factory,
        )
        self.ingestion_queue = IngestionQueue(
            indexing_service=self.face_indexing_service,
            storage=self.photo_storage,
        )
        await self.ingestion_queue.start()
        await self.ingestion_queue.requeue_pending()

        logger.info(
            "Service container initialized",
            detector=type(self.face_detector).__name__
        )

    async def cleanup(self) -> None:
        """Cleanup all services in reverse order of initialization."""
        if self.ingestion_queue:
            await self.ingestion_queue.stop()
            self.ingestion_queue = None

        # Cleanup domain services
        self.face_indexing_service = None

        # Cleanup core services
        self.face_detector = None
        self.photo_storage = None

        # Cleanup infrastructure services
        self.session_factory = None
        if self.engine:
            await self.engine.dispose()
            self.engine = None


# Global container instance
container = ServiceContainer()
