"""
Background ingestion of uploaded photos.

Uploads return as soon as the photo file and its pending record are stored;
face indexing happens here, on a pool of asyncio workers fed by an in-process
queue.
"""
import asyncio
import time
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from facefinder.core.config import settings
from facefinder.core.exceptions import (
    DimensionMismatchError,
    InvalidImageError,
    MalformedEmbeddingError,
    PhotoNotFoundError,
)
from facefinder.core.logging import get_logger
from facefinder.services.face_indexing import FaceIndexingService
from facefinder.services.file_service import PhotoStorage

logger = get_logger(__name__)

# Failures that another attempt cannot fix
NON_RETRYABLE_ERRORS = (
    InvalidImageError,
    MalformedEmbeddingError,
    DimensionMismatchError,
    FileNotFoundError,
)


class IngestionJob(BaseModel):
    """A photo waiting to be indexed."""
    photo_id: UUID
    storage_path: str
    attempt: int = Field(0, ge=0, description="Attempts made so far")


class IngestionQueue:
    """Indexes uploaded photos in the background with bounded retries.

    Retryable failures are put back on the queue after an exponential
    backoff until ``max_attempts`` is reached; the photo is then marked
    failed. Photos deleted before their job runs are skipped.

    Example:
        ```python
        queue = IngestionQueue(indexing_service, photo_storage)
        await queue.start()

        await queue.enqueue(photo.id, photo.storage_path)
        await queue.join()

        await queue.stop()
        ```
    """

    def __init__(
        self,
        indexing_service: FaceIndexingService,
        storage: PhotoStorage,
        workers: Optional[int] = None,
        max_attempts: Optional[int] = None,
        retry_backoff: Optional[float] = None,
    ) -> None:
        """Initialize the queue.

        Args:
            indexing_service: Service that indexes a single photo
            storage: Photo storage to read images from
            workers: Number of concurrent workers, defaults to settings.INGESTION_WORKERS
            max_attempts: Attempts per photo, defaults to settings.INGESTION_MAX_ATTEMPTS
            retry_backoff: Base retry delay in seconds, defaults to settings.INGESTION_RETRY_BACKOFF_SECONDS
        """
        self.indexing_service = indexing_service
        self.storage = storage
        self.workers = workers or settings.INGESTION_WORKERS
        self.max_attempts = max_attempts or settings.INGESTION_MAX_ATTEMPTS
        self.retry_backoff = (
            settings.INGESTION_RETRY_BACKOFF_SECONDS if retry_backoff is None else retry_backoff
        )

        self._queue: Optional[asyncio.Queue] = None
        self._tasks: List[asyncio.Task] = []

        # Stats tracking
        self.stats: Dict[str, int] = {
            "processed": 0,
            "failed": 0,
            "retried": 0,
            "skipped": 0,
            "faces": 0,
        }
        self.start_time = time.time()

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        """Start the worker tasks."""
        if self.running:
            return
        self._queue = asyncio.Queue()
        self.start_time = time.time()
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"ingestion-worker-{i}")
            for i in range(self.workers)
        ]
        logger.info("Ingestion queue started", workers=self.workers)

    async def stop(self) -> None:
        """Cancel the workers. Unfinished photos stay pending and are requeued on restart."""
        if not self.running:
            return
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self.log_stats()
        logger.info("Ingestion queue stopped")

    async def enqueue(self, photo_id: UUID, storage_path: str) -> None:
        """Queue a photo for indexing.

        Raises:
            RuntimeError: If the queue has not been started
        """
        if self._queue is None or not self.running:
            raise RuntimeError("Ingestion queue is not running")
        await self._queue.put(IngestionJob(photo_id=photo_id, storage_path=storage_path))
        logger.debug("Queued photo for indexing", photo_id=str(photo_id))

    async def join(self) -> None:
        """Wait until every queued photo, retries included, has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def requeue_pending(self) -> int:
        """Queue every photo still pending in the database.

        Returns:
            Number of photos queued
        """
        pending = await self.indexing_service.pending_photos()
        for photo_id, storage_path in pending:
            await self.enqueue(photo_id, storage_path)
        if pending:
            logger.info("Requeued pending photos", photos_count=len(pending))
        return len(pending)

    async def _worker(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self.process_job(job)
            except Exception as e:
                logger.error(
                    "Unexpected error in ingestion worker",
                    worker=index,
                    photo_id=str(job.photo_id),
                    error=str(e),
                    exc_info=True
                )
            finally:
                self._queue.task_done()

    async def process_job(self, job: IngestionJob) -> None:
        """Run one indexing attempt for a job."""
        try:
            attempts = await self.indexing_service.register_attempt(job.photo_id)
        except PhotoNotFoundError:
            self._skip(job)
            return
        job = job.model_copy(update={"attempt": attempts})

        try:
            image_bytes = await self.storage.read(job.storage_path)
            result = await self.indexing_service.index_photo(job.photo_id, image_bytes)
        except PhotoNotFoundError:
            self._skip(job)
        except NON_RETRYABLE_ERRORS as e:
            await self._fail(job, e)
        except Exception as e:
            if job.attempt >= self.max_attempts:
                await self._fail(job, e)
            else:
                await self._retry(job, e)
        else:
            self.stats["processed"] += 1
            self.stats["faces"] += result.faces_indexed
            logger.info(
                "Indexed photo",
                photo_id=str(job.photo_id),
                faces_count=result.faces_indexed,
                attempt=job.attempt
            )

    def _skip(self, job: IngestionJob) -> None:
        self.stats["skipped"] += 1
        logger.info("Photo no longer exists, skipping", photo_id=str(job.photo_id))

    async def _retry(self, job: IngestionJob, error: Exception) -> None:
        delay = self.retry_backoff * (2 ** (job.attempt - 1))
        self.stats["retried"] += 1
        logger.warning(
            "Indexing failed, retrying",
            photo_id=str(job.photo_id),
            attempt=job.attempt,
            max_attempts=self.max_attempts,
            retry_in=delay,
            error=str(error)
        )
        await asyncio.sleep(delay)
        # Put back before the current job is marked done so join() keeps waiting
        await self._queue.put(job)

    async def _fail(self, job: IngestionJob, error: Exception) -> None:
        message = str(error) or error.__class__.__name__
        try:
            await self.indexing_service.mark_failed(job.photo_id, message)
        except PhotoNotFoundError:
            self._skip(job)
            return
        self.stats["failed"] += 1
        logger.error(
            "Indexing failed permanently",
            photo_id=str(job.photo_id),
            attempt=job.attempt,
            error=message
        )

    def log_stats(self) -> None:
        """Log processing statistics."""
        logger.info(
            "Ingestion stats",
            elapsed_seconds=round(time.time() - self.start_time, 2),
            **self.stats
        )
