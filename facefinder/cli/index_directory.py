#!/usr/bin/env python
"""
Index Directory Photos

This script adds every image of a local directory to an event and indexes
its faces synchronously, without going through the API or the ingestion queue.
The event is created when no event uses the code yet.

Usage:
    python -m facefinder.cli.index_directory --event-code <code> --directory <dir> [--name <event name>]
"""
import argparse
import asyncio
import time
from pathlib import Path
from typing import Dict, List, Optional
from uuid import UUID

from tqdm import tqdm

from facefinder.core.exceptions import FaceFinderError
from facefinder.core.logging import setup_logging
from facefinder.domain.interfaces.recognition import FaceDetector
from facefinder.infrastructure.database.session import (
    create_engine,
    create_session_factory,
    init_models,
)
from facefinder.infrastructure.database.unit_of_work import unit_of_work
from facefinder.services.face_indexing import FaceIndexingService
from facefinder.services.file_service import PhotoStorage
from facefinder.services.recognition import build_face_detector

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".bmp", ".webp")


class DirectoryIndexer:
    """Indexes the faces of a directory of images into an event."""

    def __init__(
        self,
        event_code: str,
        directory: str,
        name: Optional[str] = None,
        database_url: Optional[str] = None,
        detector: Optional[FaceDetector] = None,
        storage: Optional[PhotoStorage] = None,
    ):
        """Initialize the indexer.

        Args:
            event_code: Access code of the event to add the photos to
            directory: Directory containing the images
            name: Event name used when the event has to be created
            database_url: Overrides settings.DATABASE_URL
            detector: Overrides the detector selected by settings.DETECTOR_BACKEND
            storage: Overrides the default photo storage
        """
        self.event_code = event_code.strip().upper()
        self.directory = Path(directory)
        self.name = name or self.event_code
        self.database_url = database_url
        self.detector = detector or build_face_detector()
        self.storage = storage or PhotoStorage()

        # Stats
        self.stats = {
            "total_images": 0,
            "processed_images": 0,
            "images_no_faces": 0,
            "failed_images": 0,
            "indexed_faces": 0,
            "total_time": 0.0,
        }

    def list_images(self) -> List[Path]:
        """List image files in the directory, sorted by name."""
        if not self.directory.is_dir():
            raise FileNotFoundError(f"Not a directory: {self.directory}")
        return sorted(
            path for path in self.directory.iterdir()
            if path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS
        )

    async def _get_or_create_event(self, session_factory) -> UUID:
        async with unit_of_work(session_factory) as uow:
            event = await uow.events.get_by_code(self.event_code)
            if event is None:
                event = await uow.events.create(name=self.name, code=self.event_code)
                print(f"Created event {self.event_code}")
            return event.id

    async def index_directory(self) -> Dict:
        """Index all images of the directory.

        Returns:
            Statistics about the indexing process
        """
        images = self.list_images()
        self.stats["total_images"] = len(images)

        if not images:
            print(f"No images found in {self.directory}")
            return self.stats

        engine = create_engine(self.database_url)
        try:
            await init_models(engine)
            session_factory = create_session_factory(engine)
            indexing_service = FaceIndexingService(self.detector, session_factory)
            event_id = await self._get_or_create_event(session_factory)

            print(f"Found {len(images)} images in {self.directory}")
            start_time = time.time()

            for path in tqdm(images, desc=f"Indexing {self.event_code}"):
                try:
                    content = path.read_bytes()
                except OSError as e:
                    print(f"Failed to read {path.name}: {e}")
                    self.stats["failed_images"] += 1
                    continue

                storage_path = await self.storage.save(event_id, path.name, content)
                async with unit_of_work(session_factory) as uow:
                    photo = await uow.photos.create(
                        event_id=event_id,
                        filename=path.name,
                        storage_path=storage_path,
                    )
                    photo_id = photo.id

                try:
                    await indexing_service.register_attempt(photo_id)
                    result = await indexing_service.index_photo(photo_id, content)
                except FaceFinderError as e:
                    print(f"Failed to process {path.name}: {e}")
                    await indexing_service.mark_failed(photo_id, e.message)
                    self.stats["failed_images"] += 1
                    continue

                self.stats["processed_images"] += 1
                self.stats["indexed_faces"] += result.faces_indexed
                if result.faces_indexed == 0:
                    self.stats["images_no_faces"] += 1

            self.stats["total_time"] = time.time() - start_time
        finally:
            await engine.dispose()

        return self.stats

    def print_stats(self) -> None:
        """Print statistics about the indexing process."""
        print("\n===== Indexing Statistics =====")
        print(f"Event: {self.event_code}")
        print(f"Directory: {self.directory}")
        print(f"Total images: {self.stats['total_images']}")
        print(f"Processed images: {self.stats['processed_images']}")
        print(f"Images without faces: {self.stats['images_no_faces']}")
        print(f"Failed images: {self.stats['failed_images']}")
        print(f"Faces indexed: {self.stats['indexed_faces']}")
        print(f"Total time: {self.stats['total_time']:.2f} seconds")

        if self.stats["processed_images"] > 0:
            print(f"Average time per image: {self.stats['total_time'] / self.stats['processed_images']:.2f} seconds")

        print("===============================")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Index faces from a local directory into an event")
    parser.add_argument("--event-code", required=True, help="Event access code")
    parser.add_argument("--directory", required=True, help="Directory containing the images")
    parser.add_argument("--name", help="Event name, used when the event is created")
    parser.add_argument("--database-url", help="Database URL (defaults to DATABASE_URL)")
    return parser.parse_args(argv)


async def main(args: argparse.Namespace) -> Dict:
    """Main entry point."""
    indexer = DirectoryIndexer(
        event_code=args.event_code,
        directory=args.directory,
        name=args.name,
        database_url=args.database_url,
    )

    stats = await indexer.index_directory()
    indexer.print_stats()
    return stats


if __name__ == "__main__":
    setup_logging()
    asyncio.run(main(parse_args()))
