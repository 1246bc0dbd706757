"""Tests for the face indexing service."""
import uuid

import numpy as np
import pytest

from facefinder.core.exceptions import DimensionMismatchError, PhotoNotFoundError
from facefinder.infrastructure.database.models import PhotoStatus
from facefinder.infrastructure.database.unit_of_work import unit_of_work
from facefinder.services.face_indexing import FaceIndexingService
from tests.fakes import StubFaceDetector, make_detection, unit_vector


@pytest.fixture
async def photo_id(session_factory):
    async with unit_of_work(session_factory) as uow:
        event = await uow.events.create(name="Gala", code="gala")
        photo = await uow.photos.create(event.id, "a.jpg", "/tmp/a.jpg")
        return photo.id


def make_service(detector, session_factory, **kwargs) -> FaceIndexingService:
    kwargs.setdefault("dimension", 128)
    kwargs.setdefault("max_faces", 20)
    kwargs.setdefault("min_confidence", 0.5)
    return FaceIndexingService(detector, session_factory, **kwargs)


class TestIndexPhoto:
    async def test_stores_faces_and_marks_processed(self, session_factory, photo_id):
        detector = StubFaceDetector([
            make_detection(unit_vector(0), confidence=0.9),
            make_detection(unit_vector(1), confidence=0.8),
        ])
        service = make_service(detector, session_factory)

        result = await service.index_photo(photo_id, b"image")

        assert result.faces_detected == 2
        assert result.faces_indexed == 2
        async with unit_of_work(session_factory) as uow:
            photo = await uow.photos.get(photo_id)
            assert photo.processed is True
            assert photo.status == PhotoStatus.PROCESSED
            candidate_set = await uow.faces.fetch_candidate_set(photo.event_id)
        assert len(candidate_set) == 2

    async def test_drops_low_confidence_faces(self, session_factory, photo_id):
        detector = StubFaceDetector([
            make_detection(unit_vector(0), confidence=0.9),
            make_detection(unit_vector(1), confidence=0.3),
        ])
        service = make_service(detector, session_factory)

        result = await service.index_photo(photo_id, b"image")

        assert result.faces_detected == 2
        assert result.faces_indexed == 1

    async def test_photo_without_faces_is_processed(self, session_factory, photo_id):
        service = make_service(StubFaceDetector([]), session_factory)

        result = await service.index_photo(photo_id, b"image")

        assert result.faces_indexed == 0
        async with unit_of_work(session_factory) as uow:
            assert (await uow.photos.get(photo_id)).processed is True

    async def test_wrong_dimension_stores_nothing(self, session_factory, photo_id):
        detector = StubFaceDetector([
            make_detection(unit_vector(0), confidence=0.9),
            make_detection(np.ones(64), confidence=0.9),
        ])
        service = make_service(detector, session_factory)

        with pytest.raises(DimensionMismatchError):
            await service.index_photo(photo_id, b"image")

        async with unit_of_work(session_factory) as uow:
            photo = await uow.photos.get(photo_id)
            assert photo.processed is False
            assert await uow.faces.count() == 0

    async def test_missing_photo(self, session_factory):
        service = make_service(StubFaceDetector([make_detection(unit_vector(0))]), session_factory)

        with pytest.raises(PhotoNotFoundError):
            await service.index_photo(uuid.uuid4(), b"image")

        async with unit_of_work(session_factory) as uow:
            assert await uow.faces.count() == 0


async def test_attempts_and_pending(session_factory, photo_id):
    service = make_service(StubFaceDetector([]), session_factory)

    assert await service.pending_photos() == [(photo_id, "/tmp/a.jpg")]
    assert await service.register_attempt(photo_id) == 1
    assert await service.register_attempt(photo_id) == 2

    await service.mark_failed(photo_id, "detector offline")

    assert await service.pending_photos() == []
    async with unit_of_work(session_factory) as uow:
        photo = await uow.photos.get(photo_id)
        assert photo.status == PhotoStatus.FAILED
        assert photo.last_error == "detector offline"
