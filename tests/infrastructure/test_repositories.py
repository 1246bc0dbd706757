"""Tests for the SQL repositories on SQLite."""
import uuid

import numpy as np
import pytest

from facefinder.core.exceptions import (
    DuplicateEventCodeError,
    EventNotFoundError,
    MalformedEmbeddingError,
    MatchNotFoundError,
    PhotoNotFoundError,
)
from facefinder.domain.entities.face import BoundingBox
from facefinder.infrastructure.database.models import PhotoStatus
from facefinder.infrastructure.database.session import get_db_session
from facefinder.infrastructure.database.unit_of_work import UnitOfWork, unit_of_work

BOX = BoundingBox(x=1, y=2, width=30, height=40)


async def create_event_with_photo(session_factory, processed: bool = True):
    async with unit_of_work(session_factory) as uow:
        event = await uow.events.create(name="Marathon", code="run24")
        photo = await uow.photos.create(event.id, "a.jpg", "/tmp/a.jpg")
        if processed:
            await uow.photos.mark_processed(photo.id)
        return event.id, photo.id


class TestEventRepository:
    async def test_code_is_upper_cased_and_unique(self, session_factory):
        async with unit_of_work(session_factory) as uow:
            event = await uow.events.create(name="Marathon", code=" run24 ")
            assert event.code == "RUN24"

        with pytest.raises(DuplicateEventCodeError):
            async with unit_of_work(session_factory) as uow:
                await uow.events.create(name="Other", code="Run24")

        async with unit_of_work(session_factory) as uow:
            found = await uow.events.get_by_code("run24")
            assert found is not None
            assert found.name == "Marathon"
            assert await uow.events.count() == 1

    async def test_get_missing_event(self, session_factory):
        async with unit_of_work(session_factory) as uow:
            with pytest.raises(EventNotFoundError):
                await uow.events.get(uuid.uuid4())

    async def test_update_keeps_unset_fields(self, session_factory):
        async with unit_of_work(session_factory) as uow:
            event = await uow.events.create(name="Marathon", code="run24", description="Finish line")
            event_id = event.id

        async with unit_of_work(session_factory) as uow:
            await uow.events.update(event_id, name="City Marathon", is_active=False)

        async with unit_of_work(session_factory) as uow:
            event = await uow.events.get(event_id)
            assert event.name == "City Marathon"
            assert event.description == "Finish line"
            assert event.is_active is False
            assert event.code == "RUN24"

            with pytest.raises(EventNotFoundError):
                await uow.events.update(uuid.uuid4(), name="Nope")

    async def test_update_can_clear_description(self, session_factory):
        async with unit_of_work(session_factory) as uow:
            event = await uow.events.create(name="Marathon", code="run24", description="Finish line")
            event_id = event.id

        async with unit_of_work(session_factory) as uow:
            await uow.events.update(event_id, description=None)

        async with unit_of_work(session_factory) as uow:
            event = await uow.events.get(event_id)
            assert event.description is None
            assert event.name == "Marathon"

            with pytest.raises(ValueError):
                await uow.events.update(event_id, code="OTHER")

    async def test_delete_cascades(self, session_factory):
        event_id, photo_id = await create_event_with_photo(session_factory)
        async with unit_of_work(session_factory) as uow:
            await uow.faces.record_detection(photo_id, np.ones(4), BOX, 0.9)
            await uow.matches.record_match("attendee-1", photo_id, event_id, 90)

        async with unit_of_work(session_factory) as uow:
            await uow.events.delete(event_id)

        async with unit_of_work(session_factory) as uow:
            assert await uow.events.count() == 0
            assert await uow.photos.count() == 0
            assert await uow.faces.count() == 0
            assert await uow.matches.count() == 0


class TestPhotoRepository:
    async def test_lifecycle(self, session_factory):
        _, photo_id = await create_event_with_photo(session_factory, processed=False)

        async with unit_of_work(session_factory) as uow:
            assert [p.id for p in await uow.photos.list_pending()] == [photo_id]
            assert await uow.photos.record_attempt(photo_id) == 1
            await uow.photos.mark_failed(photo_id, "boom")

        async with unit_of_work(session_factory) as uow:
            photo = await uow.photos.get(photo_id)
            assert photo.status == PhotoStatus.FAILED
            assert photo.processed is False
            assert photo.last_error == "boom"
            assert await uow.photos.list_pending() == []

            await uow.photos.mark_processed(photo_id)

        async with unit_of_work(session_factory) as uow:
            photo = await uow.photos.get(photo_id)
            assert photo.status == PhotoStatus.PROCESSED
            assert photo.processed is True
            assert photo.last_error is None
            assert photo.processed_at is not None

    async def test_delete_cascades_to_faces_and_matches(self, session_factory):
        event_id, photo_id = await create_event_with_photo(session_factory)
        async with unit_of_work(session_factory) as uow:
            await uow.faces.record_detection(photo_id, np.ones(4), BOX, 0.9)
            await uow.matches.record_match("attendee-1", photo_id, event_id, 90)

        async with unit_of_work(session_factory) as uow:
            await uow.photos.delete(photo_id)

        async with unit_of_work(session_factory) as uow:
            assert await uow.faces.count() == 0
            assert await uow.matches.list_matches("attendee-1") == []
            with pytest.raises(PhotoNotFoundError):
                await uow.photos.get(photo_id)


class TestFaceRepository:
    async def test_candidate_set_only_contains_processed_photos(self, session_factory):
        event_id, processed_id = await create_event_with_photo(session_factory)
        async with unit_of_work(session_factory) as uow:
            pending = await uow.photos.create(event_id, "b.jpg", "/tmp/b.jpg")
            face_id = await uow.faces.record_detection(processed_id, [0.1, 0.2, 0.3], BOX, 0.9)
            await uow.faces.record_detection(pending.id, [0.3, 0.2, 0.1], BOX, 0.9)

        async with unit_of_work(session_factory) as uow:
            candidate_set = await uow.faces.fetch_candidate_set(event_id)
            other = await uow.faces.fetch_candidate_set(uuid.uuid4())
            counts = await uow.faces.count_by_photo([processed_id, pending.id])

        assert len(candidate_set) == 1
        candidate = candidate_set.candidates[0]
        assert candidate.face_id == face_id
        assert candidate.photo_id == processed_id
        np.testing.assert_allclose(candidate.embedding, [0.1, 0.2, 0.3])
        assert len(other) == 0
        assert counts == {processed_id: 1, pending.id: 1}

    async def test_rejects_malformed_embedding(self, session_factory):
        _, photo_id = await create_event_with_photo(session_factory)
        async with unit_of_work(session_factory) as uow:
            with pytest.raises(MalformedEmbeddingError):
                await uow.faces.record_detection(photo_id, [0.1, float("nan")], BOX, 0.9)


class TestMatchRepository:
    async def test_deduplicates_by_requester_and_photo(self, session_factory):
        event_id, photo_id = await create_event_with_photo(session_factory)
        async with unit_of_work(session_factory) as uow:
            first = await uow.matches.record_match("attendee-1", photo_id, event_id, 90, "a.jpg")
            second = await uow.matches.record_match("attendee-1", photo_id, event_id, 75, "b.jpg")
            other = await uow.matches.record_match("attendee-2", photo_id, event_id, 80)

        assert first == second
        assert other != first
        async with unit_of_work(session_factory) as uow:
            records = await uow.matches.list_matches("attendee-1")
        assert len(records) == 1
        assert records[0].confidence == 90
        assert records[0].selfie_ref == "a.jpg"

    async def test_appends_without_deduplication(self, session_factory):
        event_id, photo_id = await create_event_with_photo(session_factory)
        async with get_db_session(session_factory) as session:
            async with UnitOfWork(session, deduplicate_matches=False) as uow:
                await uow.matches.record_match("attendee-1", photo_id, event_id, 90)
                await uow.matches.record_match("attendee-1", photo_id, event_id, 90)
                assert len(await uow.matches.list_matches("attendee-1")) == 2

    async def test_mark_notification_sent(self, session_factory):
        event_id, photo_id = await create_event_with_photo(session_factory)
        async with unit_of_work(session_factory) as uow:
            match_id = await uow.matches.record_match("attendee-1", photo_id, event_id, 90)

        async with unit_of_work(session_factory) as uow:
            record = await uow.matches.mark_notification_sent(match_id)
            assert record.notification_sent is True

        async with unit_of_work(session_factory) as uow:
            assert (await uow.matches.get(match_id)).notification_sent is True
            with pytest.raises(MatchNotFoundError):
                await uow.matches.mark_notification_sent(uuid.uuid4())
