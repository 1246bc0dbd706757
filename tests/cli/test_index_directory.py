"""Tests for the directory indexing command."""
from pathlib import Path

import pytest

from facefinder.cli.index_directory import DirectoryIndexer, parse_args
from facefinder.infrastructure.database.session import create_engine, create_session_factory
from facefinder.infrastructure.database.unit_of_work import unit_of_work
from facefinder.services.file_service import PhotoStorage
from facefinder.services.recognition import HashSeededFaceDetector
from tests.fakes import make_image_bytes


@pytest.fixture
def photo_dir(tmp_path):
    directory = tmp_path / "album"
    directory.mkdir()
    (directory / "a.png").write_bytes(make_image_bytes(1))
    (directory / "b.PNG").write_bytes(make_image_bytes(2))
    (directory / "broken.jpg").write_bytes(b"not an image")
    (directory / "notes.txt").write_text("ignored")
    return directory


def make_indexer(photo_dir, tmp_path, database_url, **kwargs) -> DirectoryIndexer:
    return DirectoryIndexer(
        event_code="gala",
        directory=str(photo_dir),
        database_url=database_url,
        detector=HashSeededFaceDetector(dimension=128, faces_per_image=2),
        storage=PhotoStorage(root=str(tmp_path / "uploads")),
        **kwargs,
    )


async def test_indexes_directory(photo_dir, tmp_path, database_url):
    indexer = make_indexer(photo_dir, tmp_path, database_url, name="Winter Gala")

    stats = await indexer.index_directory()

    assert stats["total_images"] == 3
    assert stats["processed_images"] == 2
    assert stats["failed_images"] == 1
    assert stats["indexed_faces"] == 4

    engine = create_engine(database_url)
    try:
        async with unit_of_work(create_session_factory(engine)) as uow:
            event = await uow.events.get_by_code("GALA")
            assert event.name == "Winter Gala"
            photos = await uow.photos.list_by_event(event.id)
            assert sorted(p.status for p in photos) == ["failed", "processed", "processed"]
            candidate_set = await uow.faces.fetch_candidate_set(event.id)
            assert len(candidate_set) == 4
    finally:
        await engine.dispose()


async def test_unreadable_file_does_not_stop_the_run(photo_dir, tmp_path, database_url, monkeypatch):
    read_bytes = Path.read_bytes

    def read_or_fail(path):
        if path.name == "a.png":
            raise PermissionError(f"Permission denied: {path}")
        return read_bytes(path)

    monkeypatch.setattr(Path, "read_bytes", read_or_fail)

    stats = await make_indexer(photo_dir, tmp_path, database_url).index_directory()

    assert stats["total_images"] == 3
    assert stats["processed_images"] == 1
    assert stats["failed_images"] == 2


async def test_reuses_existing_event(photo_dir, tmp_path, database_url):
    await make_indexer(photo_dir, tmp_path, database_url).index_directory()
    await make_indexer(photo_dir, tmp_path, database_url).index_directory()

    engine = create_engine(database_url)
    try:
        async with unit_of_work(create_session_factory(engine)) as uow:
            assert await uow.events.count() == 1
            assert await uow.photos.count() == 6
    finally:
        await engine.dispose()


async def test_empty_directory(tmp_path, database_url):
    empty = tmp_path / "empty"
    empty.mkdir()
    stats = await make_indexer(empty, tmp_path, database_url).index_directory()
    assert stats["total_images"] == 0


def test_missing_directory(tmp_path, database_url):
    with pytest.raises(FileNotFoundError):
        make_indexer(tmp_path / "missing", tmp_path, database_url).list_images()


def test_parse_args():
    args = parse_args(["--event-code", "gala", "--directory", "/photos", "--name", "Gala"])
    assert args.event_code == "gala"
    assert args.directory == "/photos"
    assert args.name == "Gala"
    assert args.database_url is None
