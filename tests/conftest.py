"""Shared test fixtures."""
import pytest

from facefinder.infrastructure.database.session import (
    create_engine,
    create_session_factory,
    init_models,
)
from tests.fakes import make_image_bytes


@pytest.fixture
def image_bytes() -> bytes:
    return make_image_bytes(seed=1)


@pytest.fixture
def other_image_bytes() -> bytes:
    return make_image_bytes(seed=2)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
async def session_factory(database_url):
    """Session factory on a fresh SQLite database."""
    engine = create_engine(database_url)
    await init_models(engine)
    yield create_session_factory(engine)
    await engine.dispose()
