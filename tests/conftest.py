import os
import sys
from pathlib import Path

import jwt
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from src.cache import LocalCache, ModerationCache
from src.config import get_config
from src.database import Base, get_engine, get_session, init_engine
from src.main import app
from src.services.lifecycle import ModeratedEntityService
from src.services.moderation import Actor, Role


class RecordingCache(LocalCache):
    """In-memory cache client remembering every key it was asked to delete."""

    def __init__(self):
        super().__init__()
        self.deleted = []

    def delete(self, *keys):
        self.deleted.extend(keys)
        return super().delete(*keys)


class BrokenCache:
    def get(self, key):
        raise ConnectionError("cache down")

    def set(self, key, value, ex=None):
        raise ConnectionError("cache down")

    def delete(self, *keys):
        raise ConnectionError("cache down")


ADMIN = Actor(id="admin-1", role=Role.ADMIN)
ORGANIZER = Actor(id="u1", role=Role.ORGANIZER)
OTHER_ORGANIZER = Actor(id="u2", role=Role.ORGANIZER)


@pytest.fixture(scope="session")
def database_url(tmp_path_factory):
    db_file = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite:///{db_file}"


@pytest.fixture(scope="session", autouse=True)
def setup_database(database_url):
    os.environ["DATABASE_URL"] = database_url
    engine = init_engine(database_url)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(autouse=True)
def clean_database():
    engine = get_engine()
    with engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())
    yield


@pytest.fixture
def db_session():
    session = get_session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def cache_client():
    return RecordingCache()


@pytest.fixture
def cache(cache_client):
    return ModerationCache(cache_client, ttl=60)


@pytest.fixture
def make_service(db_session, cache):
    def _make(resource, config=None, session=None):
        return ModeratedEntityService(
            session or db_session, resource, cache=cache, config=config
        )

    return _make


@pytest.fixture
def auth_headers():
    def _headers(actor: Actor):
        config = get_config().auth
        token = jwt.encode(
            {"sub": actor.id, "role": actor.role},
            config.jwt_secret,
            algorithm=config.jwt_algorithm,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def client(cache_client):
    app.config["TESTING"] = True
    app.config["CACHE_CLIENT"] = cache_client
    with app.test_client() as client:
        yield client
    app.config.pop("CACHE_CLIENT", None)
