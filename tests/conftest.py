# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from produce.cache import InMemoryKeyValueCache
from produce.config import Settings
from produce.database import Database
from produce.errors import CacheError
from produce.main import create_app


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class BrokenCache:
    """Key-value backend whose server is always unreachable."""

    def get(self, key):
        raise CacheError("connection refused")

    def set_with_ttl(self, key, value, ttl_seconds):
        raise CacheError("connection refused")

    def keys_with_prefix(self, prefix):
        raise CacheError("connection refused")

    def delete(self, key):
        raise CacheError("connection refused")

    def ping(self):
        raise CacheError("connection refused")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend(clock):
    return InMemoryKeyValueCache(clock=clock)


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "produce.db"))
    database.init_schema()
    return database


@pytest.fixture
def settings(tmp_path):
    return Settings(
        environment="test",
        database_path=str(tmp_path / "produce.db"),
        redis_url="redis://localhost:6379/0",
        cache_backend="memory",
        cache_ttl=60,
        socket_timeout=0.1,
        log_level="DEBUG",
    )


@pytest.fixture
def client(settings, db, backend):
    return TestClient(create_app(settings=settings, db=db, cache_backend=backend))
