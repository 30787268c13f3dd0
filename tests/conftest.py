import sys
import time
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# Ensure project root is on sys.path so `services.*` / `core.*` imports work
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


# Explicitly enable pytest-asyncio plugin for async tests/fixtures
pytest_plugins = ("pytest_asyncio",)


from config.settings import Settings
from core.container import build_services
from infra.redis_client import RedisClient
from models.member import Fanclub, GeoPoint, Member
from services.connection_registry import ConnectionRegistry
from services.member_store import InMemoryFanclubStore, InMemoryMemberStore
from services.proximity_index import ProximityIndex
from services.proximity_pipeline import ProximityPipeline
from services.push_service import PushService
from services.throttle_store import ThrottleStore


class FakeAsyncRedis:
    """Just enough of redis.asyncio.Redis for the key/value paths, with expiry."""

    def __init__(self):
        self.data = {}
        self.expires = {}

    def _alive(self, key):
        deadline = self.expires.get(key)
        if deadline is not None and time.monotonic() >= deadline:
            self.data.pop(key, None)
            self.expires.pop(key, None)
        return key in self.data

    async def ping(self):
        return True

    async def get(self, key):
        return self.data.get(key) if self._alive(key) else None

    async def set(self, key, value):
        self.data[key] = value
        self.expires.pop(key, None)
        return True

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.expires[key] = time.monotonic() + ttl
        return True

    async def delete(self, key):
        self.expires.pop(key, None)
        return 1 if self.data.pop(key, None) is not None else 0

    async def aclose(self):
        pass


class FailingPushService(PushService):
    """Push service whose delivery always fails for the given tokens."""

    def __init__(self, failing_tokens):
        super().__init__()
        self.failing_tokens = set(failing_tokens)

    async def send(self, message):
        from core.errors import PushDeliveryError
        if message.token in self.failing_tokens:
            raise PushDeliveryError(f"rejected {message.token}")
        return await super().send(message)


def make_member(name, fanclub_id="F1", lat=0.0, lon=0.0, online=False, push_token=None):
    return Member(
        name=name,
        fanclub_id=fanclub_id,
        location=GeoPoint(lat=lat, lon=lon),
        online=online,
        push_token=push_token or f"token-{name}",
    )


@pytest.fixture()
def redis_client():
    client = RedisClient("redis://fake")
    client.redis = FakeAsyncRedis()
    return client


@pytest.fixture()
def member_store():
    return InMemoryMemberStore()


@pytest_asyncio.fixture()
async def fanclub_store():
    store = InMemoryFanclubStore()
    await store.save(Fanclub(id="F1", name="F1"))
    await store.save(Fanclub(id="F2", name="Blue Wave"))
    return store


@pytest.fixture()
def registry():
    return ConnectionRegistry(max_pending=10)


@pytest.fixture()
def throttle(redis_client):
    return ThrottleStore(redis_client, ttl_seconds=3600)


@pytest.fixture()
def push_service():
    # no endpoint configured -> console fallback, pushes kept in sent_notifications
    return PushService()


@pytest.fixture()
def pipeline(member_store, fanclub_store, registry, throttle, push_service):
    return ProximityPipeline(
        member_store, fanclub_store, ProximityIndex(member_store), registry, throttle, push_service,
        radius_m=2.0, cooldown_seconds=3600,
    )


@pytest.fixture()
def test_settings():
    return Settings(USE_DB=False, EVENT_WORKERS=1, SSE_MAX_PENDING_EVENTS=10)


@pytest.fixture()
def services(test_settings, member_store, fanclub_store, redis_client, push_service):
    return build_services(test_settings, members=member_store, fanclubs=fanclub_store,
                          redis_client=redis_client, push=push_service)


@pytest_asyncio.fixture()
async def api_client(services):
    """Async test client for the API, running against in-memory services."""
    from main import create_app
    app = create_app(services)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture()
def member_factory():
    return make_member


@pytest.fixture()
def failing_push_factory():
    return FailingPushService
