import uuid
import pytest
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

from reaction_api.main import app
from reaction_api.core.config import settings
from reaction_api.dependencies import get_change_notifier, get_db
from reaction_api.services.notifier import ChangeNotifier
from reaction_api.services.reactions_service import ReactionsService
from reaction_api.services.video_registrar import VideoRegistrar


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    monkeypatch.setattr(settings, "sentry_dsn", "")  # отключаем Sentry
    monkeypatch.setattr(settings, "identity_lookup_url", "")
    monkeypatch.setattr(settings, "reconcile_delay_s", 0.0)
    monkeypatch.setattr(settings, "atomic_reaction_upsert", True)
    monkeypatch.setattr(settings, "change_stream_enabled", False)


@pytest.fixture
def db():
    """Чистая in-memory база на каждый тест."""
    client = AsyncMongoMockClient()
    return client[f"reactions_test_{uuid.uuid4().hex}"]


@pytest.fixture
def notifier() -> ChangeNotifier:
    return ChangeNotifier()


@pytest.fixture
def registrar(db) -> VideoRegistrar:
    return VideoRegistrar(db)


@pytest.fixture
def service(db, registrar, notifier) -> ReactionsService:
    return ReactionsService(db, registrar, notifier)


@pytest.fixture
def legacy_service(db, registrar, notifier) -> ReactionsService:
    """Старый протокол записи: delete, затем insert."""
    return ReactionsService(db, registrar, notifier, atomic_upsert=False)


@pytest.fixture
def overrides(db, notifier):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_change_notifier] = lambda: notifier
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(overrides):
    transport = ASGITransport(app=overrides)
    async with AsyncClient(transport=transport,
                           base_url="http://test") as ac:
        yield ac
