"""Application startup and shutdown wiring."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from asgi_lifespan import LifespanManager

import reaction_api.main as main_module
from reaction_api.core.config import settings
from reaction_api.services.notifier import get_notifier, reset_notifier


@pytest.fixture
def patched_main(monkeypatch, db):
    monkeypatch.setattr(main_module, "get_mongo_db", AsyncMock(return_value=db))
    close = AsyncMock()
    monkeypatch.setattr(main_module, "close_client", close)
    monkeypatch.setattr(main_module, "setup_json_logging", MagicMock())
    monkeypatch.setattr(main_module, "shutdown_logging", MagicMock())
    monkeypatch.setattr(main_module, "init_sentry", MagicMock())
    yield close
    reset_notifier()


async def test_startup_creates_indexes_and_shutdown_closes(patched_main, db):
    async with LifespanManager(main_module.app):
        info = await db["videos"].index_information()
        assert "videos_file_id" in info
        info = await db["video_reactions"].index_information()
        assert "video_reactions_video_type" in info
    patched_main.assert_awaited_once()
    main_module.shutdown_logging.assert_called_once()


async def test_change_stream_replaces_local_fanout(patched_main, monkeypatch):
    stream = MagicMock()
    stream.stop = AsyncMock()
    factory = MagicMock(return_value=stream)
    monkeypatch.setattr(main_module, "ReactionChangeStream", factory)
    monkeypatch.setattr(settings, "change_stream_enabled", True)

    async with LifespanManager(main_module.app):
        assert get_notifier().local_fanout is False
        stream.start.assert_called_once()
    stream.stop.assert_awaited_once()


async def test_health_reports_mongo_state(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "mongo": "down"}
