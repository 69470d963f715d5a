"""Tests for the reaction store: status, counts and the write path."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import AutoReconnect, OperationFailure

from reaction_api.models.reactions import ReactionEventType
from reaction_api.services.reactions_service import (
    INVALID_VIDEO_ID,
    STATUS_UNAVAILABLE,
    ReactionsService,
    ReactionWriteError,
)
from reaction_api.services.video_registrar import VideoRegistrar
from tests.helpers import new_ip, new_video


def counts_map(items) -> dict:
    return {item.reaction_type: item.count for item in items}


async def test_status_defaults_to_not_reacted(service):
    status = await service.get_status(new_video(), new_ip())
    assert status.has_reacted is False
    assert status.reaction_type is None
    assert status.error is None


async def test_react_then_change_reaction(service):
    video, a = new_video(), new_ip()

    assert await service.add_reaction(video, a, "love") is True
    status = await service.get_status(video, a)
    assert (status.has_reacted, status.reaction_type) == (True, "love")

    assert await service.add_reaction(video, a, "like") is True
    status = await service.get_status(video, a)
    assert (status.has_reacted, status.reaction_type) == (True, "like")

    assert counts_map(await service.get_counts(video)) == {"like": 1}


async def test_other_identity_sees_only_counts(service):
    video, a, b = new_video(), new_ip(), new_ip()
    await service.add_reaction(video, a, "wow")

    status = await service.get_status(video, b)
    assert status.has_reacted is False and status.reaction_type is None
    assert counts_map(await service.get_counts(video)) == {"wow": 1}


@pytest.mark.parametrize("atomic", [True, False])
async def test_at_most_one_row_per_identity(db, registrar, atomic):
    svc = ReactionsService(db, registrar, atomic_upsert=atomic)
    video, a = new_video(), new_ip()

    for kind in ["like", "love", "love", "sad", "angry", "like"]:
        await svc.add_reaction(video, a, kind)

    assert await svc.repo.count_for_pair(video, a) == 1
    assert (await svc.get_status(video, a)).reaction_type == "like"


async def test_count_sum_equals_distinct_reacting_identities(service):
    video = new_video()
    ips = [new_ip() for _ in range(6)]
    kinds = ["like", "love", "like", "laugh", "like", "sad"]
    for ip, kind in zip(ips, kinds):
        await service.add_reaction(video, ip, kind)
    # повторные реакции тех же IP не добавляют строк
    await service.add_reaction(video, ips[0], "love")
    await service.add_reaction(video, ips[1], "love")

    counts = await service.get_counts(video)
    assert sum(item.count for item in counts) == len(ips)
    assert counts_map(counts) == {"like": 2, "love": 2, "laugh": 1,
                                  "sad": 1}


async def test_counts_are_sorted_by_kind(service):
    video = new_video()
    for kind in ["wow", "angry", "like"]:
        await service.add_reaction(video, new_ip(), kind)

    kinds = [item.reaction_type for item in await service.get_counts(video)]
    assert kinds == sorted(kinds)


async def test_counts_are_scoped_to_video(service):
    v1, v2, ip = new_video(), new_video(), new_ip()
    await service.add_reaction(v1, ip, "like")
    await service.add_reaction(v2, ip, "sad")

    assert counts_map(await service.get_counts(v1)) == {"like": 1}
    assert counts_map(await service.get_counts(v2)) == {"sad": 1}


async def test_all_counts_groups_by_video_and_kind(service):
    v1, v2 = sorted([new_video(), new_video()])
    await service.add_reaction(v1, new_ip(), "like")
    await service.add_reaction(v1, new_ip(), "like")
    await service.add_reaction(v2, new_ip(), "wow")

    rows = [(r.video_id, r.reaction_type, r.count)
            for r in await service.get_all_counts()]
    assert rows == [(v1, "like", 2), (v2, "wow", 1)]


async def test_reaction_provisions_video_row(service, db):
    video = new_video()
    await service.add_reaction(video, new_ip(), "like")
    assert await db["videos"].count_documents({"file_id": video}) == 1


@pytest.mark.parametrize("video_id, identity, kind", [
    ("../etc/passwd", "203.0.113.1", "like"),
    ("vid1", "203.0.113.1", "like<script>"),
    ("vid1", "203.0.113.1", "dislike"),
    ("vid1", "", "like"),
    ("", "203.0.113.1", "like"),
])
async def test_invalid_write_is_noop_without_storage(video_id, identity,
                                                     kind):
    db = MagicMock()
    svc = ReactionsService(db, VideoRegistrar(db))

    assert await svc.add_reaction(video_id, identity, kind) is False
    assert db["video_reactions"].mock_calls == []
    assert db["videos"].mock_calls == []


async def test_invalid_video_id_reads_return_defaults(service, db):
    status = await service.get_status("vid/1", new_ip())
    assert status.has_reacted is False
    assert status.error == INVALID_VIDEO_ID
    assert await service.get_counts("vid/1") == []
    assert await db["videos"].count_documents({}) == 0


async def test_status_read_failure_fails_open(service):
    service.repo.get = AsyncMock(side_effect=AutoReconnect("gone"))

    status = await service.get_status(new_video(), new_ip())
    assert status.has_reacted is False
    assert status.error == STATUS_UNAVAILABLE


async def test_counts_read_failure_returns_empty(service):
    service.repo.count_by_type = AsyncMock(side_effect=AutoReconnect("gone"))
    service.repo.count_all = AsyncMock(side_effect=AutoReconnect("gone"))

    assert await service.get_counts(new_video()) == []
    assert await service.get_all_counts() == []


async def test_upsert_failure_propagates(service, notifier):
    video = new_video()
    events = []
    notifier.subscribe(video, events.append)
    service.repo.upsert = AsyncMock(
        side_effect=OperationFailure("write refused"))

    with pytest.raises(ReactionWriteError, match="^reaction_insert_error"):
        await service.add_reaction(video, new_ip(), "like")
    assert events == []


async def test_legacy_delete_failure_is_not_fatal(legacy_service):
    video, ip = new_video(), new_ip()
    legacy_service.repo.delete = AsyncMock(
        side_effect=AutoReconnect("gone"))

    assert await legacy_service.add_reaction(video, ip, "laugh") is True
    assert (await legacy_service.get_status(video, ip)).reaction_type \
        == "laugh"


async def test_legacy_insert_failure_after_delete_leaves_no_reaction(
        legacy_service):
    video, ip = new_video(), new_ip()
    await legacy_service.add_reaction(video, ip, "like")
    legacy_service.repo.insert = AsyncMock(
        side_effect=OperationFailure("write refused"))

    with pytest.raises(ReactionWriteError):
        await legacy_service.add_reaction(video, ip, "love")
    # delete прошёл, insert нет: состояние «ещё не реагировал»
    assert (await legacy_service.get_status(video, ip)).has_reacted is False


async def test_write_publishes_insert_then_update(service, notifier):
    video, ip = new_video(), new_ip()
    events = []
    notifier.subscribe(video, events.append)

    await service.add_reaction(video, ip, "like")
    await service.add_reaction(video, ip, "love")

    assert [e.event_type for e in events] == [
        ReactionEventType.INSERT, ReactionEventType.UPDATE]
    assert events[-1].reaction_type == "love"


async def test_legacy_write_publishes_delete_and_insert(legacy_service,
                                                        notifier):
    video, ip = new_video(), new_ip()
    events = []
    notifier.subscribe(video, events.append)

    await legacy_service.add_reaction(video, ip, "like")
    await legacy_service.add_reaction(video, ip, "sad")

    assert [e.event_type for e in events] == [
        ReactionEventType.INSERT,
        ReactionEventType.DELETE,
        ReactionEventType.INSERT,
    ]


async def test_no_local_fanout_when_change_stream_delivers(db, registrar,
                                                          notifier):
    notifier.local_fanout = False
    svc = ReactionsService(db, registrar, notifier)
    video = new_video()
    events = []
    notifier.subscribe(video, events.append)

    await svc.add_reaction(video, new_ip(), "like")
    assert events == []
