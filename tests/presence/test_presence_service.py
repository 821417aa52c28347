from datetime import datetime, timedelta, timezone

import pytest

from pinchat.schemas.room import CreateRoomRequest, JoinRoomRequest
from pinchat.services.presence_service import PresenceService
from pinchat.services.room_service import RoomService


@pytest.fixture
async def lobby(async_session, test_user, other_user):
    room_service = RoomService(async_session)
    room = await room_service.create_room(test_user.id, CreateRoomRequest(name="lobby", pin="1234"))
    await room_service.join_room(other_user.id, JoinRoomRequest(name="lobby", pin="1234"))
    return room


@pytest.mark.asyncio
async def test_recently_active_participant_is_online(async_session, lobby, test_user, other_user):
    presence = PresenceService(async_session, window_seconds=15)
    now = datetime.now(timezone.utc)
    await presence.touch(other_user.id, now=now - timedelta(seconds=5))

    online = await presence.list_online(lobby.id, exclude_user_id=test_user.id, now=now)
    assert [u.username for u in online] == ["otheruser"]

@pytest.mark.asyncio
async def test_stale_participant_is_offline(async_session, lobby, test_user, other_user):
    presence = PresenceService(async_session, window_seconds=15)
    now = datetime.now(timezone.utc)
    await presence.touch(other_user.id, now=now - timedelta(seconds=60))

    online = await presence.list_online(lobby.id, exclude_user_id=test_user.id, now=now)
    assert online == []

@pytest.mark.asyncio
async def test_excluded_user_never_listed(async_session, lobby, test_user, other_user):
    presence = PresenceService(async_session)
    now = datetime.now(timezone.utc)
    await presence.touch(test_user.id, now=now)
    await presence.touch(other_user.id, now=now)

    online = await presence.list_online(lobby.id, exclude_user_id=test_user.id, now=now)
    assert test_user.id not in {u.id for u in online}

@pytest.mark.asyncio
async def test_non_participants_are_not_listed(async_session, test_user, other_user):
    room_service = RoomService(async_session)
    room = await room_service.create_room(test_user.id, CreateRoomRequest(name="quiet", pin="1234"))
    presence = PresenceService(async_session)
    await presence.touch(other_user.id)

    online = await presence.list_online(room.id, exclude_user_id=test_user.id)
    assert online == []
