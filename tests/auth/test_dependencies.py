import pytest
from fastapi import Response
from starlette.requests import Request

from pinchat.core.config import settings
from pinchat.core.exceptions import NotAuthenticatedException
from pinchat.dependencies.auth_dependencies import get_current_session, get_current_user
from pinchat.services.presence_service import PresenceService


def _request_with_cookie(session_id: str = None) -> Request:
    headers = []
    if session_id:
        headers.append((b"cookie", f"{settings.session_cookie_name}={session_id}".encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


@pytest.mark.asyncio
async def test_get_current_session_valid_cookie(session_store, test_user):
    session = await session_store.create(test_user.id, test_user.username)
    resolved = await get_current_session(_request_with_cookie(session.session_id), session_store)
    assert resolved.user_id == test_user.id
    assert resolved.current_room_id is None

@pytest.mark.asyncio
async def test_get_current_session_missing_cookie(session_store):
    with pytest.raises(NotAuthenticatedException):
        await get_current_session(_request_with_cookie(), session_store)

@pytest.mark.asyncio
async def test_get_current_user_touches_presence_and_rolls_cookie(async_session, session_store, test_user):
    session = await session_store.create(test_user.id, test_user.username)
    before = test_user.last_active_at
    response = Response()

    user = await get_current_user(
        response, session, async_session, session_store, PresenceService(async_session)
    )

    assert user.id == test_user.id
    await async_session.refresh(user)
    assert user.last_active_at >= before
    assert settings.session_cookie_name in response.headers["set-cookie"]

@pytest.mark.asyncio
async def test_get_current_user_for_deleted_user(async_session, session_store, test_user):
    session = await session_store.create(test_user.id, test_user.username)
    await async_session.delete(test_user)
    await async_session.commit()

    with pytest.raises(NotAuthenticatedException):
        await get_current_user(
            Response(), session, async_session, session_store, PresenceService(async_session)
        )
    assert await session_store.get(session.session_id) is None
