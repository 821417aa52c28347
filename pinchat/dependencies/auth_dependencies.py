from fastapi import Depends, Request, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from pinchat.core.config import settings
from pinchat.core.exceptions import NotAuthenticatedException
from pinchat.database.postgres import get_db_session
from pinchat.database.redis import SessionData, SessionStore
from pinchat.dependencies.service_dependencies import get_session_store, get_presence_service
from pinchat.models.user import User
from pinchat.services.presence_service import PresenceService


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


async def get_current_session(
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> SessionData:
    """
    Dependency that resolves the session cookie to its server-side record.
    """
    session = await store.get(request.cookies.get(settings.session_cookie_name))
    if session is None:
        raise NotAuthenticatedException()
    return session


async def get_current_user(
    response: Response,
    session: SessionData = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_session),
    store: SessionStore = Depends(get_session_store),
    presence_service: PresenceService = Depends(get_presence_service),
) -> User:
    """
    Dependency for authenticated routes. Loads the session's user, records
    presence and rolls the cookie expiry forward.
    """
    result = await db.execute(select(User).filter(User.id == session.user_id))
    user = result.scalar_one_or_none()

    if user is None:
        await store.destroy(session.session_id)
        raise NotAuthenticatedException(detail="User not found, please log in again.")

    await presence_service.touch(user.id)
    set_session_cookie(response, session.session_id)
    return user
