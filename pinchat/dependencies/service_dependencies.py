from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pinchat.core.config import settings
from pinchat.globals import session_store
from pinchat.database.redis import SessionStore

from pinchat.database.postgres import get_db_session
from pinchat.services.auth_service import AuthService
from pinchat.services.room_service import RoomService
from pinchat.services.chat_service import ChatService
from pinchat.services.presence_service import PresenceService
from pinchat.services.image_service import ImageService

def get_session_store() -> SessionStore:
    """
    Dependency that provides the process-wide Redis session store.
    """
    return session_store

def get_auth_service(db: AsyncSession = Depends(get_db_session)) -> AuthService:
    """
    Dependency that provides account registration and PIN login.
    """
    return AuthService(db)

def get_room_service(db: AsyncSession = Depends(get_db_session)) -> RoomService:
    """
    Dependency that provides room creation, joining and participant checks.
    """
    return RoomService(db)

def get_presence_service(db: AsyncSession = Depends(get_db_session)) -> PresenceService:
    return PresenceService(db, window_seconds=settings.presence_window_seconds)

def get_image_service() -> ImageService:
    return ImageService(
        max_bytes=settings.max_image_bytes,
        passthrough_bytes=settings.image_passthrough_bytes,
    )

def get_chat_service(
    room_service: RoomService = Depends(get_room_service),
    db: AsyncSession = Depends(get_db_session),
) -> ChatService:
    """
    Dependency that provides the message log, sharing the request's session
    with the room service it uses for access checks.
    """
    return ChatService(room_service=room_service, db=db)
