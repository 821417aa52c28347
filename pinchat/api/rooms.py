from fastapi import APIRouter, Depends, status
from uuid import UUID

from ..database.redis import SessionData, SessionStore
from ..schemas.auth import RedirectResponse
from ..schemas.room import CreateRoomRequest, JoinRoomRequest, OnlineUserResponse, OnlineUsersResponse
from ..services.room_service import RoomService
from ..services.presence_service import PresenceService
from pinchat.core.exceptions import UnauthorizedAccessException
from pinchat.dependencies.service_dependencies import get_room_service, get_presence_service, get_session_store
from pinchat.dependencies.auth_dependencies import get_current_user, get_current_session
from pinchat.models.user import User

router = APIRouter(prefix="/api/chatrooms", tags=["chatrooms"])

@router.post("/create", response_model=RedirectResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    request: CreateRoomRequest,
    current_user: User = Depends(get_current_user),
    session: SessionData = Depends(get_current_session),
    room_service: RoomService = Depends(get_room_service),
    store: SessionStore = Depends(get_session_store),
):
    """
    Create a new PIN-protected room, join it and pin the session to it.
    """
    room = await room_service.create_room(
        user_id=current_user.id,
        request=request
    )
    await store.pin_room(session, room.id, room.name)
    return RedirectResponse(message="Chat room created and joined!", redirect="/chat")

@router.post("/join", response_model=RedirectResponse)
async def join_room(
    request: JoinRoomRequest,
    current_user: User = Depends(get_current_user),
    session: SessionData = Depends(get_current_session),
    room_service: RoomService = Depends(get_room_service),
    store: SessionStore = Depends(get_session_store),
):
    """
    Join a room by name and PIN and pin the session to it.
    """
    room = await room_service.join_room(
        user_id=current_user.id,
        request=request
    )
    await store.pin_room(session, room.id, room.name)
    return RedirectResponse(message="Joined chat room!", redirect="/chat")

@router.get("/{room_id}/online-users", response_model=OnlineUsersResponse)
async def get_online_users(
    room_id: UUID,
    current_user: User = Depends(get_current_user),
    room_service: RoomService = Depends(get_room_service),
    presence_service: PresenceService = Depends(get_presence_service),
):
    """
    List the other participants of the room who were active recently.
    """
    if not await room_service.is_participant(room_id, current_user.id):
        raise UnauthorizedAccessException(detail="Access denied to this chat room.")

    users = await presence_service.list_online(room_id, exclude_user_id=current_user.id)
    return OnlineUsersResponse(
        online_users=[OnlineUserResponse(id=user.id, username=user.username) for user in users]
    )
