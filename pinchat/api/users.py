from fastapi import APIRouter, Depends

from pinchat.database.redis import SessionData
from pinchat.dependencies.auth_dependencies import get_current_session, get_current_user
from pinchat.models.user import User
from pinchat.schemas.auth import CurrentUserResponse

router = APIRouter(prefix="/api/user", tags=["users"])

@router.get("/me", response_model=CurrentUserResponse)
async def get_me(
    current_user: User = Depends(get_current_user),
    session: SessionData = Depends(get_current_session),
):
    """
    Get the current user and the chat room their session is pinned to.
    """
    return CurrentUserResponse(
        user_id=current_user.id,
        username=current_user.username,
        current_chat_room_id=session.current_room_id,
        current_chat_room_name=session.current_room_name,
    )
