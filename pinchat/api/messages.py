from fastapi import APIRouter, Depends, status
from uuid import UUID

from pinchat.database.redis import SessionData
from pinchat.dependencies.auth_dependencies import get_current_user, get_current_session
from pinchat.dependencies.service_dependencies import get_chat_service
from pinchat.models.user import User
from ..schemas.message import MessageCreateRequest, MessageCreatedResponse, MessageListResponse
from ..services.chat_service import ChatService

router = APIRouter(prefix="/api/messages", tags=["messages"])

@router.get("/{room_id}", response_model=MessageListResponse)
async def get_room_messages(
    room_id: UUID,
    current_user: User = Depends(get_current_user),
    session: SessionData = Depends(get_current_session),
    chat_service: ChatService = Depends(get_chat_service),
):
    """
    Retrieve the full message history for a room, oldest first.

    Args:
        room_id: ID of the room
        current_user: Authenticated user details
        session: Session, which must be pinned to room_id
        chat_service: Chat service instance

    Returns:
        MessageListResponse with every message in the room
    """
    messages = await chat_service.get_room_messages(
        user_id=current_user.id,
        room_id=room_id,
        pinned_room_id=session.current_room_id,
    )
    return MessageListResponse(messages=messages)

@router.post("/{room_id}", response_model=MessageCreatedResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    room_id: UUID,
    request: MessageCreateRequest,
    current_user: User = Depends(get_current_user),
    session: SessionData = Depends(get_current_session),
    chat_service: ChatService = Depends(get_chat_service),
):
    """
    Send a text or image message to a room, optionally as a reply.

    Args:
        room_id: ID of the room
        request: Message creation request
        current_user: Authenticated user details
        session: Session, which must be pinned to room_id
        chat_service: Chat service instance

    Returns:
        MessageCreatedResponse carrying the stored message in the same shape
        the history endpoint returns
    """
    new_message = await chat_service.send_message(
        sender=current_user,
        room_id=room_id,
        request=request,
        pinned_room_id=session.current_room_id,
    )
    return MessageCreatedResponse(message="Message sent successfully!", new_message=new_message)
