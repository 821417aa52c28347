from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from typing import List, Optional

from ..models.message import Message
from ..models.room import Room
from ..models.user import User
from ..schemas.message import MessageCreateRequest, MessageResponse, MessageType, ReplyPreview
from ..core.log_config import logger
from .image_service import EncodedImage, parse_image_payload
from .room_service import RoomService
from pinchat.core.exceptions import (
    InvalidInputException,
    UnauthorizedAccessException,
    MessageNotSentException,
)

ACCESS_DENIED = "Access denied to this chat room."

# Inserts tried per send when concurrent senders claim the same seq
SEND_ATTEMPTS = 5


def to_message_response(msg: Message) -> MessageResponse:
    """Format a message (with sender and reply target loaded) for the wire."""
    image_data = None
    if msg.image_data:
        image_data = EncodedImage(msg.image_data, msg.image_content_type or "image/jpeg").data_uri()

    reply_to = None
    if msg.reply_to is not None:
        reply_to = ReplyPreview(
            id=msg.reply_to.id,
            username=msg.reply_to.sender.username,
            content=msg.reply_to.content,
        )

    return MessageResponse(
        id=msg.id,
        chat_room_id=msg.room_id,
        user_id=msg.sender_id,
        username=msg.sender.username,
        content=msg.content,
        timestamp=msg.created_at,
        message_type=msg.message_type,
        reply_to=reply_to,
        image_data=image_data,
    )


class ChatService:
    def __init__(self, room_service: RoomService, db: AsyncSession):
        self.room_service = room_service
        self.db = db

    def _with_relations(self):
        return (
            select(Message)
            .options(
                selectinload(Message.sender),
                selectinload(Message.reply_to).selectinload(Message.sender),
            )
            .execution_options(populate_existing=True)
        )

    async def ensure_room_access(
        self,
        user_id: UUID,
        room_id: UUID,
        pinned_room_id: Optional[UUID],
    ) -> Room:
        """
        Check that the session is pinned to this room and the user participates in it.

        Raises:
            UnauthorizedAccessException: If either check fails, or the room does not exist
        """
        if pinned_room_id != room_id:
            raise UnauthorizedAccessException(detail=ACCESS_DENIED)

        room = await self.room_service.get_room(room_id)
        if not room or not await self.room_service.is_participant(room_id, user_id):
            raise UnauthorizedAccessException(detail=ACCESS_DENIED)
        return room

    async def _validate_reply_target(self, room_id: UUID, reply_to_id: UUID) -> None:
        result = await self.db.execute(
            select(Message.room_id).filter(Message.id == reply_to_id)
        )
        target_room_id = result.scalar_one_or_none()
        if target_room_id is None:
            raise InvalidInputException(detail="The message being replied to does not exist.")
        if target_room_id != room_id:
            raise InvalidInputException(detail="Replies must reference a message in the same chat room.")

    async def _next_seq(self, room_id: UUID) -> int:
        result = await self.db.execute(
            select(func.coalesce(func.max(Message.seq), 0)).filter(Message.room_id == room_id)
        )
        return result.scalar_one() + 1

    async def send_message(
        self,
        sender: User,
        room_id: UUID,
        request: MessageCreateRequest,
        pinned_room_id: Optional[UUID],
    ) -> MessageResponse:
        """
        Append a message to a room's log.

        The membership check and the insert are separate statements; a room
        changing in between is not guarded against. Two sends racing for the
        same ``seq`` are resolved by recomputing it and inserting again.

        Raises:
            InvalidInputException: If there is neither content nor image, the image is
                malformed, or the reply target is missing or in another room
            ImageTooLargeException: If the inline image is above the size ceiling
            UnauthorizedAccessException: If the sender may not post to this room
            MessageNotSentException: If the insert keeps failing
        """
        content = (request.content or "").strip()
        if not content and not request.image_data:
            raise InvalidInputException(detail="Message content or image is required.")

        # A rollback expires every loaded object, sender included
        sender_id, sender_name = sender.id, sender.username

        await self.ensure_room_access(sender_id, room_id, pinned_room_id)

        image = None
        if request.image_data:
            image = parse_image_payload(request.image_data, request.content_type)

        if request.reply_to is not None:
            await self._validate_reply_target(room_id, request.reply_to)

        for attempt in range(1, SEND_ATTEMPTS + 1):
            message = Message(
                room_id=room_id,
                sender_id=sender_id,
                content=content,
                message_type=MessageType.IMAGE if image else MessageType.TEXT,
                image_data=image.data if image else None,
                image_content_type=image.content_type if image else None,
                reply_to_id=request.reply_to,
                seq=await self._next_seq(room_id),
            )
            self.db.add(message)
            try:
                await self.db.commit()
                break
            except IntegrityError as e:
                await self.db.rollback()
                if attempt == SEND_ATTEMPTS:
                    logger.error(f"Giving up on message to room {room_id} after {attempt} seq collisions")
                    raise MessageNotSentException(detail="Failed to send message. Please try again.") from e
                logger.info(f"seq collision in room {room_id}, retrying (attempt {attempt})")
            except Exception as e:
                await self.db.rollback()
                raise MessageNotSentException() from e

        result = await self.db.execute(self._with_relations().filter(Message.id == message.id))
        saved = result.scalar_one()

        logger.info(f"Message {saved.id} sent by {sender_name} to room {room_id}")
        return to_message_response(saved)

    async def get_room_messages(
        self,
        user_id: UUID,
        room_id: UUID,
        pinned_room_id: Optional[UUID],
    ) -> List[MessageResponse]:
        """
        Retrieve the complete message history for a room, oldest first.

        Every call returns the whole log; there is no cursor.
        """
        await self.ensure_room_access(user_id, room_id, pinned_room_id)

        messages = await self.db.execute(
            self._with_relations()
            .filter(Message.room_id == room_id)
            .order_by(Message.created_at.asc(), Message.seq.asc())
        )
        return [to_message_response(msg) for msg in messages.scalars().all()]
