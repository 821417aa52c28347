from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError

from ..models.room import Room
from ..models.room_membership import RoomMembership
from ..schemas.room import CreateRoomRequest, JoinRoomRequest
from ..core.log_config import logger
from ..core.security import hash_pin, verify_pin, is_weak_credential
from ..core.exceptions import (
    RoomNotFoundException,
    RoomAlreadyExistsException,
    InvalidCredentialsException,
    WeakCredentialException,
    InternalServerErrorException,
)

class RoomService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_room(
        self,
        user_id: UUID,
        request: CreateRoomRequest,
    ) -> Room:
        """
        Create a new PIN-protected room and make the creator its first participant.

        Args:
            user_id: ID of the creator
            request: Room creation request

        Returns:
            The created Room

        Raises:
            WeakCredentialException: If the name or PIN is too short
            RoomAlreadyExistsException: If a room with the same name already exists
            InternalServerErrorException: If room creation fails
        """
        name = request.name.strip()
        if is_weak_credential(name, request.pin):
            raise WeakCredentialException(
                detail="Chat name must be at least 3 characters and PIN at least 4 characters."
            )

        # Check if a room with the same name already exists
        existing_room = await self.db.execute(
            select(Room).filter(Room.name == name)
        )
        if existing_room.scalar():
            raise RoomAlreadyExistsException()

        room = Room(
            name=name,
            hashed_pin=hash_pin(request.pin),
            created_by=user_id,
        )
        self.db.add(room)
        try:
            await self.db.flush() # Sends the INSERT so room.id is available
        except IntegrityError as e:
            await self.db.rollback()
            raise RoomAlreadyExistsException() from e

        # Add creator as a member
        self.db.add(RoomMembership(user_id=user_id, room_id=room.id))
        try:
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            raise InternalServerErrorException(detail="Failed to create chat room.") from e

        logger.info(f"Room '{room.name}' ({room.id}) created by {user_id}")
        return room

    async def join_room(self, user_id: UUID, request: JoinRoomRequest) -> Room:
        """
        Add a user to a room after checking its PIN.

        Joining a room the user already belongs to succeeds without adding a
        second membership.

        Args:
            user_id: ID of the user
            request: Room name and PIN

        Raises:
            RoomNotFoundException: If no room has that name
            InvalidCredentialsException: If the PIN does not match
            InternalServerErrorException: If joining fails
        """
        room = await self.get_room_by_name(request.name.strip())
        if not room:
            raise RoomNotFoundException()

        if not verify_pin(request.pin, room.hashed_pin):
            raise InvalidCredentialsException(detail="Invalid PIN for this chat room.")

        if await self.is_participant(room.id, user_id):
            return room

        room_id = room.id
        self.db.add(RoomMembership(user_id=user_id, room_id=room_id))
        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent join already inserted the membership
            await self.db.rollback()
            return await self.get_room(room_id)
        except Exception as e:
            await self.db.rollback()
            raise InternalServerErrorException(detail="Failed to join chat room.") from e

        logger.info(f"User {user_id} joined room '{room.name}' ({room.id})")
        return room

    async def get_room(self, room_id: UUID) -> Room | None:
        result = await self.db.execute(select(Room).filter(Room.id == room_id))
        return result.scalar_one_or_none()

    async def get_room_by_name(self, name: str) -> Room | None:
        result = await self.db.execute(select(Room).filter(Room.name == name))
        return result.scalar_one_or_none()

    async def is_participant(self, room_id: UUID, user_id: UUID) -> bool:
        """Whether the user has ever joined the room. Memberships are never removed."""
        membership = await self.db.execute(
            select(RoomMembership.id).filter(
                and_(
                    RoomMembership.room_id == room_id,
                    RoomMembership.user_id == user_id
                )
            )
        )
        return membership.first() is not None
