from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from pinchat.core.exceptions import (
    InvalidCredentialsException,
    UserAlreadyExistsException,
    WeakCredentialException,
)
from pinchat.core.log_config import logger
from pinchat.models.user import User
from pinchat.core.security import hash_pin, verify_pin, is_weak_credential
from pinchat.schemas.auth import RegisterRequest, LoginRequest


class AuthService:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def register_user(self, request: RegisterRequest) -> User:
        """
        Handles the logic for registering a user.
        
        Args:
            request: Registration data
            
        Returns:
            The newly created user

        Raises:
            WeakCredentialException: If the username or PIN is too short
            UserAlreadyExistsException: If the username is taken
        """
        username = request.username.strip()
        if is_weak_credential(username, request.pin):
            raise WeakCredentialException()

        existing_user = await self.db_session.execute(
            select(User).filter(User.username == username)
        )
        if existing_user.scalar():
            raise UserAlreadyExistsException()
        
        user = User(
            username=username,
            hashed_pin=hash_pin(request.pin)
        )
        self.db_session.add(user)
        try:
            await self.db_session.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent registration of the same name
            await self.db_session.rollback()
            raise UserAlreadyExistsException() from e
        await self.db_session.refresh(user)

        logger.info(f"Registered user {user.username} ({user.id})")
        return user

    async def login_user(self, request: LoginRequest) -> User:
        """
        Handles the logic for logging in a user.
        
        Args:
            request: Login credentials
            
        Returns:
            The authenticated user
        """
        user = await self.db_session.execute(
            select(User).filter(User.username == request.username.strip())
        )
        user = user.scalar_one_or_none()
        
        if not user or not verify_pin(request.pin, user.hashed_pin):
            raise InvalidCredentialsException()

        return user

    async def get_user(self, user_id: UUID) -> User | None:
        result = await self.db_session.execute(select(User).filter(User.id == user_id))
        return result.scalar_one_or_none()
