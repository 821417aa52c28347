# pinchat/database/redis.py
import redis.asyncio as redis
from dataclasses import dataclass
from typing import Optional
from uuid import UUID
import logging
from pinchat.core.config import settings
from pinchat.core.security import new_session_id

logger = logging.getLogger(__name__)


def get_session_key(session_id: str) -> str:
    """Returns the Redis key holding a session's fields."""
    return f"session:{session_id}"


@dataclass
class SessionData:
    session_id: str
    user_id: UUID
    username: str
    current_room_id: Optional[UUID] = None
    current_room_name: Optional[str] = None

    def to_mapping(self) -> dict:
        return {
            "user_id": str(self.user_id),
            "username": self.username,
            "current_room_id": str(self.current_room_id) if self.current_room_id else "",
            "current_room_name": self.current_room_name or "",
        }

    @classmethod
    def from_mapping(cls, session_id: str, data: dict) -> "SessionData":
        room_id = data.get("current_room_id")
        return cls(
            session_id=session_id,
            user_id=UUID(data["user_id"]),
            username=data.get("username", ""),
            current_room_id=UUID(room_id) if room_id else None,
            current_room_name=data.get("current_room_name") or None,
        )


class SessionStore:
    """
    Server-side session records keyed by the session cookie value.

    Each session is a Redis hash with a rolling TTL: every successful lookup
    pushes the expiry forward, so only idle sessions time out.
    """

    def __init__(self, redis_url: str, ttl_seconds: int = settings.session_ttl_seconds):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.redis: Optional[redis.Redis] = None
    
    async def connect(self):
        """Initialize Redis connection"""
        try:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_keepalive=True,
                health_check_interval=30,
            )
            # Test connection
            await self.redis.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise
    
    async def disconnect(self):
        """Close Redis connection"""
        if self.redis:
            await self.redis.aclose()
            logger.info("Redis connection closed")

    async def create(self, user_id: UUID, username: str) -> SessionData:
        """Start a new session for a freshly authenticated user."""
        session = SessionData(session_id=new_session_id(), user_id=user_id, username=username)
        key = get_session_key(session.session_id)
        await self.redis.hset(key, mapping=session.to_mapping())
        await self.redis.expire(key, self.ttl_seconds)
        return session

    async def get(self, session_id: str) -> Optional[SessionData]:
        """Load a session and refresh its TTL. Returns None if it expired or never existed."""
        if not session_id:
            return None
        key = get_session_key(session_id)
        data = await self.redis.hgetall(key)
        if not data or "user_id" not in data:
            return None
        await self.redis.expire(key, self.ttl_seconds)
        try:
            return SessionData.from_mapping(session_id, data)
        except ValueError:
            logger.warning(f"Discarding corrupt session {session_id[:8]}...")
            await self.redis.delete(key)
            return None

    async def pin_room(self, session: SessionData, room_id: UUID, room_name: str) -> SessionData:
        """Point the session at the room the user is now chatting in."""
        session.current_room_id = room_id
        session.current_room_name = room_name
        key = get_session_key(session.session_id)
        await self.redis.hset(key, mapping=session.to_mapping())
        await self.redis.expire(key, self.ttl_seconds)
        return session

    async def destroy(self, session_id: str):
        """Remove a session, e.g. on logout."""
        if session_id:
            await self.redis.delete(get_session_key(session_id))
