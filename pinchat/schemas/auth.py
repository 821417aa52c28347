from uuid import UUID
from typing import Optional
from pydantic import BaseModel, Field

from .base import CamelModel

class RegisterRequest(BaseModel):
    username: str = Field(..., max_length=50)
    pin: str = Field(..., max_length=64)

class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    pin: str = Field(..., min_length=1)

class RedirectResponse(BaseModel):
    message: str
    redirect: str

class CurrentUserResponse(CamelModel):
    user_id: UUID
    username: str
    current_chat_room_id: Optional[UUID] = None
    current_chat_room_name: Optional[str] = None
