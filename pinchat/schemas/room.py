from pydantic import BaseModel, Field
from uuid import UUID
from typing import List

from .base import CamelModel

class CreateRoomRequest(BaseModel):
    name: str = Field(..., max_length=100, description="Room name")
    pin: str = Field(..., max_length=64, description="Room PIN")

class JoinRoomRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    pin: str = Field(..., min_length=1, max_length=64)

class OnlineUserResponse(CamelModel):
    id: UUID
    username: str

class OnlineUsersResponse(CamelModel):
    online_users: List[OnlineUserResponse] = []
