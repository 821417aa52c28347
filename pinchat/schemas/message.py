from enum import Enum
from pydantic import Field
from uuid import UUID
from datetime import datetime
from typing import List, Optional

from .base import CamelModel

class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"

class MessageCreateRequest(CamelModel):
    content: str = Field(default="", max_length=2000, description="Message content")
    reply_to: Optional[UUID] = Field(default=None, description="ID of the message being replied to")
    message_type: MessageType = Field(default=MessageType.TEXT, description="Type of message")
    image_data: Optional[str] = Field(default=None, description="Image as a data URI or bare base64")
    content_type: Optional[str] = Field(default=None, description="MIME type of image_data")

class ReplyPreview(CamelModel):
    id: UUID
    username: str
    content: str

class MessageResponse(CamelModel):
    id: UUID
    chat_room_id: UUID
    user_id: UUID
    username: str
    content: str
    timestamp: datetime
    message_type: MessageType = MessageType.TEXT
    reply_to: Optional[ReplyPreview] = None
    image_data: Optional[str] = None

class MessageListResponse(CamelModel):
    messages: List[MessageResponse] = []

class MessageCreatedResponse(CamelModel):
    message: str
    new_message: MessageResponse

class ImageUploadResponse(CamelModel):
    success: bool = True
    image_data: str
    content_type: str
