from sqlalchemy.orm import relationship
from sqlalchemy import (
    Column, ForeignKey, Text, DateTime, Enum, Integer, String, LargeBinary, UniqueConstraint, Uuid
)

from .base import Base
from .user import utcnow
from pinchat.schemas.message import MessageType

class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        # seq is the per-room insertion counter used to break created_at ties
        UniqueConstraint("room_id", "seq", name="uq_messages_room_seq"),
    )
    
    content = Column(Text, nullable=False, default="")
    message_type = Column(Enum(MessageType), default=MessageType.TEXT, nullable=False)

    # Inline image payload
    image_data = Column(LargeBinary, nullable=True)
    image_content_type = Column(String(100), nullable=True)
    
    # Sender information
    sender_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    sender = relationship("User", foreign_keys=[sender_id], back_populates="messages_sent")
    
    # Room information
    room_id = Column(Uuid(as_uuid=True), ForeignKey("rooms.id"), nullable=False, index=True)
    room = relationship("Room", back_populates="messages")

    # Reply threading, always within the same room
    reply_to_id = Column(Uuid(as_uuid=True), ForeignKey("messages.id"), nullable=True)
    reply_to = relationship("Message", remote_side="Message.id", foreign_keys=[reply_to_id])
    
    seq = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    
    def __repr__(self):
        return f"<Message(id={self.id}, sender_id={self.sender_id}, content='{self.content[:50]}...')>"
