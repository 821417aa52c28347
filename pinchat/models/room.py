from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from pinchat.models.base import Base
from .user import utcnow

class Room(Base):
    __tablename__ = "rooms"
    
    name = Column(String(100), unique=True, nullable=False)
    hashed_pin = Column(String(255), nullable=False)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    
    messages = relationship("Message", back_populates="room")
    memberships = relationship("RoomMembership", back_populates="room")
    
    def __repr__(self):
        return f"<Room(id={self.id}, name='{self.name}')>"
