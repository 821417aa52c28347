from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from .base import Base
from .user import utcnow

class RoomMembership(Base):
    """A user's standing access to a room, granted once by creating or joining it."""
    __tablename__ = "room_memberships"
    __table_args__ = (
        UniqueConstraint("user_id", "room_id", name="uq_room_membership_user_room"),
    )

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    room_id = Column(Uuid(as_uuid=True), ForeignKey("rooms.id"), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), default=utcnow)

    user = relationship("User", back_populates="room_memberships")
    room = relationship("Room", back_populates="memberships")

    def __repr__(self):
        return f"<RoomMembership(user_id={self.user_id}, room_id={self.room_id}, joined_at={self.joined_at})>"
