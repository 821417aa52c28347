import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set, Tuple
from uuid import UUID

from pinchat.schemas.message import ImageUploadResponse, MessageResponse
from pinchat.schemas.room import OnlineUserResponse

LOCAL_ID_PREFIX = "temp-"


def new_local_id() -> str:
    # Server ids are UUIDs, so the prefix alone keeps the namespaces apart
    return f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex}"


def is_local_id(message_id) -> bool:
    return isinstance(message_id, str) and message_id.startswith(LOCAL_ID_PREFIX)


class SendStatus(str, Enum):
    SENDING = "sending"
    FAILED = "failed"


@dataclass
class MessageDraft:
    content: str = ""
    reply_to: Optional[MessageResponse] = None
    image: Optional[ImageUploadResponse] = None


@dataclass
class PendingMessage:
    """An optimistic echo shown after the confirmed messages until the server answers."""
    local_id: str
    draft: MessageDraft
    user_id: Optional[UUID]
    username: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: SendStatus = SendStatus.SENDING
    error: Optional[str] = None
    committed: Optional[asyncio.Task] = field(default=None, repr=False, compare=False)
    # Confirmed ids on screen when the echo was created; anything else may be its stored copy
    known_ids: FrozenSet[UUID] = field(default_factory=frozenset, repr=False, compare=False)

    @property
    def failed(self) -> bool:
        return self.status == SendStatus.FAILED

    def matches(self, message: MessageResponse) -> bool:
        """Whether a confirmed message is the stored copy of this echo."""
        return (
            message.id not in self.known_ids
            and message.user_id == self.user_id
            and message.content == self.draft.content
            and bool(message.image_data) == (self.draft.image is not None)
        )


@dataclass
class ChatViewState:
    """
    Everything one chat page view knows. Owned by a single ChatController and
    dropped with it on navigation.
    """
    user_id: Optional[UUID] = None
    username: str = ""
    room_id: Optional[UUID] = None
    room_name: Optional[str] = None

    messages: List[MessageResponse] = field(default_factory=list)
    pending: Dict[str, PendingMessage] = field(default_factory=dict)
    online_users: List[OnlineUserResponse] = field(default_factory=list)

    scroll_locked: bool = False
    reply_target: Optional[MessageResponse] = None
    selected_image: Optional[ImageUploadResponse] = None
    liked: Set[UUID] = field(default_factory=set)

    # Bumped on every local send confirmation; polls remember the value they started at
    sync_epoch: int = 0
    recently_confirmed: Dict[UUID, Tuple[MessageResponse, int]] = field(default_factory=dict)

    def find_message(self, message_id: UUID) -> Optional[MessageResponse]:
        return next((m for m in self.messages if m.id == message_id), None)

    def pending_list(self) -> List[PendingMessage]:
        return list(self.pending.values())

    def toggle_like(self, message_id: UUID) -> bool:
        if message_id in self.liked:
            self.liked.discard(message_id)
            return False
        self.liked.add(message_id)
        return True
