from dataclasses import dataclass
from typing import AsyncIterator, Callable, Sequence, Union
from uuid import UUID

from pinchat.schemas.message import MessageResponse
from .config import client_settings


@dataclass(frozen=True)
class PollStrategy:
    """Refetch the full history every ``interval`` seconds."""
    interval: float = client_settings.message_poll_interval


@dataclass(frozen=True)
class PushStrategy:
    """
    Receive snapshots from a subscription instead of polling.

    ``subscribe`` is called with the room id and must yield complete, ordered
    snapshots; they go through the same reconciliation as polled ones.
    """
    subscribe: Callable[[UUID], AsyncIterator[Sequence[MessageResponse]]]


SyncStrategy = Union[PollStrategy, PushStrategy]
