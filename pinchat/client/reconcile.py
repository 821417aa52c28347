"""
Change detection between two full message snapshots.

The server always returns a room's complete history in order, so the client
never merges or reorders. It only decides whether anything changed and,
if so, whether the viewport should follow the newest message.
"""
from dataclasses import dataclass
from typing import Sequence, Union

from pinchat.schemas.message import MessageResponse

# Scroll measurements carry sub-pixel rounding, so "at the bottom" is a band.
AUTO_SCROLL_TOLERANCE = 50
JUMP_BUTTON_TOLERANCE = 20


@dataclass(frozen=True)
class Viewport:
    scroll_top: float = 0
    client_height: float = 0
    scroll_height: float = 0

    def distance_from_bottom(self) -> float:
        return self.scroll_height - (self.scroll_top + self.client_height)

    def is_at_bottom(self, tolerance: float = AUTO_SCROLL_TOLERANCE) -> bool:
        return self.distance_from_bottom() <= tolerance


@dataclass(frozen=True)
class NoChange:
    pass


@dataclass(frozen=True)
class Replace:
    messages: tuple
    should_auto_scroll: bool


NO_CHANGE = NoChange()

RenderDecision = Union[NoChange, Replace]


def snapshots_equal(previous: Sequence[MessageResponse], new: Sequence[MessageResponse]) -> bool:
    """Order-and-value equality over every field of every message."""
    return len(previous) == len(new) and all(a == b for a, b in zip(previous, new))


def reconcile(
    previous: Sequence[MessageResponse],
    new: Sequence[MessageResponse],
    *,
    scroll_locked: bool,
    was_at_bottom: bool,
) -> RenderDecision:
    if snapshots_equal(previous, new):
        return NO_CHANGE

    should_auto_scroll = (
        scroll_locked
        or was_at_bottom
        or len(new) > len(previous)
        or not previous
    )
    return Replace(messages=tuple(new), should_auto_scroll=should_auto_scroll)
