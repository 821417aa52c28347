import uuid
from datetime import datetime, timedelta, timezone

import pytest

from pinchat.client.reconcile import NO_CHANGE, NoChange, Replace, Viewport, reconcile
from pinchat.schemas.message import MessageResponse

ROOM_ID = uuid.uuid4()
USER_ID = uuid.uuid4()
T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_messages(*contents):
    return [
        MessageResponse(
            id=uuid.uuid5(ROOM_ID, f"{i}:{text}"),
            chat_room_id=ROOM_ID,
            user_id=USER_ID,
            username="alice",
            content=text,
            timestamp=T0 + timedelta(seconds=i),
        )
        for i, text in enumerate(contents)
    ]


def test_identical_snapshots_are_no_change():
    a = make_messages("one", "two")
    b = make_messages("one", "two")
    assert reconcile(a, b, scroll_locked=False, was_at_bottom=False) is NO_CHANGE

def test_empty_snapshots_are_no_change():
    assert isinstance(reconcile([], [], scroll_locked=True, was_at_bottom=True), NoChange)

def test_field_change_is_detected():
    a = make_messages("one", "two")
    b = make_messages("one", "two")
    b[1] = b[1].model_copy(update={"content": "edited"})

    decision = reconcile(a, b, scroll_locked=False, was_at_bottom=False)
    assert isinstance(decision, Replace)
    assert decision.messages == tuple(b)
    assert decision.should_auto_scroll is False

def test_first_load_scrolls():
    decision = reconcile([], make_messages("one"), scroll_locked=False, was_at_bottom=False)
    assert decision.should_auto_scroll is True

def test_new_message_scrolls_even_when_reading_history():
    decision = reconcile(
        make_messages("one"), make_messages("one", "two"), scroll_locked=False, was_at_bottom=False
    )
    assert decision.should_auto_scroll is True

@pytest.mark.parametrize(
    "scroll_locked, was_at_bottom, expected",
    [
        (True, False, True),
        (False, True, True),
        (False, False, False),
    ],
)
def test_same_length_change_follows_scroll_state(scroll_locked, was_at_bottom, expected):
    previous = make_messages("one", "two")
    new = make_messages("one", "three")
    decision = reconcile(previous, new, scroll_locked=scroll_locked, was_at_bottom=was_at_bottom)
    assert decision.should_auto_scroll is expected

def test_viewport_bottom_is_a_band():
    assert Viewport(scroll_top=950, client_height=500, scroll_height=1500).is_at_bottom()
    assert Viewport(scroll_top=1000, client_height=500, scroll_height=1500).is_at_bottom()
    assert not Viewport(scroll_top=900, client_height=500, scroll_height=1500).is_at_bottom()
    assert not Viewport(scroll_top=970, client_height=500, scroll_height=1500).is_at_bottom(tolerance=20)
