import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence
from uuid import UUID

from pinchat.schemas.message import ImageUploadResponse, MessageResponse
from pinchat.schemas.room import OnlineUserResponse
from .api import ApiError, ChatApiClient
from .config import client_settings
from .reconcile import (
    AUTO_SCROLL_TOLERANCE,
    JUMP_BUTTON_TOLERANCE,
    RenderDecision,
    Replace,
    Viewport,
    reconcile,
)
from .state import ChatViewState, MessageDraft, PendingMessage, SendStatus, is_local_id, new_local_id
from .sync import PollStrategy, PushStrategy, SyncStrategy

logger = logging.getLogger("pinchat.client")

LOGIN_PATH = "/"
ROOM_PICKER_PATH = "/chat-rooms"


class ChatRenderer(Protocol):
    """What the controller needs from whatever draws the chat page."""

    def viewport(self) -> Viewport: ...

    def render_messages(self, messages: Sequence[MessageResponse], pending: Sequence[PendingMessage]) -> None: ...

    def scroll_to_bottom(self) -> None: ...

    def set_manual_scroll_enabled(self, enabled: bool) -> None: ...

    def set_jump_to_bottom_visible(self, visible: bool) -> None: ...

    def render_online_users(self, users: Sequence[OnlineUserResponse]) -> None: ...

    def navigate(self, path: str) -> None: ...


class ChatController:
    """
    Keeps one chat page in sync with its room.

    All per-page state lives in ``self.state``. Messages resync on
    ``sync_strategy`` and presence on a slower poll, both inside the running
    event loop. A loop skips its tick while the previous fetch is still
    outstanding, so responses never overtake each other.
    """

    def __init__(
        self,
        api: ChatApiClient,
        renderer: ChatRenderer,
        *,
        sync_strategy: SyncStrategy = None,
        presence_interval: float = None,
        scroll_locked: bool = False,
    ):
        self.api = api
        self.renderer = renderer
        self.sync_strategy = sync_strategy or PollStrategy()
        self.presence_interval = presence_interval or client_settings.presence_poll_interval
        self.state = ChatViewState(scroll_locked=scroll_locked)

        self._loops: List[asyncio.Task] = []
        self._in_flight: set = set()
        self._closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # Lifecycle

    async def start(self) -> bool:
        """
        Load the session, render the room and start the sync loops.

        Returns False when the session is missing or not pinned to a room;
        the renderer has been told where to navigate in that case.
        """
        try:
            me = await self.api.me()
        except ApiError as e:
            if not self._handle_access_error(e):
                logger.error(f"Error fetching current user/chat room: {e.message}")
            return False

        self.state.user_id = me.user_id
        self.state.username = me.username
        self.state.room_id = me.current_chat_room_id
        self.state.room_name = me.current_chat_room_name

        if self.state.room_id is None:
            self._navigate(ROOM_PICKER_PATH)
            return False

        self._apply_scroll_lock()
        # Empty until the first fetch lands, so the renderer can show its placeholder
        self._render()
        await self.refresh_messages()
        if self._closed:
            return False

        if isinstance(self.sync_strategy, PushStrategy):
            self._loops.append(asyncio.create_task(self._consume_push(self.sync_strategy)))
        else:
            self._loops.append(asyncio.create_task(
                self._run_every(self.sync_strategy.interval, "messages", self.refresh_messages)
            ))
        self._loops.append(asyncio.create_task(
            self._run_every(self.presence_interval, "presence", self.refresh_online_users)
        ))
        return True

    async def close(self):
        """Stop every loop, fetch and send. Safe to call more than once."""
        self._closed = True
        tasks = [t for t in self._loops + list(self._in_flight) if t is not asyncio.current_task()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._loops.clear()
        self._in_flight.clear()

    async def _run_every(self, interval: float, name: str, tick: Callable[[], Awaitable[None]]):
        in_flight: Optional[asyncio.Task] = None
        while not self._closed:
            await asyncio.sleep(interval)
            if in_flight is not None and not in_flight.done():
                logger.debug(f"Skipping {name} sync; previous fetch still in flight")
                continue
            in_flight = self._spawn(tick())

    async def _consume_push(self, strategy: PushStrategy):
        try:
            async for snapshot in strategy.subscribe(self.state.room_id):
                if self._closed:
                    break
                self.apply_snapshot(snapshot)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Push subscription for room {self.state.room_id} ended: {e}", exc_info=True)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._in_flight.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task):
        self._in_flight.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background task failed: {task.exception()}", exc_info=task.exception())

    def _navigate(self, path: str):
        self._closed = True
        for task in self._loops:
            if task is not asyncio.current_task():
                task.cancel()
        self.renderer.navigate(path)

    def _handle_access_error(self, error: ApiError) -> bool:
        if error.is_auth_required:
            self._navigate(LOGIN_PATH)
            return True
        if error.is_forbidden:
            self._navigate(ROOM_PICKER_PATH)
            return True
        return False

    # Message sync

    async def refresh_messages(self):
        """One message resync: fetch the full history and reconcile it."""
        if self.state.room_id is None or self._closed:
            return
        started_epoch = self.state.sync_epoch
        try:
            messages = await self.api.fetch_room_messages(self.state.room_id)
        except ApiError as e:
            if not self._handle_access_error(e):
                logger.warning(f"Error fetching messages: {e.message}")
            return
        self.apply_snapshot(messages, started_epoch=started_epoch)

    def apply_snapshot(self, messages: Sequence[MessageResponse], started_epoch: int = None) -> RenderDecision:
        """Reconcile an authoritative snapshot against what is on screen."""
        snapshot = self._merge_recently_confirmed(list(messages), started_epoch)
        settled = self._settle_echoes(snapshot)
        was_at_bottom = self.renderer.viewport().is_at_bottom(AUTO_SCROLL_TOLERANCE)

        decision = reconcile(
            self.state.messages,
            snapshot,
            scroll_locked=self.state.scroll_locked,
            was_at_bottom=was_at_bottom,
        )
        if isinstance(decision, Replace):
            self.state.messages = list(decision.messages)
            self._render()
            if decision.should_auto_scroll:
                self.renderer.scroll_to_bottom()
        elif settled:
            self._render()
        self._update_jump_to_bottom()
        return decision

    def _merge_recently_confirmed(self, snapshot: List[MessageResponse], started_epoch: Optional[int]):
        """
        Keep sends confirmed after this fetch started; the server had not
        stored them yet when it built the snapshot.
        """
        if not self.state.recently_confirmed:
            return snapshot

        seen = {m.id for m in snapshot}
        for message_id, (message, confirmed_epoch) in list(self.state.recently_confirmed.items()):
            if message_id in seen:
                del self.state.recently_confirmed[message_id]
            elif started_epoch is not None and confirmed_epoch > started_epoch:
                snapshot.append(message)
            else:
                # The server answered after the confirmation and still lacks it
                del self.state.recently_confirmed[message_id]
        return snapshot

    def _settle_echoes(self, snapshot: Sequence[MessageResponse]) -> bool:
        """
        Drop echoes whose stored copy already arrived in a snapshot, so a poll
        that beats the send response never shows the message twice.
        """
        claimed = set()
        settled = False
        for pending in self.state.pending_list():
            stored = next(
                (m for m in snapshot if m.id not in claimed and pending.matches(m)),
                None,
            )
            if stored is None:
                continue
            claimed.add(stored.id)
            del self.state.pending[pending.local_id]
            settled = True
        return settled

    def _render(self):
        self.renderer.render_messages(self.state.messages, self.state.pending_list())

    # Optimistic send

    def send(self, content: str = "") -> Optional[PendingMessage]:
        """
        Show a message immediately and write it to the server in the background.

        Uses the current reply target and selected image, then clears both.
        Must be called from the running event loop. ``pending.committed``
        resolves to the stored message, or None if the send failed.
        """
        content = (content or "").strip()
        image = self.state.selected_image
        if (not content and image is None) or self.state.room_id is None or self._closed:
            return None

        draft = MessageDraft(content=content, reply_to=self.state.reply_target, image=image)
        self.state.reply_target = None
        self.state.selected_image = None

        pending = PendingMessage(
            local_id=new_local_id(),
            draft=draft,
            user_id=self.state.user_id,
            username=self.state.username,
            known_ids=frozenset(m.id for m in self.state.messages),
        )
        self.state.pending[pending.local_id] = pending
        self._render()
        # Sending always follows the newest message, scroll lock or not
        self.renderer.scroll_to_bottom()

        pending.committed = self._spawn(self._deliver(pending))
        return pending

    async def _deliver(self, pending: PendingMessage) -> Optional[MessageResponse]:
        draft = pending.draft
        try:
            saved = await self.api.send_message(
                self.state.room_id,
                draft.content,
                reply_to=draft.reply_to.id if draft.reply_to else None,
                image=draft.image,
            )
        except ApiError as e:
            if self._handle_access_error(e):
                self.state.pending.pop(pending.local_id, None)
                return None
            logger.warning(f"Error sending message {pending.local_id}: {e.message}")
            pending.status = SendStatus.FAILED
            pending.error = e.message
            self._render()
            return None

        # Swap the echo for the stored message in place
        self.state.pending.pop(pending.local_id, None)
        self.state.sync_epoch += 1
        if self.state.find_message(saved.id) is None:
            self.state.messages.append(saved)
            self.state.recently_confirmed[saved.id] = (saved, self.state.sync_epoch)
        self._render()
        return saved

    def retry(self, local_id: str) -> Optional[PendingMessage]:
        """Resend a failed message. Returns None if there is nothing to retry."""
        pending = self.state.pending.get(local_id)
        if pending is None or not pending.failed or self._closed:
            return None
        pending.status = SendStatus.SENDING
        pending.error = None
        self._render()
        pending.committed = self._spawn(self._deliver(pending))
        return pending

    def discard(self, local_id: str) -> bool:
        """Drop a failed message from view."""
        if not is_local_id(local_id):
            return False
        pending = self.state.pending.get(local_id)
        if pending is None or not pending.failed:
            return False
        del self.state.pending[local_id]
        self._render()
        return True

    # Composer

    def start_reply(self, message_id: UUID) -> Optional[MessageResponse]:
        target = self.state.find_message(message_id)
        self.state.reply_target = target
        return target

    def cancel_reply(self):
        self.state.reply_target = None

    async def select_image(self, data: bytes, content_type: str, filename: str = "image") -> ImageUploadResponse:
        """Upload and compress an image; the next send carries it."""
        try:
            uploaded = await self.api.upload_image(data, content_type, filename)
        except ApiError as e:
            self._handle_access_error(e)
            raise
        self.state.selected_image = uploaded
        return uploaded

    def clear_image(self):
        self.state.selected_image = None

    def toggle_like(self, message_id: UUID) -> bool:
        liked = self.state.toggle_like(message_id)
        self._render()
        return liked

    # Scrolling

    def toggle_scroll_lock(self):
        self.state.scroll_locked = not self.state.scroll_locked
        self._apply_scroll_lock()

    def _apply_scroll_lock(self):
        locked = self.state.scroll_locked
        self.renderer.set_manual_scroll_enabled(not locked)
        if locked:
            self.renderer.scroll_to_bottom()
        self._update_jump_to_bottom()

    def _update_jump_to_bottom(self):
        if self.state.scroll_locked:
            self.renderer.set_jump_to_bottom_visible(False)
            return
        at_bottom = self.renderer.viewport().is_at_bottom(JUMP_BUTTON_TOLERANCE)
        self.renderer.set_jump_to_bottom_visible(not at_bottom)

    def on_scroll(self):
        """Call when the user scrolls the message list."""
        if not self.state.scroll_locked:
            self._update_jump_to_bottom()

    def jump_to_bottom(self):
        self.renderer.scroll_to_bottom()
        self._update_jump_to_bottom()

    # Presence

    async def refresh_online_users(self):
        if self.state.room_id is None or self._closed:
            return
        try:
            users = await self.api.fetch_online_users(self.state.room_id)
        except ApiError as e:
            logger.warning(f"Error fetching online users: {e.message}")
            return
        self.state.online_users = users
        self.renderer.render_online_users(users)

    # Navigation

    async def logout(self):
        try:
            result = await self.api.logout()
        except ApiError as e:
            logger.error(f"Failed to logout: {e.message}")
            return
        self._navigate(result.redirect)
        await self.close()

    async def leave_room(self):
        self._navigate(ROOM_PICKER_PATH)
        await self.close()
