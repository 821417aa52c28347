"""
Log in, enter a room and follow it from the terminal.

    python scripts/watch_room.py alice 1234 lobby 1234 [--create]

Lines typed on stdin are sent as messages.
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add the project root directory to the Python path
project_root = Path(__file__).resolve().parent.parent
sys.path.append(str(project_root))

from pinchat.client.api import ApiError, ChatApiClient
from pinchat.client.controller import ChatController
from pinchat.client.reconcile import Viewport

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class TerminalRenderer:
    """Prints messages it has not printed before; a terminal is always at the bottom."""

    def __init__(self):
        self.printed = set()
        self.reported_failures = set()
        self.online = None
        self.done = asyncio.Event()

    def viewport(self):
        return Viewport()

    def render_messages(self, messages, pending):
        if not messages and not pending and not self.printed:
            print("No messages yet.")
        for msg in messages:
            if msg.id in self.printed:
                continue
            self.printed.add(msg.id)
            reply = f" (re: {msg.reply_to.username}: {msg.reply_to.content[:30]})" if msg.reply_to else ""
            body = msg.content or "[image]"
            print(f"[{msg.timestamp:%H:%M}] {msg.username}{reply}: {body}")
        for item in pending:
            if item.failed and item.local_id not in self.reported_failures:
                self.reported_failures.add(item.local_id)
                print(f"  ! not sent ({item.error}): {item.draft.content}")

    def scroll_to_bottom(self):
        pass

    def set_manual_scroll_enabled(self, enabled):
        pass

    def set_jump_to_bottom_visible(self, visible):
        pass

    def render_online_users(self, users):
        names = ", ".join(u.username for u in users) or "No one else is online."
        if names != self.online:
            self.online = names
            print(f"-- online: {names}")

    def navigate(self, path):
        logger.info(f"Leaving chat, navigating to {path}")
        self.done.set()


async def read_lines(controller: ChatController, renderer: TerminalRenderer):
    loop = asyncio.get_running_loop()
    while not renderer.done.is_set():
        line = await loop.run_in_executor(None, sys.stdin.readline)
        if not line:
            await controller.leave_room()
            return
        controller.send(line)


async def main(args):
    async with ChatApiClient(args.base_url) as api:
        try:
            await api.login(args.username, args.pin)
        except ApiError as e:
            if e.status_code != 401:
                raise
            await api.register(args.username, args.pin)

        if args.create:
            await api.create_room(args.room, args.room_pin)
        else:
            await api.join_room(args.room, args.room_pin)

        renderer = TerminalRenderer()
        async with ChatController(api, renderer) as controller:
            if not await controller.start():
                return
            await read_lines(controller, renderer)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("username")
    parser.add_argument("pin")
    parser.add_argument("room")
    parser.add_argument("room_pin")
    parser.add_argument("--create", action="store_true", help="create the room instead of joining it")
    parser.add_argument("--base-url", default=None)
    try:
        asyncio.run(main(parser.parse_args()))
    except ApiError as e:
        logger.error(f"Request failed ({e.status_code}): {e.message}")
    except KeyboardInterrupt:
        pass
