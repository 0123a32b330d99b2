"""
Chat view: the message list, the user list and the send box.

The view loads the latest page of messages on mount and afterwards keeps
itself current from pushed events. Records are merged by id, so a message
received both as the ``create`` result and as a ``created`` event shows up
once.
"""

from typing import Dict, List, Optional
import logging

from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text

from ..core.client.errors import ChatError
from ..core.client.events import RecordEvent, ServiceEvent
from ..core.models import Message, RecordId, User
from .base import View

logger = logging.getLogger(__name__)


class ChatView(View):
    title = "Chat"

    def __init__(self, context, match=None):
        super().__init__(context, match)
        self.messages: List[Message] = []
        self.users: Dict[RecordId, User] = {}
        self.total_messages = 0
        self.loading = False
        self._subscriptions = (
            ("messages", ServiceEvent.CREATED, self._on_message_created),
            ("messages", ServiceEvent.UPDATED, self._on_message_changed),
            ("messages", ServiceEvent.PATCHED, self._on_message_changed),
            ("messages", ServiceEvent.REMOVED, self._on_message_removed),
            ("users", ServiceEvent.CREATED, self._on_user_created),
        )

    async def mount(self) -> None:
        client = self.context.client
        # Subscribe first so nothing sent while loading is missed
        for service, event, handler in self._subscriptions:
            client.service(service).on(event, handler)
        await super().mount()
        await self.load()

    async def unmount(self) -> None:
        client = self.context.client
        for service, event, handler in self._subscriptions:
            client.service(service).off(event, handler)
        await super().unmount()

    async def load(self) -> None:
        """Load the latest messages and the user list."""
        client = self.context.client
        self.loading = True
        self.invalidate()
        try:
            page = await client.service("messages").find({
                "$sort": {"createdAt": -1},
                "$limit": self.context.settings.message_page_size,
            })
            users = await client.service("users").find()
        except ChatError as e:
            logger.debug(f"Loading chat failed: {e}")
            self.context.notifier.error(e)
            return
        finally:
            self.loading = False
            self.invalidate()

        self.total_messages = page.total
        for user in users.data:
            self.users[user.id] = user
        # Newest first from the server; shown oldest first
        loaded = list(reversed(page.data))
        known = {message.id for message in loaded}
        # Keep anything pushed while the page was loading
        self.messages = loaded + [m for m in self.messages if m.id not in known]
        for message in self.messages:
            if message.user is not None:
                self.users.setdefault(message.user.id, message.user)

    async def send(self, text: str) -> Optional[Message]:
        """Send a message. Empty text is rejected without calling the server."""
        text = text.strip()
        if not text:
            self.context.notifier.info("Type a message first")
            return None
        try:
            message = await self.context.client.service("messages").create({"text": text})
        except ChatError as e:
            self.context.notifier.error(e)
            return None
        self._merge(message)
        return message

    def author_of(self, message: Message) -> Optional[User]:
        return message.user or self.users.get(message.user_id)

    async def resolve_author(self, message: Message) -> Optional[User]:
        """Find the author of a message, fetching unknown users."""
        author = self.author_of(message)
        if author is not None:
            return author
        try:
            author = await self.context.client.service("users").get(message.user_id)
        except ChatError as e:
            logger.warning(f"Cannot resolve author {message.user_id}: {e}")
            return None
        self.users[author.id] = author
        self.invalidate()
        return author

    def _merge(self, message: Message) -> None:
        for index, existing in enumerate(self.messages):
            if existing.id == message.id:
                self.messages[index] = message
                break
        else:
            self.messages.append(message)
            self.total_messages += 1
        if message.user is not None:
            self.users[message.user.id] = message.user
        self.invalidate()

    async def _on_message_created(self, event: RecordEvent[Message]) -> None:
        self._merge(event.record)
        await self.resolve_author(event.record)

    def _on_message_changed(self, event: RecordEvent[Message]) -> None:
        if any(m.id == event.record.id for m in self.messages):
            self._merge(event.record)

    def _on_message_removed(self, event: RecordEvent[Message]) -> None:
        before = len(self.messages)
        self.messages = [m for m in self.messages if m.id != event.record.id]
        if len(self.messages) != before:
            self.total_messages = max(0, self.total_messages - 1)
            self.invalidate()

    def _on_user_created(self, event: RecordEvent[User]) -> None:
        self.users[event.record.id] = event.record
        self.invalidate()

    async def handle_input(self, text: str) -> None:
        await self.send(text)

    def render(self) -> RenderableType:
        if self.loading and not self.messages:
            return Text("Loading messages...", style="dim")

        table = Table(show_header=False, box=None, expand=True, padding=(0, 1))
        table.add_column(style="dim", no_wrap=True)
        table.add_column(style="bold cyan", no_wrap=True)
        table.add_column(ratio=1)
        for message in self.messages:
            author = self.author_of(message)
            name = author.display_name if author else f"user {message.user_id}"
            stamp = message.created_at.strftime("%H:%M") if message.created_at else ""
            table.add_row(stamp, name, message.text)

        if not self.messages:
            table.add_row("", "", Text("No messages yet. Say hello!", style="dim"))

        footer = Text(
            f"{len(self.messages)} of {self.total_messages} messages, {len(self.users)} users",
            style="dim",
        )
        return Group(table, footer)

    def hints(self) -> List[str]:
        return ["type a message and press enter", ":refresh"]
