"""Chat room lifecycle.

A room holds the time-ordered message list for one scope and keeps it in
step with the change feed. Every feed event triggers a full refetch; the
list is never patched incrementally. Responses are applied only when they
are newer than the last applied one and belong to the current scope.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

from learntrack.core.exceptions import AppError, ValidationFailed
from learntrack.models.profile import Level
from learntrack.realtime.feed import ChangeEvent, ChangeFeed, Subscription

logger = structlog.get_logger()

CHAT_TABLE = "chat_messages"


@dataclass(frozen=True)
class ChatScope:
    """Partition key of a room: a lesson id or a level classroom."""

    lesson_id: Optional[str] = None
    level: Optional[Level] = None

    def __post_init__(self):
        # Blank keys count as missing
        for name in ("lesson_id", "level"):
            value = getattr(self, name)
            if isinstance(value, str) and not isinstance(value, Level):
                object.__setattr__(self, name, value.strip() or None)
        if (self.lesson_id is None) == (self.level is None):
            raise ValidationFailed("Exactly one of lesson_id or level must be given")
        if self.level is not None and not isinstance(self.level, Level):
            object.__setattr__(self, "level", Level(self.level))

    @property
    def filters(self) -> Dict[str, str]:
        if self.lesson_id is not None:
            return {"lesson_id": self.lesson_id}
        return {"level_classroom": self.level.value}

    def describe(self) -> str:
        key, value = next(iter(self.filters.items()))
        return f"{key}={value}"


@dataclass(frozen=True)
class MessageView:
    id: int
    user_id: str
    message: str
    created_at: datetime
    lesson_id: Optional[str] = None
    level_classroom: Optional[str] = None
    author_name: Optional[str] = None
    author_avatar: Optional[str] = None


class MessageStore(ABC):
    """Storage the room reads from and writes to."""

    @abstractmethod
    async def fetch(self, scope: ChatScope) -> List[MessageView]:
        """All messages in scope, oldest first."""

    @abstractmethod
    async def insert(self, scope: ChatScope, user_id: str, body: str) -> MessageView:
        """Store a message under the scope's filter field."""

    @abstractmethod
    async def delete(self, message_id: int, user_id: str) -> None:
        """Delete a message the caller authored."""


UpdateHandler = Callable[["ChatRoom"], Awaitable[None]]
NotifyHandler = Callable[[Dict[str, str]], Awaitable[None]]


class ChatRoom:
    """Locally consistent view of one scope's messages."""

    def __init__(
        self,
        scope: ChatScope,
        store: MessageStore,
        feed: ChangeFeed,
        user_id: str,
        on_update: Optional[UpdateHandler] = None,
        on_notify: Optional[NotifyHandler] = None,
    ):
        self.scope = scope
        self.store = store
        self.feed = feed
        self.user_id = user_id
        self.on_update = on_update
        self.on_notify = on_notify
        self.messages: List[MessageView] = []
        self._subscription: Optional[Subscription] = None
        self._request_seq = 0
        self._applied_seq = 0
        self._generation = 0

    @property
    def mounted(self) -> bool:
        return self._subscription is not None and self._subscription.active

    @property
    def focus_message_id(self) -> Optional[int]:
        """Newest message, where the view scrolls after every update."""
        return self.messages[-1].id if self.messages else None

    def can_delete(self, message: MessageView) -> bool:
        return message.user_id == self.user_id

    async def mount(self) -> None:
        self._release()
        self._subscription = self.feed.subscribe(CHAT_TABLE, self.scope.filters, self._on_change)
        logger.info("Chat room mounted", scope=self.scope.describe(), user_id=self.user_id)
        await self.refresh()

    async def change_scope(self, scope: ChatScope) -> None:
        self._release()
        self._generation += 1
        self.scope = scope
        self.messages = []
        await self.mount()

    def teardown(self) -> None:
        if self.mounted:
            logger.info("Chat room closed", scope=self.scope.describe(), user_id=self.user_id)
        self._release()

    async def refresh(self) -> bool:
        """Refetch the whole scope. Returns whether the result was applied."""
        self._request_seq += 1
        seq = self._request_seq
        generation = self._generation
        scope = self.scope

        try:
            rows = await self.store.fetch(scope)
        except Exception as e:
            logger.error("Failed to fetch messages", scope=scope.describe(), error=str(e))
            await self._notify("Error", "Failed to load messages", "destructive")
            return False

        if generation != self._generation or seq < self._applied_seq:
            logger.debug("Discarded stale fetch", scope=scope.describe(), seq=seq)
            return False

        self._applied_seq = seq
        self.messages = sorted(rows, key=lambda m: (m.created_at, m.id))
        if self.on_update is not None:
            await self.on_update(self)
        return True

    async def send(self, text: str) -> MessageView:
        """Send a message. Raises without touching the store on blank input."""
        body = (text or "").strip()
        if not body:
            error = ValidationFailed("Message cannot be empty")
            await self._emit(error.notification())
            raise error

        try:
            message = await self.store.insert(self.scope, self.user_id, body)
        except AppError as e:
            await self._emit(e.notification())
            raise
        except Exception as e:
            logger.error("Failed to send message", scope=self.scope.describe(), error=str(e))
            error = AppError("Failed to send message")
            await self._emit(error.notification())
            raise error from e

        await self._notify("Sent", "Your message was sent")
        return message

    async def delete(self, message_id: int) -> bool:
        """Ask the store to delete a message; the list follows via the feed."""
        try:
            await self.store.delete(message_id, self.user_id)
        except AppError as e:
            await self._emit(e.notification())
            return False
        except Exception as e:
            logger.error("Failed to delete message", message_id=message_id, error=str(e))
            await self._notify("Error", "Failed to delete message", "destructive")
            return False

        await self._notify("Deleted", "Message deleted")
        return True

    def snapshot(self) -> Dict[str, Any]:
        """Serialized list as seen by this room's user."""
        return {
            "type": "messages",
            "scope": self.scope.filters,
            "focus_message_id": self.focus_message_id,
            "messages": [serialize_message(m, self.can_delete(m)) for m in self.messages],
        }

    async def _on_change(self, event: ChangeEvent) -> None:
        await self.refresh()

    def _release(self) -> None:
        if self._subscription is not None:
            self._subscription.release()
            self._subscription = None

    async def _notify(self, title: str, description: str, variant: str = "default") -> None:
        await self._emit({"title": title, "description": description, "variant": variant})

    async def _emit(self, notification: Dict[str, str]) -> None:
        if self.on_notify is not None:
            await self.on_notify(notification)


def serialize_message(message: MessageView, can_delete: bool) -> Dict[str, Any]:
    return {
        "id": message.id,
        "user_id": message.user_id,
        "message": message.message,
        "created_at": message.created_at.isoformat(),
        "lesson_id": message.lesson_id,
        "level_classroom": message.level_classroom,
        "author": {
            "full_name": message.author_name,
            "avatar_url": message.author_avatar,
        },
        "can_delete": can_delete,
    }
