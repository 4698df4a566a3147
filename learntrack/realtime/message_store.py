"""SQL-backed message store that publishes committed changes."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker
import structlog

from learntrack.core.database import AsyncSessionLocal
from learntrack.core.exceptions import AccessDenied, NotFound
from learntrack.models.engagement import ChatMessage
from learntrack.models.profile import Profile
from learntrack.realtime.chat_room import CHAT_TABLE, ChatScope, MessageStore, MessageView
from learntrack.realtime.feed import ChangeEvent, ChangeFeed, ChangeType

logger = structlog.get_logger()


def _row(message: ChatMessage) -> dict:
    return {
        "id": message.id,
        "user_id": message.user_id,
        "lesson_id": message.lesson_id,
        "level_classroom": message.level_classroom,
    }


def _view(message: ChatMessage, author_name: Optional[str], author_avatar: Optional[str]) -> MessageView:
    return MessageView(
        id=message.id,
        user_id=message.user_id,
        message=message.message,
        created_at=message.created_at,
        lesson_id=message.lesson_id,
        level_classroom=message.level_classroom,
        author_name=author_name,
        author_avatar=author_avatar,
    )


class SqlMessageStore(MessageStore):
    """Chat rows in the database, published to the feed after each commit."""

    def __init__(self, feed: ChangeFeed, session_factory: async_sessionmaker = AsyncSessionLocal):
        self.feed = feed
        self.session_factory = session_factory

    async def fetch(self, scope: ChatScope) -> List[MessageView]:
        query = (
            select(ChatMessage, Profile.full_name, Profile.avatar_url)
            .join(Profile, Profile.id == ChatMessage.user_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
        )
        for column, value in scope.filters.items():
            query = query.where(getattr(ChatMessage, column) == value)

        async with self.session_factory() as db:
            result = await db.execute(query)
            return [
                _view(message, full_name, avatar_url)
                for message, full_name, avatar_url in result.all()
            ]

    async def insert(self, scope: ChatScope, user_id: str, body: str) -> MessageView:
        async with self.session_factory() as db:
            message = ChatMessage(user_id=user_id, message=body, **scope.filters)
            db.add(message)
            try:
                await db.commit()
            except Exception:
                await db.rollback()
                raise
            await db.refresh(message)
            author = await db.get(Profile, user_id)

        logger.info("Chat message stored", message_id=message.id, scope=scope.describe(), user_id=user_id)
        self.feed.publish(ChangeEvent(CHAT_TABLE, ChangeType.INSERT, new=_row(message)))

        return _view(
            message,
            author.full_name if author else None,
            author.avatar_url if author else None,
        )

    async def delete(self, message_id: int, user_id: str) -> None:
        async with self.session_factory() as db:
            message = await db.get(ChatMessage, message_id)
            if message is None:
                raise NotFound("Message not found")
            if message.user_id != user_id:
                raise AccessDenied("Only the author can delete this message")

            old = _row(message)
            await db.delete(message)
            try:
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info("Chat message deleted", message_id=message_id, user_id=user_id)
        self.feed.publish(ChangeEvent(CHAT_TABLE, ChangeType.DELETE, old=old))
