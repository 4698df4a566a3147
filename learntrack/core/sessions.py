"""Registry of open sign-in sessions.

A token is only honoured while its session id is registered, so signing
out takes effect before the token itself expires.
"""

import uuid

from aiocache import Cache

from learntrack.core.config import settings


class SessionRegistry:
    """Open sessions keyed by session id, expiring with the token."""
    
    def __init__(self, cache: Cache):
        self.cache = cache
    
    @staticmethod
    def _key(session_id: str) -> str:
        return f"session:{session_id}"
    
    @property
    def ttl(self) -> int:
        return settings.JWT_EXPIRATION_MINUTES * 60
    
    async def open(self, user_id: str) -> str:
        session_id = uuid.uuid4().hex
        await self.cache.set(self._key(session_id), user_id, ttl=self.ttl)
        return session_id
    
    async def touch(self, session_id: str, user_id: str):
        await self.cache.set(self._key(session_id), user_id, ttl=self.ttl)
    
    async def close(self, session_id: str) -> bool:
        return bool(await self.cache.delete(self._key(session_id)))
    
    async def is_active(self, session_id: str, user_id: str) -> bool:
        return await self.cache.get(self._key(session_id)) == user_id
