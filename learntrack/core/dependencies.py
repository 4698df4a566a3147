"""Shared dependencies for the learner tracking service."""

from dataclasses import dataclass
from typing import Optional

from aiocache import Cache
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
import structlog

from learntrack.core.config import settings
from learntrack.core.database import AsyncSessionLocal
from learntrack.core.exceptions import AccessDenied, AuthenticationRequired
from learntrack.core.security import decode_access_token
from learntrack.core.sessions import SessionRegistry
from learntrack.models.profile import Profile, Role
from learntrack.realtime.auth_events import AuthSession
from learntrack.realtime.session_guard import LOGIN_PATH, GuardState, SessionGuard

logger = structlog.get_logger()

# Global instances
_cache: Optional[Cache] = None

# Security
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """Caller identity after the session guard authorized it."""
    
    user_id: str
    session_id: str
    role: str
    
    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


async def get_cache() -> Cache:
    """Get cache instance, falling back to memory when Redis is down."""
    global _cache
    
    if _cache is None:
        try:
            _cache = Cache.from_url(settings.REDIS_URL)
            await _cache.exists("test")  # Test connection
            logger.info("Cache connection established", url=settings.REDIS_URL)
        except Exception as e:
            logger.warning(f"Redis cache not available: {e}")
            _cache = Cache(Cache.MEMORY)
    
    return _cache


def reset_cache():
    """Drop the cache instance (for testing)."""
    global _cache
    _cache = None


async def get_session_registry() -> SessionRegistry:
    return SessionRegistry(await get_cache())


async def lookup_role(user_id: str) -> Optional[str]:
    """Fetch the role stored on the caller's profile."""
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(Profile.role).where(Profile.id == user_id))
        return result.scalar_one_or_none()


async def resolve_session(token: Optional[str]) -> Optional[AuthSession]:
    """Resolve a bearer token to an open session, or None."""
    if not token:
        return None
    
    payload = decode_access_token(token)
    if payload is None:
        return None
    
    registry = await get_session_registry()
    if not await registry.is_active(payload["sid"], payload["sub"]):
        return None
    
    return AuthSession(user_id=payload["sub"], session_id=payload["sid"])


def raise_for_guard(guard: SessionGuard):
    """Translate a denied guard into the matching error."""
    if guard.state != GuardState.DENIED:
        return
    extra = {"redirect_to": guard.redirect_to}
    if guard.redirect_to == LOGIN_PATH:
        raise AuthenticationRequired("Invalid authentication credentials", extra=extra)
    raise AccessDenied("Administrator access required", extra=extra)


def _guarded(require_admin: bool):
    async def dependency(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
    ) -> CurrentUser:
        token = credentials.credentials if credentials else None
        session = await resolve_session(token)
        
        guard = SessionGuard(lookup_role, require_admin=require_admin)
        await guard.check(session)
        raise_for_guard(guard)
        
        return CurrentUser(
            user_id=guard.session.user_id,
            session_id=guard.session.session_id,
            role=guard.role
        )
    
    return dependency


get_current_user = _guarded(require_admin=False)
require_admin = _guarded(require_admin=True)
