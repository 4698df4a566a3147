"""Push notifications for sign-in session changes."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

import structlog

from learntrack.realtime.feed import Subscription

logger = structlog.get_logger()


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


@dataclass(frozen=True)
class AuthSession:
    """A resolved sign-in session."""

    user_id: str
    session_id: str


@dataclass(frozen=True)
class AuthChange:
    event: AuthEvent
    session: AuthSession


AuthListener = Callable[[AuthChange], Awaitable[None]]


class AuthEventBus:
    """Delivers session changes to every registered listener."""

    def __init__(self):
        self._listeners: Dict[int, AuthListener] = {}
        self._ids = itertools.count(1)

    def on_auth_state_change(self, listener: AuthListener) -> Subscription:
        listener_id = next(self._ids)
        self._listeners[listener_id] = listener
        return Subscription(lambda: self._listeners.pop(listener_id, None))

    async def emit(self, event: AuthEvent, session: AuthSession) -> None:
        change = AuthChange(event, session)
        logger.info("Auth state changed", auth_event=event.value, user_id=session.user_id)
        for listener in list(self._listeners.values()):
            try:
                await listener(change)
            except Exception as e:
                logger.error("Auth listener failed", auth_event=event.value, error=str(e))

    def listener_count(self) -> int:
        return len(self._listeners)


_auth_bus: Optional[AuthEventBus] = None


def get_auth_bus() -> AuthEventBus:
    """Get the global auth event bus."""
    global _auth_bus
    if _auth_bus is None:
        _auth_bus = AuthEventBus()
    return _auth_bus


def reset_auth_bus() -> None:
    """Reset the auth event bus (for testing)."""
    global _auth_bus
    _auth_bus = None
