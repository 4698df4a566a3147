"""Access guard for protected views.

The guard starts in ``loading``, decides on the initial session check and
afterwards only moves in response to pushed auth events for its own
session. It never polls.
"""

from __future__ import annotations

from enum import Enum
from typing import Awaitable, Callable, Optional

import structlog

from learntrack.models.profile import Role
from learntrack.realtime.auth_events import AuthChange, AuthEvent, AuthEventBus, AuthSession
from learntrack.realtime.feed import Subscription

logger = structlog.get_logger()

LOGIN_PATH = "/auth"
DEFAULT_PATH = "/dashboard"

RoleLookup = Callable[[str], Awaitable[Optional[str]]]


class GuardState(str, Enum):
    LOADING = "loading"
    AUTHORIZED = "authorized"
    DENIED = "denied"


class SessionGuard:
    """Decides whether a session may see a protected view."""

    def __init__(
        self,
        role_lookup: RoleLookup,
        require_admin: bool = False,
        on_change: Optional[Callable[["SessionGuard"], Awaitable[None]]] = None,
    ):
        self._role_lookup = role_lookup
        self.require_admin = require_admin
        self.on_change = on_change
        self.state = GuardState.LOADING
        self.session: Optional[AuthSession] = None
        self.role: Optional[str] = None
        self.redirect_to: Optional[str] = None
        self._subscription: Optional[Subscription] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    async def check(self, session: Optional[AuthSession]) -> GuardState:
        """Initial session check."""
        return await self._resolve(session)

    async def on_auth_state_change(self, change: AuthChange) -> None:
        if self.session is None or change.session.user_id != self.session.user_id:
            return

        if change.event == AuthEvent.SIGNED_OUT:
            if change.session.session_id == self.session.session_id:
                await self._resolve(None)
        elif change.event == AuthEvent.TOKEN_REFRESHED:
            if change.session.session_id == self.session.session_id:
                await self._resolve(self.session)
        elif change.event == AuthEvent.USER_UPDATED:
            await self._resolve(self.session)

    def attach(self, bus: AuthEventBus) -> None:
        self.detach()
        self._subscription = bus.on_auth_state_change(self.on_auth_state_change)

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.release()
            self._subscription = None

    async def _resolve(self, session: Optional[AuthSession]) -> GuardState:
        if session is None:
            self.session = None
            self.role = None
            await self._set(GuardState.DENIED, LOGIN_PATH)
            return self.state

        self.session = session
        self.role = await self._role_lookup(session.user_id)
        if self.role is None:
            await self._set(GuardState.DENIED, LOGIN_PATH)
        elif self.require_admin and not self.is_admin:
            await self._set(GuardState.DENIED, DEFAULT_PATH)
        else:
            await self._set(GuardState.AUTHORIZED, None)
        return self.state

    async def _set(self, state: GuardState, redirect_to: Optional[str]) -> None:
        changed = state != self.state
        self.state = state
        self.redirect_to = redirect_to
        if changed:
            logger.debug(
                "Guard state changed",
                state=state.value,
                redirect_to=redirect_to,
                user_id=self.session.user_id if self.session else None
            )
            if self.on_change is not None:
                await self.on_change(self)
