"""Session guard states, redirects and pushed auth changes."""

import pytest

from learntrack.realtime.auth_events import AuthEvent, AuthEventBus, AuthSession
from learntrack.realtime.session_guard import DEFAULT_PATH, LOGIN_PATH, GuardState, SessionGuard


class Roles:
    def __init__(self, **roles):
        self.roles = dict(roles)
        self.lookups = 0

    async def __call__(self, user_id):
        self.lookups += 1
        return self.roles.get(user_id)


@pytest.mark.asyncio
async def test_starts_loading():
    guard = SessionGuard(Roles())
    assert guard.state == GuardState.LOADING
    assert guard.redirect_to is None


@pytest.mark.asyncio
async def test_no_session_redirects_to_login():
    guard = SessionGuard(Roles())
    assert await guard.check(None) == GuardState.DENIED
    assert guard.redirect_to == LOGIN_PATH


@pytest.mark.asyncio
async def test_missing_profile_redirects_to_login():
    guard = SessionGuard(Roles())
    assert await guard.check(AuthSession("ghost", "s1")) == GuardState.DENIED
    assert guard.redirect_to == LOGIN_PATH


@pytest.mark.asyncio
async def test_learner_allowed_on_learner_view():
    guard = SessionGuard(Roles(u1="learner"))
    assert await guard.check(AuthSession("u1", "s1")) == GuardState.AUTHORIZED
    assert guard.redirect_to is None
    assert not guard.is_admin


@pytest.mark.asyncio
async def test_learner_on_admin_view_redirects_to_dashboard():
    guard = SessionGuard(Roles(u1="learner"), require_admin=True)
    assert await guard.check(AuthSession("u1", "s1")) == GuardState.DENIED
    assert guard.redirect_to == DEFAULT_PATH


@pytest.mark.asyncio
async def test_admin_on_admin_view():
    guard = SessionGuard(Roles(a1="admin"), require_admin=True)
    assert await guard.check(AuthSession("a1", "s1")) == GuardState.AUTHORIZED
    assert guard.is_admin


@pytest.mark.asyncio
async def test_sign_out_of_own_session_denies():
    bus = AuthEventBus()
    changes = []

    async def on_change(guard):
        changes.append((guard.state, guard.redirect_to))

    guard = SessionGuard(Roles(u1="learner"), on_change=on_change)
    await guard.check(AuthSession("u1", "s1"))
    guard.attach(bus)

    await bus.emit(AuthEvent.SIGNED_OUT, AuthSession("u1", "s1"))

    assert guard.state == GuardState.DENIED
    assert guard.redirect_to == LOGIN_PATH
    assert changes == [(GuardState.AUTHORIZED, None), (GuardState.DENIED, LOGIN_PATH)]


@pytest.mark.asyncio
async def test_other_sessions_are_ignored():
    bus = AuthEventBus()
    guard = SessionGuard(Roles(u1="learner", u2="learner"))
    await guard.check(AuthSession("u1", "s1"))
    guard.attach(bus)

    await bus.emit(AuthEvent.SIGNED_OUT, AuthSession("u1", "s2"))
    await bus.emit(AuthEvent.SIGNED_OUT, AuthSession("u2", "s3"))

    assert guard.state == GuardState.AUTHORIZED


@pytest.mark.asyncio
async def test_user_updated_rechecks_role():
    bus = AuthEventBus()
    roles = Roles(u1="admin")
    guard = SessionGuard(roles, require_admin=True)
    await guard.check(AuthSession("u1", "s1"))
    guard.attach(bus)

    roles.roles["u1"] = "learner"
    await bus.emit(AuthEvent.USER_UPDATED, AuthSession("u1", "s9"))

    assert guard.state == GuardState.DENIED
    assert guard.redirect_to == DEFAULT_PATH


@pytest.mark.asyncio
async def test_token_refresh_keeps_access_without_polling():
    bus = AuthEventBus()
    roles = Roles(u1="learner")
    guard = SessionGuard(roles)
    await guard.check(AuthSession("u1", "s1"))
    guard.attach(bus)
    lookups = roles.lookups

    await bus.emit(AuthEvent.TOKEN_REFRESHED, AuthSession("u1", "s1"))

    assert guard.state == GuardState.AUTHORIZED
    assert roles.lookups == lookups + 1


@pytest.mark.asyncio
async def test_detach_releases_listener():
    bus = AuthEventBus()
    guard = SessionGuard(Roles(u1="learner"))
    await guard.check(AuthSession("u1", "s1"))

    guard.attach(bus)
    assert bus.listener_count() == 1
    guard.detach()
    guard.detach()
    assert bus.listener_count() == 0

    await bus.emit(AuthEvent.SIGNED_OUT, AuthSession("u1", "s1"))
    assert guard.state == GuardState.AUTHORIZED


@pytest.mark.asyncio
async def test_failing_listener_does_not_stop_delivery():
    bus = AuthEventBus()
    received = []

    async def broken(change):
        raise RuntimeError("boom")

    async def working(change):
        received.append(change.event)

    bus.on_auth_state_change(broken)
    bus.on_auth_state_change(working)
    await bus.emit(AuthEvent.SIGNED_IN, AuthSession("u1", "s1"))

    assert received == [AuthEvent.SIGNED_IN]
