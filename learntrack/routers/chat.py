"""Chat endpoints: plain HTTP and a live WebSocket room."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState
import structlog

from learntrack.core.dependencies import CurrentUser, get_current_user, lookup_role, resolve_session
from learntrack.core.exceptions import AppError, notification
from learntrack.models.profile import Level
from learntrack.realtime.auth_events import get_auth_bus
from learntrack.realtime.chat_room import ChatRoom, ChatScope, serialize_message
from learntrack.realtime.feed import get_change_feed
from learntrack.realtime.message_store import SqlMessageStore
from learntrack.realtime.session_guard import GuardState, SessionGuard
from learntrack.schemas.engagement import ChatMessageCreate, ChatMessageList, ChatMessageResult

logger = structlog.get_logger()
router = APIRouter()

WS_POLICY_VIOLATION = 1008
WS_UNAUTHORIZED = 4401


def get_message_store() -> SqlMessageStore:
    return SqlMessageStore(get_change_feed())


@router.get("/messages", response_model=ChatMessageList)
async def list_messages(
    lesson_id: Optional[str] = Query(None),
    level: Optional[Level] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    store: SqlMessageStore = Depends(get_message_store)
):
    """All messages in a scope, oldest first."""
    scope = ChatScope(lesson_id=lesson_id, level=level)
    messages = await store.fetch(scope)
    return {
        "focus_message_id": messages[-1].id if messages else None,
        "messages": [serialize_message(m, m.user_id == current_user.user_id) for m in messages],
    }


@router.post("/messages", response_model=ChatMessageResult, status_code=201)
async def post_message(
    payload: ChatMessageCreate,
    current_user: CurrentUser = Depends(get_current_user),
    store: SqlMessageStore = Depends(get_message_store)
):
    scope = ChatScope(lesson_id=payload.lesson_id, level=payload.level)
    room = ChatRoom(scope, store, get_change_feed(), current_user.user_id)
    message = await room.send(payload.message)
    return {
        "message": serialize_message(message, True),
        "notification": notification("Sent", "Your message was sent"),
    }


@router.delete("/messages/{message_id}")
async def delete_message(
    message_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    store: SqlMessageStore = Depends(get_message_store)
):
    """Delete one of the caller's messages."""
    await store.delete(message_id, current_user.user_id)
    return {"notification": notification("Deleted", "Message deleted")}


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket,
    token: Optional[str] = None,
    lesson_id: Optional[str] = None,
    level: Optional[str] = None,
):
    """Live room for one scope.
    
    Client messages: ``{"action": "send", "message": ...}``,
    ``{"action": "delete", "id": ...}`` and
    ``{"action": "scope", "lesson_id": ...}`` / ``{"action": "scope", "level": ...}``.
    Server messages are ``messages`` snapshots, ``notification`` toasts and a
    final ``denied`` when the session ends.
    """
    await websocket.accept()
    
    async def send(payload: dict):
        if websocket.application_state == WebSocketState.CONNECTED:
            await websocket.send_json(payload)
    
    async def notify(note: dict):
        await send({"type": "notification", **note})
    
    guard = SessionGuard(lookup_role)
    await guard.check(await resolve_session(token))
    if guard.state != GuardState.AUTHORIZED:
        await send({"type": "denied", "redirect_to": guard.redirect_to})
        await websocket.close(code=WS_UNAUTHORIZED)
        return
    
    try:
        scope = ChatScope(lesson_id=lesson_id, level=level)
    except (AppError, ValueError) as e:
        await notify(AppError(str(e)).notification())
        await websocket.close(code=WS_POLICY_VIOLATION)
        return
    
    async def push(room: ChatRoom):
        await send(room.snapshot())
    
    room = ChatRoom(
        scope,
        get_message_store(),
        get_change_feed(),
        guard.session.user_id,
        on_update=push,
        on_notify=notify
    )
    
    async def on_guard_change(changed: SessionGuard):
        if changed.state == GuardState.DENIED:
            room.teardown()
            await send({"type": "denied", "redirect_to": changed.redirect_to})
            if websocket.application_state == WebSocketState.CONNECTED:
                await websocket.close(code=WS_UNAUTHORIZED)
    
    guard.on_change = on_guard_change
    guard.attach(get_auth_bus())
    
    try:
        await room.mount()
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                data = None
            if not isinstance(data, dict):
                await notify(AppError("Invalid request: expected a JSON object").notification())
                continue
            action = data.get("action")
            try:
                if action == "send":
                    await room.send(data.get("message", ""))
                elif action == "delete":
                    await room.delete(int(data.get("id")))
                elif action == "scope":
                    try:
                        new_scope = ChatScope(lesson_id=data.get("lesson_id"), level=data.get("level"))
                    except AppError as e:
                        await notify(e.notification())
                        continue
                    await room.change_scope(new_scope)
                else:
                    await notify(AppError(f"Unknown action: {action}").notification())
            except AppError:
                # Already reported to the client by the room
                continue
            except (TypeError, ValueError) as e:
                await notify(AppError(f"Invalid request: {e}").notification())
    except WebSocketDisconnect:
        logger.info("Chat socket disconnected", scope=room.scope.describe(), user_id=room.user_id)
    finally:
        room.teardown()
        guard.detach()
