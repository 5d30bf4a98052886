"""Websocket handler pushing feed updates to connected users."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from activityhub.domain.errors import ActivityError
from activityhub.infrastructure.database import SessionLocal
from activityhub.infrastructure.notifications import feed_connections, parse_feed_subscription
from activityhub.interfaces.api.dependencies import resolve_current_user

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Stream new feed entries and unread counts to the authenticated user.

    ``feeds`` selects the feeds to follow (``notification``, ``activity`` or
    both, comma separated); notifications are streamed by default.
    """

    token = websocket.query_params.get("token")
    pipeline = getattr(websocket.app.state, "activity_pipeline", None)
    if not token or pipeline is None:
        await websocket.close(code=1008)
        return
    try:
        feeds = parse_feed_subscription(websocket.query_params.get("feeds"))
    except ValueError:
        await websocket.close(code=1008)
        return

    session = SessionLocal()
    try:
        user = resolve_current_user(token, session)
    except HTTPException:
        await websocket.close(code=1008)
        return
    finally:
        session.close()
    if not user.is_active:
        await websocket.close(code=1008)
        return

    try:
        state = await run_in_threadpool(pipeline.get_notification_state, user.id)
    except ActivityError as exc:
        logger.error("Cannot open feed stream for user %s: %s", user.id, exc)
        await websocket.close(code=1011)
        return

    await feed_connections.connect(user.id, websocket, feeds)
    try:
        await websocket.send_json(
            {
                "type": "init",
                "feeds": sorted(feeds),
                "unread": state.unread_count,
                "lastReadTime": state.last_read_time,
            }
        )
        while True:
            message = await websocket.receive_json()
            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
            elif message_type == "markNotificationsRead":
                await run_in_threadpool(pipeline.mark_notifications_read, user.id)
    except WebSocketDisconnect:
        pass
    finally:
        feed_connections.disconnect(user.id, websocket)


__all__ = ["router"]
