"""
WebSocket router for real-time notifications.

Authenticates via ?token=... or the access_token cookie, then keeps the
connection registered so newly inserted notifications are pushed live.
"""

from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from proposal_api.core.deps import COOKIE_NAME
from proposal_api.core.security import decode_access_token
from proposal_api.core.websocket import manager

router = APIRouter(prefix="/ws", tags=["WebSocket"])


def _user_id_from_token(token: str | None) -> UUID | None:
    if not token:
        return None
    try:
        return UUID(decode_access_token(token)["sub"])
    except Exception:
        return None


@router.websocket("/notifications")
async def websocket_notifications(
    websocket: WebSocket,
    token: str | None = Query(None),
):
    """
    WebSocket endpoint for real-time notifications.

    Messages sent by the server: {"type": "notification", "data": {...}}.
    A "ping" text frame is answered with "pong".
    """
    if token:
        user_id = _user_id_from_token(token)
        if not user_id:
            await websocket.close(code=4001, reason="Invalid token")
            return
    else:
        user_id = _user_id_from_token(websocket.cookies.get(COOKIE_NAME))

    if not user_id:
        await websocket.close(code=4001, reason="Authentication required")
        return

    await manager.connect(websocket, user_id)
    try:
        while True:
            try:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text("pong")
            except WebSocketDisconnect:
                break
    finally:
        await manager.disconnect(websocket, user_id)
