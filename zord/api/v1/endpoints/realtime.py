"""
Realtime Endpoint

WS /ws/notifications?token=<access_token>

The server sends a `connected` frame, then a `notification` frame for
every notification created for the user while the socket is open.
Clients may send "ping" to receive a `pong` frame.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from zord.api.deps import get_connection_manager, get_current_user_ws
from zord.db.database import get_db
from zord.services.websocket_manager import ConnectionManager, EventTypes, RealtimeEvent

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


@router.websocket("/ws/notifications")
async def notifications_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    connections: ConnectionManager = Depends(get_connection_manager),
):
    user = await get_current_user_ws(token, db)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id = user.id
    # Release the connection; the socket may stay open for hours
    await db.close()

    await connections.connect(websocket, user_id)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            # Binary frames are ignored
            data = message.get("text")
            if data is not None and data.strip().lower() == "ping":
                await websocket.send_text(RealtimeEvent(type=EventTypes.PONG).to_json())
    except WebSocketDisconnect:
        logger.debug(f"Client closed notification socket for user {user_id}")
    finally:
        connections.disconnect(websocket)
