# File: app/api/v1/endpoints/realtime.py
import asyncio
from typing import Optional
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from app.api import deps
from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.core.session_store import InMemorySessionStore
from app.core.websocket_manager import realtime_hub
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


async def _receive_until_closed(websocket: WebSocket) -> None:
    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        return


@router.websocket("/ws/events")
async def events_websocket(
    websocket: WebSocket,
    session_id: Optional[str] = Query(None),
    store: InMemorySessionStore = Depends(deps.get_session_store),
):
    """Push channel for force_logout, session_revoked and participation_updated events"""
    session_id = session_id or websocket.cookies.get(settings.SESSION_COOKIE_NAME)
    try:
        if not session_id:
            raise AuthenticationError("no session id supplied")
        session = store.get(session_id)
    except AuthenticationError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    channel = await realtime_hub.connect(websocket, session.session_id, session.user_id)
    receiver = asyncio.create_task(_receive_until_closed(websocket))
    sender = asyncio.create_task(realtime_hub.pump(channel))
    try:
        await asyncio.wait({receiver, sender}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (receiver, sender):
            task.cancel()
        realtime_hub.disconnect(channel)
