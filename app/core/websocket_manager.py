import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Channel:
    websocket: WebSocket
    session_id: str
    user_id: int
    loop: asyncio.AbstractEventLoop
    queue: "asyncio.Queue[Dict[str, Any]]" = field(default_factory=asyncio.Queue)


class RealtimeHub:
    """One-way push of session and participation events to open websockets.

    Publishing never blocks: events are handed to the event loop with
    ``call_soon_threadsafe`` so sync request handlers running in the
    threadpool can publish without awaiting delivery.
    """

    def __init__(self):
        self._lock = threading.Lock()
        # Store channels by session ID and index them by user
        self.session_channels: Dict[str, List[Channel]] = {}
        self.user_sessions: Dict[int, set] = {}

    async def connect(self, websocket: WebSocket, session_id: str, user_id: int) -> Channel:
        channel = Channel(
            websocket=websocket,
            session_id=session_id,
            user_id=user_id,
            loop=asyncio.get_running_loop(),
        )
        # Registered before the handshake completes so no event published
        # after accept() can miss the channel
        with self._lock:
            self.session_channels.setdefault(session_id, []).append(channel)
            self.user_sessions.setdefault(user_id, set()).add(session_id)
        try:
            await websocket.accept()
        except Exception:
            self.disconnect(channel)
            raise
        logger.info(f"User {user_id} connected for realtime events")
        return channel

    def disconnect(self, channel: Channel) -> None:
        with self._lock:
            channels = self.session_channels.get(channel.session_id, [])
            if channel in channels:
                channels.remove(channel)
            if not channels:
                self.session_channels.pop(channel.session_id, None)
                sessions = self.user_sessions.get(channel.user_id)
                if sessions is not None:
                    sessions.discard(channel.session_id)
                    if not sessions:
                        del self.user_sessions[channel.user_id]
        logger.info(f"User {channel.user_id} disconnected from realtime events")

    def publish_to_session(self, session_id: str, event: Dict[str, Any]) -> int:
        with self._lock:
            channels = list(self.session_channels.get(session_id, []))
        return self._dispatch(channels, event)

    def publish_to_user(self, user_id: int, event: Dict[str, Any]) -> int:
        with self._lock:
            channels = [
                channel
                for session_id in self.user_sessions.get(user_id, ())
                for channel in self.session_channels.get(session_id, [])
            ]
        return self._dispatch(channels, event)

    def handle_session_event(self, event: Dict[str, Any]) -> None:
        """Event sink for the session store."""
        if event.get("type") == "force_logout":
            self.publish_to_session(event["session_id"], {
                "type": "force_logout",
                "reason": event.get("reason"),
            })
            # Let the user's other devices know one of their sessions ended
            with self._lock:
                others = [
                    channel
                    for session_id in self.user_sessions.get(event["user_id"], ())
                    if session_id != event["session_id"]
                    for channel in self.session_channels.get(session_id, [])
                ]
            self._dispatch(others, {"type": "session_revoked", "reason": event.get("reason")})

    def connection_count(self) -> int:
        with self._lock:
            return sum(len(channels) for channels in self.session_channels.values())

    def _dispatch(self, channels: List[Channel], event: Dict[str, Any]) -> int:
        if not channels:
            return 0
        delivered = 0
        for channel in channels:
            try:
                channel.loop.call_soon_threadsafe(channel.queue.put_nowait, event)
            except RuntimeError:
                # Event loop already closed
                logger.debug(f"Dropping {event.get('type')} event for closed channel of user {channel.user_id}")
                continue
            delivered += 1
        return delivered

    async def pump(self, channel: Channel) -> None:
        """Forward queued events to the websocket until a force_logout closes it."""
        while True:
            event = await channel.queue.get()
            try:
                await channel.websocket.send_json(event)
            except Exception as e:
                logger.warning(f"Failed to send realtime event to user {channel.user_id}: {e}")
                return
            if event.get("type") == "force_logout":
                await channel.websocket.close(code=4001)
                return


# Global hub instance
realtime_hub = RealtimeHub()
