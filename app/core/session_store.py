# File: app/core/session_store.py
"""Server-side session records held in process memory.

The store is shared by all request handlers and the background sweep;
every mutation happens under one re-entrant lock. Readers must treat a
missing record exactly like an expired one: the sweep may evict a record
between two lookups.
"""
import dataclasses
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Set

from app.core.exceptions import SessionExpired, SessionNotFound
from app.core.security import generate_session_id, session_reference, utcnow
from app.models.admin_role import AdminLevel

logger = logging.getLogger(__name__)

EventSink = Callable[[Dict[str, Any]], None]


@dataclass(frozen=True)
class AdminSnapshot:
    """Copy of the user's AdminRole taken when the session was issued."""
    level: AdminLevel
    faculty_id: Optional[int] = None
    permissions: FrozenSet[str] = frozenset()


@dataclass
class SessionRecord:
    session_id: str
    credential_ref: str
    user_id: int
    admin: Optional[AdminSnapshot]
    permissions: FrozenSet[str]
    issued_at: datetime
    expires_at: datetime
    max_expires_at: datetime
    last_accessed: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device_info: Dict[str, Any] = field(default_factory=dict)
    remember_me: bool = False

    @property
    def is_admin(self) -> bool:
        return self.admin is not None

    @property
    def admin_level(self) -> Optional[AdminLevel]:
        return self.admin.level if self.admin else None

    @property
    def faculty_id(self) -> Optional[int]:
        # Only faculty-scoped ranks carry a meaningful faculty id
        if self.admin is None or self.admin.level == AdminLevel.SUPER_ADMIN:
            return None
        return self.admin.faculty_id

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "admin_level": self.admin_level.value if self.admin_level else None,
            "faculty_id": self.faculty_id,
            "permissions": sorted(self.permissions),
            "issued_at": self.issued_at,
            "expires_at": self.expires_at,
            "last_accessed": self.last_accessed,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "device_info": dict(self.device_info),
            "remember_me": self.remember_me,
        }


class InMemorySessionStore:
    def __init__(
        self,
        *,
        max_lifetime: timedelta,
        clock: Callable[[], datetime] = utcnow,
        event_sink: Optional[EventSink] = None,
    ):
        self.max_lifetime = max_lifetime
        self.clock = clock
        self.event_sink = event_sink
        self._lock = threading.RLock()
        self._sessions: Dict[str, SessionRecord] = {}
        self._by_user: Dict[int, Set[str]] = {}
        self._by_ref: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def create(
        self,
        user_id: int,
        admin_snapshot: Optional[AdminSnapshot],
        ttl: timedelta,
        *,
        permissions: Optional[FrozenSet[str]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        device_info: Optional[Dict[str, Any]] = None,
        remember_me: bool = False,
    ) -> SessionRecord:
        if ttl.total_seconds() <= 0:
            raise ValueError("Session ttl must be positive")

        now = self.clock()
        session_id = generate_session_id()
        max_expires_at = now + self.max_lifetime
        record = SessionRecord(
            session_id=session_id,
            credential_ref=session_reference(session_id),
            user_id=user_id,
            admin=admin_snapshot,
            permissions=frozenset(permissions or ()),
            issued_at=now,
            expires_at=min(now + ttl, max_expires_at),
            max_expires_at=max_expires_at,
            last_accessed=now,
            ip_address=ip_address,
            user_agent=user_agent,
            device_info=dict(device_info or {}),
            remember_me=remember_me,
        )

        with self._lock:
            self._sessions[session_id] = record
            self._by_user.setdefault(user_id, set()).add(session_id)
            self._by_ref[record.credential_ref] = session_id

        logger.info(f"Session created for user {user_id} (expires {record.expires_at.isoformat()})")
        self._emit({
            "type": "session_created",
            "user_id": user_id,
            "session_id": session_id,
            "expires_at": record.expires_at.isoformat(),
        })
        return dataclasses.replace(record)

    def get(self, session_id: str) -> SessionRecord:
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                raise SessionNotFound("Unknown session")

            now = self.clock()
            if record.is_expired(now):
                self._evict(session_id)
                raise SessionExpired("Session expired")

            record.last_accessed = now
            return dataclasses.replace(record)

    def get_by_credential_ref(self, credential_ref: str) -> SessionRecord:
        with self._lock:
            session_id = self._by_ref.get(credential_ref)
            if session_id is None:
                raise SessionNotFound("Unknown session reference")
            return self.get(session_id)

    def extend(self, session_id: str, ttl: timedelta) -> SessionRecord:
        """Push expiry forward, never beyond issued_at + max lifetime."""
        with self._lock:
            self.get(session_id)
            record = self._sessions[session_id]
            now = self.clock()
            record.expires_at = min(now + ttl, record.max_expires_at)
            record.last_accessed = now
            return dataclasses.replace(record)

    def refresh_admin_snapshot(
        self,
        session_id: str,
        admin_snapshot: Optional[AdminSnapshot],
        permissions: FrozenSet[str],
    ) -> SessionRecord:
        with self._lock:
            self.get(session_id)
            record = self._sessions[session_id]
            record.admin = admin_snapshot
            record.permissions = frozenset(permissions)
            return dataclasses.replace(record)

    def revoke(self, session_id: str, reason: Optional[str] = None) -> bool:
        with self._lock:
            record = self._evict(session_id)

        if record is None:
            return False

        logger.info(f"Session revoked for user {record.user_id}: {reason or 'logout'}")
        self._emit({
            "type": "force_logout",
            "user_id": record.user_id,
            "session_id": session_id,
            "reason": reason or "logout",
        })
        return True

    def revoke_all(self, user_id: int, reason: Optional[str] = None) -> List[str]:
        with self._lock:
            session_ids = list(self._by_user.get(user_id, ()))

        revoked = [sid for sid in session_ids if self.revoke(sid, reason=reason)]
        if revoked:
            logger.info(f"Revoked {len(revoked)} session(s) for user {user_id}")
        return revoked

    def sweep(self) -> int:
        now = self.clock()
        with self._lock:
            expired = [sid for sid, record in self._sessions.items() if record.is_expired(now)]
            for session_id in expired:
                self._evict(session_id)

        if expired:
            logger.info(f"Session sweep removed {len(expired)} expired session(s)")
        return len(expired)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def list_for_user(self, user_id: int) -> List[SessionRecord]:
        now = self.clock()
        with self._lock:
            return [
                dataclasses.replace(self._sessions[sid])
                for sid in self._by_user.get(user_id, ())
                if sid in self._sessions and not self._sessions[sid].is_expired(now)
            ]

    def list_active(self) -> List[SessionRecord]:
        now = self.clock()
        with self._lock:
            return [
                dataclasses.replace(record)
                for record in self._sessions.values()
                if not record.is_expired(now)
            ]

    def count_active(self) -> int:
        return len(self.list_active())

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    def _evict(self, session_id: str) -> Optional[SessionRecord]:
        record = self._sessions.pop(session_id, None)
        if record is None:
            return None
        self._by_ref.pop(record.credential_ref, None)
        user_sessions = self._by_user.get(record.user_id)
        if user_sessions is not None:
            user_sessions.discard(session_id)
            if not user_sessions:
                del self._by_user[record.user_id]
        return record

    def _emit(self, event: Dict[str, Any]) -> None:
        if self.event_sink is None:
            return
        try:
            self.event_sink(event)
        except Exception as e:
            # Delivery is best effort and must never fail the session operation
            logger.warning(f"Failed to publish session event {event.get('type')}: {e}")


def build_session_store() -> InMemorySessionStore:
    from app.core.config import settings
    from app.core.websocket_manager import realtime_hub

    return InMemorySessionStore(
        max_lifetime=timedelta(days=settings.SESSION_MAX_LIFETIME_DAYS),
        event_sink=realtime_hub.handle_session_event if settings.ENABLE_WEBSOCKET_NOTIFICATIONS else None,
    )


# Global store shared by request handlers and the sweep job
session_store = build_session_store()
