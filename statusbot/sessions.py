from __future__ import annotations

import logging
import time
from dataclasses import fields, replace
from typing import Any, Callable

from .models import Session, SessionStep

logger = logging.getLogger(__name__)

_MUTABLE_FIELDS = {f.name for f in fields(Session)} - {"owner_id", "started_at", "last_activity"}


class SessionStore:
    """In-process store of guided report sessions, one per owner.

    Sessions idle for longer than ``ttl_seconds`` are treated as gone. All
    methods are synchronous; callers on the event loop never interleave two
    writes for the same owner. Nothing survives a restart.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[int, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _expired(self, session: Session, now: float) -> bool:
        return now - session.last_activity > self.ttl_seconds

    def start(self, owner_id: int) -> Session:
        now = self._clock()
        session = Session(
            owner_id=owner_id,
            step=SessionStep.AWAITING_LINK,
            started_at=now,
            last_activity=now,
        )
        self._sessions[owner_id] = session
        return session

    def get(self, owner_id: int) -> Session | None:
        session = self._sessions.get(owner_id)
        if session is None:
            return None
        if self._expired(session, self._clock()):
            logger.info("Session of user %s expired", owner_id)
            del self._sessions[owner_id]
            return None
        return session

    def update(self, owner_id: int, **changes: Any) -> Session | None:
        session = self.get(owner_id)
        if session is None:
            return None

        unknown = set(changes) - _MUTABLE_FIELDS
        if unknown:
            raise TypeError(f"Unknown session fields: {', '.join(sorted(unknown))}")

        updated = replace(session, last_activity=self._clock(), **changes)
        self._sessions[owner_id] = updated
        return updated

    def end(self, owner_id: int) -> bool:
        return self._sessions.pop(owner_id, None) is not None

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [owner_id for owner_id, s in self._sessions.items() if self._expired(s, now)]
        for owner_id in expired:
            del self._sessions[owner_id]
        if expired:
            logger.info("Purged %s expired session(s)", len(expired))
        return len(expired)
