"""
LinguaCards - Session Registry
Process-wide store of per-learner review sessions.

Each learner gets one slot holding an asyncio lock and at most one live
session. Mutations of a learner's session run under that lock, so two
requests for the same learner are serialized while different learners
proceed in parallel.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from linguacards.core.config import settings
from linguacards.core.database import utcnow
from linguacards.review.errors import SessionExpired
from linguacards.review.session import ReviewSession

logger = logging.getLogger(__name__)


@dataclass
class SessionSlot:
    """A learner's lock plus their live session, if any."""
    user_id: int
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    session: Optional[ReviewSession] = None
    last_activity: datetime = field(default_factory=utcnow)

    def touch(self, now: Optional[datetime] = None) -> None:
        self.last_activity = now or utcnow()

    def require_session(self) -> ReviewSession:
        """The live session, or SessionExpired when there is none."""
        if self.session is None:
            raise SessionExpired("No active review session, start a new review")
        return self.session

    def revalidate(self, session: ReviewSession) -> None:
        """
        Check `session` is still the one held by this slot.

        Call after every await: an idle sweep or a newer session may have
        replaced it meanwhile.
        """
        if self.session is not session:
            raise SessionExpired("Review session was replaced or expired")


class SessionRegistry:
    """
    Owner of all in-memory review sessions.

    `get_or_create` is the only way to obtain a slot; the idle sweep is the
    only thing that removes them.
    """

    def __init__(self, idle_timeout: Optional[timedelta] = None):
        if idle_timeout is None:
            idle_timeout = timedelta(minutes=settings.SESSION_IDLE_TIMEOUT_MINUTES)
        self.idle_timeout = idle_timeout
        self._slots: Dict[int, SessionSlot] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def get_or_create(self, user_id: int) -> SessionSlot:
        slot = self._slots.get(user_id)
        if slot is None:
            slot = SessionSlot(user_id=user_id)
            self._slots[user_id] = slot
        return slot

    def peek(self, user_id: int) -> Optional[ReviewSession]:
        """Read-only look at a learner's live session."""
        slot = self._slots.get(user_id)
        return slot.session if slot else None

    def evict_idle(self, now: Optional[datetime] = None) -> List[int]:
        """
        Drop slots idle for longer than the timeout.

        Slots whose lock is held are in the middle of an operation and are
        left alone until the next sweep.

        Returns:
            User ids whose slots were evicted
        """
        now = now or utcnow()
        cutoff = now - self.idle_timeout
        evicted = []

        for user_id, slot in list(self._slots.items()):
            if slot.last_activity >= cutoff or slot.lock.locked():
                continue
            slot.session = None
            del self._slots[user_id]
            evicted.append(user_id)

        if evicted:
            logger.info(f"Evicted {len(evicted)} idle review session(s)")
        return evicted

    async def sweep_forever(self, interval_seconds: Optional[float] = None) -> None:
        """Background task: evict idle sessions on a fixed interval."""
        interval = interval_seconds or settings.SESSION_SWEEP_SECONDS
        while True:
            await asyncio.sleep(interval)
            self.evict_idle()


# Singleton instance
session_registry = SessionRegistry()
