"""
LinguaCards - Review Session
In-memory state machine walking one learner through a fixed batch of cards.

The session knows nothing about storage or rendering: the review service
loads cards, runs the scheduling engine and persists results, then tells the
session what happened.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, List, Optional

from linguacards.review.errors import InvalidSessionAction, SessionCompleted
from linguacards.review.rating import Rating


class ReviewMode(str, Enum):
    """How a learner answers cards during a review session."""
    REVEAL = "reveal"  # Show the answer, learner rates themselves
    TYPING = "typing"  # Learner types the answer, rating is inferred


class SessionState(str, Enum):
    """Sub-state of the card under the cursor."""
    AWAITING_PRESENTATION = "awaiting_presentation"
    AWAITING_REVEAL = "awaiting_reveal"                      # reveal mode, answer hidden
    AWAITING_RATING = "awaiting_rating"                      # reveal mode, answer shown
    AWAITING_TYPED_ANSWER = "awaiting_typed_answer"          # typing mode
    AWAITING_PARTIAL_DECISION = "awaiting_partial_decision"  # typing mode, close answer
    COMPLETED = "completed"


# States in which a rating may be recorded for the current card
RATEABLE_STATES = {
    SessionState.AWAITING_RATING,
    SessionState.AWAITING_TYPED_ANSWER,
    SessionState.AWAITING_PARTIAL_DECISION,
}


@dataclass
class ReviewSession:
    """
    One learner's review batch.

    `card_ids` is a snapshot taken at creation: cards that become due later
    are not added. The session is complete once the cursor has moved past
    the last card, and is terminal from then on.
    """
    user_id: int
    card_ids: List[uuid.UUID]
    mode: ReviewMode = ReviewMode.REVEAL
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    cursor: int = 0
    knew_count: int = 0
    did_not_know_count: int = 0
    skipped_count: int = 0
    state: SessionState = SessionState.AWAITING_PRESENTATION
    presented_at: Optional[datetime] = None
    last_output: Any = None  # Opaque handle for the presentation layer

    def __post_init__(self):
        self.card_ids = list(self.card_ids)
        if self.is_complete:
            self.state = SessionState.COMPLETED

    @property
    def total(self) -> int:
        return len(self.card_ids)

    @property
    def is_complete(self) -> bool:
        return self.cursor >= len(self.card_ids)

    @property
    def current_card_id(self) -> Optional[uuid.UUID]:
        """Card under the cursor, or None once the session is complete."""
        if self.is_complete:
            return None
        return self.card_ids[self.cursor]

    @property
    def position(self) -> int:
        """1-based number of the current card (total + 1 when complete)."""
        return self.cursor + 1

    def _require_active(self) -> None:
        if self.is_complete:
            raise SessionCompleted("Review session is already complete")

    def ensure_state(self, *allowed: SessionState) -> None:
        """Raise unless the session is active and in one of `allowed`."""
        self._require_active()
        if self.state not in allowed:
            raise InvalidSessionAction(
                f"Action not allowed while {self.state.value}"
            )

    def _advance(self) -> None:
        self.cursor += 1
        self.presented_at = None
        self.state = SessionState.COMPLETED if self.is_complete else SessionState.AWAITING_PRESENTATION

    def present(self, now: datetime) -> uuid.UUID:
        """Show the current card and start timing the answer."""
        self.ensure_state(SessionState.AWAITING_PRESENTATION)
        self.presented_at = now
        self.state = (
            SessionState.AWAITING_TYPED_ANSWER
            if self.mode == ReviewMode.TYPING
            else SessionState.AWAITING_REVEAL
        )
        return self.card_ids[self.cursor]

    def reveal(self) -> None:
        self.ensure_state(SessionState.AWAITING_REVEAL)
        self.state = SessionState.AWAITING_RATING

    def latency(self, now: datetime) -> timedelta:
        """Time since the current card was presented."""
        if self.presented_at is None:
            return timedelta(0)
        return max(now - self.presented_at, timedelta(0))

    def await_partial_decision(self) -> None:
        """A typed answer was close: wait for "count as correct" / "count as incorrect"."""
        self.ensure_state(SessionState.AWAITING_TYPED_ANSWER)
        self.state = SessionState.AWAITING_PARTIAL_DECISION

    def record_rating(self, rating: Rating) -> None:
        """Tally a rated card and move to the next one."""
        self.ensure_state(*RATEABLE_STATES)
        if self.state == SessionState.AWAITING_PARTIAL_DECISION and rating not in (Rating.GOOD, Rating.AGAIN):
            raise InvalidSessionAction("A partial answer is counted as GOOD or AGAIN only")

        if Rating(rating).knew:
            self.knew_count += 1
        else:
            self.did_not_know_count += 1
        self._advance()

    def skip_current(self) -> None:
        """Move past a card that no longer exists, without tallying it."""
        self._require_active()
        self.skipped_count += 1
        self._advance()
