"""
LinguaCards - Card Models
SQLAlchemy models for learner flashcards and their append-only review history
"""
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, Float, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from linguacards.core.database import Base, UTCDateTime, utcnow
from linguacards.review.scheduling import DEFAULT_EASE_FACTOR, CardSchedule, MemoryState

if TYPE_CHECKING:
    from linguacards.models.user import User


class Card(Base):
    """A learnable flashcard owned by one user."""

    __tablename__ = "cards"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True
    )

    # Content (opaque to the review core)
    front: Mapped[str] = mapped_column(String(500))
    back: Mapped[str] = mapped_column(String(1000))  # May list alternatives: "cat, kitty"

    # SM-2 scheduling fields
    repetitions: Mapped[int] = mapped_column(Integer, default=0)
    ease_factor: Mapped[float] = mapped_column(Float, default=DEFAULT_EASE_FACTOR)
    interval_days: Mapped[int] = mapped_column(Integer, default=0)
    due_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, index=True)
    is_learned: Mapped[bool] = mapped_column(Boolean, default=False)

    # Continuous memory model (only written by the FSRS engine)
    stability: Mapped[float | None] = mapped_column(Float, nullable=True)
    difficulty: Mapped[float | None] = mapped_column(Float, nullable=True)
    memory_state: Mapped[int] = mapped_column(Integer, default=MemoryState.NEW)
    lapses: Mapped[int] = mapped_column(Integer, default=0)
    last_review_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="cards")
    review_logs: Mapped[list["ReviewLog"]] = relationship(
        "ReviewLog",
        back_populates="card",
        cascade="all, delete-orphan"
    )

    def to_schedule(self) -> CardSchedule:
        """Snapshot the scheduling fields for the engine."""
        return CardSchedule(
            repetitions=self.repetitions or 0,
            ease_factor=self.ease_factor if self.ease_factor is not None else DEFAULT_EASE_FACTOR,
            interval_days=self.interval_days or 0,
            due_at=self.due_at or self.created_at or utcnow(),
            is_learned=bool(self.is_learned),
            stability=self.stability,
            difficulty=self.difficulty,
            memory_state=MemoryState(self.memory_state or MemoryState.NEW),
            lapses=self.lapses or 0,
            last_review_at=self.last_review_at,
        )

    def apply_schedule(self, schedule: CardSchedule) -> None:
        """Copy an engine result back onto the row."""
        self.repetitions = schedule.repetitions
        self.ease_factor = schedule.ease_factor
        self.interval_days = schedule.interval_days
        self.due_at = schedule.due_at
        self.is_learned = schedule.is_learned
        self.stability = schedule.stability
        self.difficulty = schedule.difficulty
        self.memory_state = int(schedule.memory_state)
        self.lapses = schedule.lapses
        self.last_review_at = schedule.last_review_at


class ReviewLog(Base):
    """
    One review outcome. Append-only: rows are never updated or deleted here.

    `rating` holds the Rating weight (Again=1, Hard=2, Good=3, Easy=4).
    """

    __tablename__ = "review_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    card_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("cards.id", ondelete="CASCADE"),
        index=True
    )
    rating: Mapped[int] = mapped_column(Integer)
    reviewed_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, index=True)

    card: Mapped["Card"] = relationship("Card", back_populates="review_logs")
