"""
LinguaCards - User Models
SQLAlchemy models for the learner scheduling context and review statistics
"""
from datetime import date, datetime, time
from typing import TYPE_CHECKING

from sqlalchemy import JSON, BigInteger, Boolean, Date, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from linguacards.core.database import Base, UTCDateTime, utcnow
from linguacards.review.session import ReviewMode

if TYPE_CHECKING:
    from linguacards.models.card import Card


DEFAULT_REMINDER_TIMES = ["09:00", "14:00", "20:00"]


def parse_clock_time(value: str) -> time:
    """Parse an "HH:MM" or "HH:MM:SS" reminder time."""
    return time.fromisoformat(value)


class User(Base):
    """
    Learner scheduling context.

    Owned by the onboarding/settings flow; the review core only reads it,
    bumps the daily counter and flips `is_active` off for unreachable users.
    """

    __tablename__ = "users"

    # Chat identity of the learner (e.g. a messenger user id)
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    daily_goal: Mapped[int] = mapped_column(Integer, default=20)
    today_reviewed: Mapped[int] = mapped_column(Integer, default=0)
    today_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    review_mode: Mapped[ReviewMode] = mapped_column(String(20), default=ReviewMode.REVEAL)
    reminder_times: Mapped[list] = mapped_column(JSON, default=lambda: list(DEFAULT_REMINDER_TIMES))
    timezone: Mapped[str] = mapped_column(String(64), default="Europe/Moscow")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    # Relationships
    cards: Mapped[list["Card"]] = relationship(
        "Card",
        back_populates="user",
        cascade="all, delete-orphan"
    )
    stats: Mapped["UserStats"] = relationship(
        "UserStats",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan"
    )

    @property
    def reminder_clock_times(self) -> list[time]:
        return [parse_clock_time(value) for value in (self.reminder_times or [])]

    @property
    def mode(self) -> ReviewMode:
        return ReviewMode(self.review_mode or ReviewMode.REVEAL)

    def reviewed_on(self, day: date) -> int:
        """Cards reviewed on `day`; the stored counter only counts for its own date."""
        if self.today_date != day:
            return 0
        return self.today_reviewed or 0


class UserStats(Base):
    """Aggregated review statistics and streaks for a learner."""

    __tablename__ = "user_stats"

    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True
    )
    total_cards: Mapped[int] = mapped_column(Integer, default=0)
    learned_cards: Mapped[int] = mapped_column(Integer, default=0)
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    last_activity_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    # Structure: [{"date": "2026-01-05", "cards_reviewed": 12, "goal_reached": false}]
    weekly_history: Mapped[list] = mapped_column(JSON, default=list)

    user: Mapped["User"] = relationship("User", back_populates="stats")
