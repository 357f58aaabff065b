"""
LinguaCards - Review Repository
Data-access contract of the review core and its async SQLAlchemy implementation
"""
import uuid
from datetime import date, datetime
from typing import List, Optional, Protocol

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from linguacards.models.card import Card, ReviewLog
from linguacards.models.user import User, UserStats
from linguacards.review.rating import Rating
from linguacards.review.scheduling import CardSchedule


class ReviewRepository(Protocol):
    """What the review core needs from storage."""

    async def find_card(self, card_id: uuid.UUID) -> Optional[Card]: ...

    async def update_card(self, card: Card) -> None: ...

    async def append_review_log(self, entry: ReviewLog) -> None: ...

    async def find_user(self, user_id: int) -> Optional[User]: ...

    async def increment_today_reviewed(self, user_id: int, today: date) -> None: ...

    async def mark_inactive(self, user_id: int) -> None: ...

    async def find_due_cards(self, user_id: int, now: datetime, limit: int) -> List[Card]: ...

    async def count_due_cards(self, user_id: int, now: datetime) -> int: ...

    async def list_active_users(self) -> List[User]: ...

    async def record_review(
        self,
        card: Card,
        schedule: CardSchedule,
        rating: Rating,
        reviewed_at: datetime,
        today: date,
    ) -> ReviewLog: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


class SqlReviewRepository:
    """ReviewRepository over an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_card(self, card_id: uuid.UUID) -> Optional[Card]:
        return await self.db.get(Card, card_id, populate_existing=True)

    async def update_card(self, card: Card) -> None:
        self.db.add(card)
        await self.db.flush()

    async def append_review_log(self, entry: ReviewLog) -> None:
        self.db.add(entry)
        await self.db.flush()

    async def find_user(self, user_id: int) -> Optional[User]:
        result = await self.db.execute(
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def increment_today_reviewed(self, user_id: int, today: date) -> None:
        """
        Bump the learner's daily counter, restarting it on a new day.

        A single UPDATE so concurrent increments for the same learner are
        never lost.
        """
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                today_reviewed=case(
                    (User.today_date == today, User.today_reviewed + 1),
                    else_=1,
                ),
                today_date=today,
            )
            .execution_options(synchronize_session=False)
        )

    async def mark_inactive(self, user_id: int) -> None:
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

    async def find_due_cards(self, user_id: int, now: datetime, limit: int) -> List[Card]:
        """Due cards, oldest due first, harder (lower ease) first on ties."""
        if limit <= 0:
            return []
        result = await self.db.execute(
            select(Card)
            .where(Card.user_id == user_id, Card.due_at <= now)
            .order_by(Card.due_at.asc(), Card.ease_factor.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_due_cards(self, user_id: int, now: datetime) -> int:
        result = await self.db.execute(
            select(func.count(Card.id)).where(Card.user_id == user_id, Card.due_at <= now)
        )
        return result.scalar() or 0

    async def count_cards(self, user_id: int) -> tuple[int, int]:
        """(total, learned) card counts for a learner."""
        result = await self.db.execute(
            select(
                func.count(Card.id),
                func.count(Card.id).filter(Card.is_learned.is_(True)),
            ).where(Card.user_id == user_id)
        )
        total, learned = result.one()
        return total or 0, learned or 0

    async def list_active_users(self) -> List[User]:
        result = await self.db.execute(select(User).where(User.is_active.is_(True)))
        return list(result.scalars().all())

    async def get_stats(self, user_id: int) -> Optional[UserStats]:
        return await self.db.get(UserStats, user_id, populate_existing=True)

    async def add_stats(self, stats: UserStats) -> None:
        self.db.add(stats)
        await self.db.flush()

    async def record_review(
        self,
        card: Card,
        schedule: CardSchedule,
        rating: Rating,
        reviewed_at: datetime,
        today: date,
    ) -> ReviewLog:
        """
        Stage one review outcome: new card schedule, log entry, daily counter.

        Nothing is committed here; the caller commits once every write of
        the review is staged so they land together or not at all.
        """
        card.apply_schedule(schedule)
        await self.update_card(card)

        entry = ReviewLog(card_id=card.id, rating=int(rating), reviewed_at=reviewed_at)
        await self.append_review_log(entry)

        await self.increment_today_reviewed(card.user_id, today)
        return entry

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()
