"""
LinguaCards - Due Card Selector
Which of a learner's cards are due now, and how many to review in one go
"""
from datetime import date, datetime
from typing import List, Optional

from linguacards.core.config import settings
from linguacards.core.database import utcnow
from linguacards.models.card import Card
from linguacards.models.user import User
from linguacards.services.repository import ReviewRepository


class DueCardSelector:
    """
    Selects due cards for a learner.

    Due means `due_at <= now`. Results are ordered oldest-due first and,
    among cards due at the same instant, harder cards (lower ease factor)
    first.
    """

    def __init__(self, repository: ReviewRepository, min_batch: Optional[int] = None):
        self.repository = repository
        self.min_batch = min_batch if min_batch is not None else settings.MIN_REVIEW_BATCH

    def recommended_limit(self, user: User, today: date) -> int:
        """Cards left to reach the daily goal, but never fewer than the minimum batch."""
        remaining = (user.daily_goal or 0) - user.reviewed_on(today)
        return max(remaining, self.min_batch)

    async def select_due(
        self,
        user_id: int,
        limit: int,
        now: Optional[datetime] = None,
    ) -> List[Card]:
        """
        Get the learner's due cards.

        Args:
            user_id: Learner whose cards to select
            limit: Maximum number of cards returned
            now: Reference instant (defaults to the current time)

        Returns:
            At most `limit` due cards in review order
        """
        now = now or utcnow()
        cards = await self.repository.find_due_cards(user_id, now, limit)
        return cards[:max(limit, 0)]

    async def count_due(self, user_id: int, now: Optional[datetime] = None) -> int:
        return await self.repository.count_due_cards(user_id, now or utcnow())
