"""
LinguaCards - Review Service
Drives a learner's review session: presents cards, grades answers, reschedules
cards and persists every outcome before the session moves on.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from linguacards.core.database import utcnow
from linguacards.core.timezones import local_date
from linguacards.models.card import Card
from linguacards.models.user import User
from linguacards.review.answer_matcher import AnswerMatcher, MatchResult, answer_matcher
from linguacards.review.errors import UserNotFound
from linguacards.review.rating import Rating, infer_rating
from linguacards.review.registry import SessionRegistry, SessionSlot, session_registry
from linguacards.review.scheduling import (
    SchedulingEngine,
    format_interval,
    get_scheduling_engine,
    preview_intervals,
)
from linguacards.review.session import ReviewSession, SessionState
from linguacards.services.due_selector import DueCardSelector
from linguacards.services.repository import SqlReviewRepository
from linguacards.services.stats import StatsService

logger = logging.getLogger(__name__)


@dataclass
class ReviewStep:
    """Outcome of one review action, as handed to the presentation layer."""
    session: ReviewSession
    card: Optional[Card]                  # Card now on screen, None once complete
    graded_card: Optional[Card] = None    # Card the action rated, for feedback
    match: Optional[MatchResult] = None
    rating: Optional[Rating] = None

    @property
    def is_complete(self) -> bool:
        return self.session.is_complete

    @property
    def answer_visible(self) -> bool:
        return self.session.state in (
            SessionState.AWAITING_RATING,
            SessionState.AWAITING_PARTIAL_DECISION,
        )


class ReviewService:
    """
    The review pipeline.

    For every rated card: scheduling engine -> card update + review log +
    daily counter + statistics in one commit -> session advances. If any
    step fails nothing is committed and the session stays on the same card,
    so the learner can simply retry.
    """

    def __init__(
        self,
        repository: SqlReviewRepository,
        registry: Optional[SessionRegistry] = None,
        engine: Optional[SchedulingEngine] = None,
        matcher: Optional[AnswerMatcher] = None,
        selector: Optional[DueCardSelector] = None,
        stats: Optional[StatsService] = None,
    ):
        self.repository = repository
        self.registry = registry if registry is not None else session_registry
        self.engine = engine or get_scheduling_engine()
        self.matcher = matcher or answer_matcher
        self.selector = selector or DueCardSelector(repository)
        self.stats = stats or StatsService(repository)

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_user(self, user_id: int) -> User:
        user = await self.repository.find_user(user_id)
        if user is None:
            raise UserNotFound(f"User {user_id} not found")
        return user

    async def get_due_cards(
        self,
        user_id: int,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[Card]:
        """Due cards for a learner; the limit defaults to the recommended batch."""
        now = now or utcnow()
        user = await self.get_user(user_id)
        if limit is None:
            limit = self.selector.recommended_limit(user, local_date(now, user.timezone))
        return await self.selector.select_due(user_id, limit, now)

    async def get_interval_preview(
        self,
        user_id: int,
        card_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> Optional[Dict[Rating, str]]:
        """Label of the next interval for each rating, None if the card is not the learner's."""
        now = now or utcnow()
        card = await self.repository.find_card(card_id)
        if card is None or card.user_id != user_id:
            return None
        previews = preview_intervals(self.engine, card.to_schedule(), now)
        return {rating: format_interval(delay) for rating, delay in previews.items()}

    async def get_stats(self, user_id: int, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()
        user = await self.get_user(user_id)
        return await self.stats.get_summary(user, local_date(now, user.timezone))

    # =========================================================================
    # Session lifecycle
    # =========================================================================

    async def start_session(
        self,
        user_id: int,
        now: Optional[datetime] = None,
    ) -> Optional[ReviewStep]:
        """
        Snapshot the learner's due cards into a new session and present the first.

        Replaces any session the learner already had.

        Returns:
            The first step, or None when nothing is due
        """
        now = now or utcnow()
        cards = await self.get_due_cards(user_id, now=now)
        if not cards:
            return None

        user = await self.get_user(user_id)
        slot = self.registry.get_or_create(user_id)
        async with slot.lock:
            session = ReviewSession(
                user_id=user_id,
                card_ids=[card.id for card in cards],
                mode=user.mode,
            )
            slot.session = session
            slot.touch(now)
            logger.info(f"Started review session for user {user_id} with {session.total} cards")

            card = await self._present_next(slot, session, now)
            return ReviewStep(session=session, card=card)

    async def get_current(self, user_id: int, now: Optional[datetime] = None) -> ReviewStep:
        now = now or utcnow()
        slot = self.registry.get_or_create(user_id)
        async with slot.lock:
            session = slot.require_session()
            await self._resume(slot, session, now)
            card = await self._load_current(slot, session, now)
            slot.touch(now)
            return ReviewStep(session=session, card=card)

    # =========================================================================
    # Reveal mode
    # =========================================================================

    async def reveal(self, user_id: int, now: Optional[datetime] = None) -> ReviewStep:
        """Show the answer of the current card."""
        now = now or utcnow()
        slot = self.registry.get_or_create(user_id)
        async with slot.lock:
            session = slot.require_session()
            await self._resume(slot, session, now)
            session.ensure_state(SessionState.AWAITING_REVEAL)
            current_id = session.current_card_id

            card = await self._load_current(slot, session, now)
            slot.touch(now)
            if card is None or card.id != current_id:
                return ReviewStep(session=session, card=card)

            session.reveal()
            return ReviewStep(session=session, card=card)

    async def rate(self, user_id: int, rating: Rating, now: Optional[datetime] = None) -> ReviewStep:
        """Apply the learner's own rating after the answer was revealed."""
        now = now or utcnow()
        slot = self.registry.get_or_create(user_id)
        async with slot.lock:
            session = slot.require_session()
            await self._resume(slot, session, now)
            session.ensure_state(SessionState.AWAITING_RATING)
            return await self._rate_current(slot, session, Rating(rating), now)

    # =========================================================================
    # Typing mode
    # =========================================================================

    async def submit_answer(self, user_id: int, text: str, now: Optional[datetime] = None) -> ReviewStep:
        """
        Grade a typed answer.

        Exact and wrong answers are rated immediately (EASY/GOOD from response
        time, AGAIN). A partial answer is never resolved automatically: the
        session waits for `resolve_partial`.
        """
        now = now or utcnow()
        slot = self.registry.get_or_create(user_id)
        async with slot.lock:
            session = slot.require_session()
            await self._resume(slot, session, now)
            session.ensure_state(SessionState.AWAITING_TYPED_ANSWER)
            current_id = session.current_card_id

            card = await self._load_current(slot, session, now)
            if card is None or card.id != current_id:
                slot.touch(now)
                return ReviewStep(session=session, card=card)

            match = self.matcher.compare(text, card.back)
            rating = infer_rating(match, session.latency(now))

            if match == MatchResult.PARTIAL:
                session.await_partial_decision()
                slot.touch(now)
                return ReviewStep(session=session, card=card, match=match, rating=rating)

            step = await self._rate_current(slot, session, rating, now, card=card)
            step.match = match
            return step

    async def resolve_partial(
        self,
        user_id: int,
        count_as_correct: bool,
        now: Optional[datetime] = None,
    ) -> ReviewStep:
        """Settle a partial answer: counted as GOOD or as AGAIN."""
        now = now or utcnow()
        slot = self.registry.get_or_create(user_id)
        async with slot.lock:
            session = slot.require_session()
            await self._resume(slot, session, now)
            session.ensure_state(SessionState.AWAITING_PARTIAL_DECISION)
            rating = Rating.GOOD if count_as_correct else Rating.AGAIN
            step = await self._rate_current(slot, session, rating, now)
            step.match = MatchResult.PARTIAL
            return step

    async def dont_remember(self, user_id: int, now: Optional[datetime] = None) -> ReviewStep:
        """The learner gives up on the typed answer; rated AGAIN."""
        now = now or utcnow()
        slot = self.registry.get_or_create(user_id)
        async with slot.lock:
            session = slot.require_session()
            await self._resume(slot, session, now)
            session.ensure_state(SessionState.AWAITING_TYPED_ANSWER)
            return await self._rate_current(slot, session, Rating.AGAIN, now)

    # =========================================================================
    # Pipeline
    # =========================================================================

    async def _rate_current(
        self,
        slot: SessionSlot,
        session: ReviewSession,
        rating: Rating,
        now: datetime,
        card: Optional[Card] = None,
    ) -> ReviewStep:
        if card is None:
            current_id = session.current_card_id
            card = await self._load_current(slot, session, now)
            if card is None or card.id != current_id:
                slot.touch(now)
                return ReviewStep(session=session, card=card)

        user = await self.get_user(session.user_id)
        today = local_date(now, user.timezone)

        # Raises SchedulingUnavailable before anything is written
        schedule = self.engine.schedule(card.to_schedule(), rating, now)

        try:
            await self.repository.record_review(card, schedule, rating, now, today)
            user = await self.get_user(session.user_id)
            await self.stats.update_after_review(user, today, now)
            await self.repository.commit()
        except Exception:
            logger.error(f"Failed to save review of card {card.id} for user {session.user_id}")
            await self.repository.rollback()
            raise

        slot.revalidate(session)
        session.record_rating(rating)
        slot.touch(now)

        next_card = await self._present_next(slot, session, now)
        return ReviewStep(session=session, card=next_card, graded_card=card, rating=rating)

    async def _resume(self, slot: SessionSlot, session: ReviewSession, now: datetime) -> None:
        """Present the current card if an earlier request advanced the session but failed to present it."""
        if session.state == SessionState.AWAITING_PRESENTATION:
            logger.info(f"Resuming review session of user {session.user_id} at card {session.position}")
            await self._present_next(slot, session, now)

    async def _load_current(
        self,
        slot: SessionSlot,
        session: ReviewSession,
        now: datetime,
    ) -> Optional[Card]:
        """Card under the cursor; vanished cards are skipped and the next one presented."""
        if session.is_complete:
            return None

        card = await self.repository.find_card(session.current_card_id)
        slot.revalidate(session)
        if card is not None and card.user_id == session.user_id:
            return card

        logger.info(f"Card {session.current_card_id} is gone, skipping it in user {session.user_id}'s review")
        session.skip_current()
        return await self._present_next(slot, session, now)

    async def _present_next(
        self,
        slot: SessionSlot,
        session: ReviewSession,
        now: datetime,
    ) -> Optional[Card]:
        """Present the next existing card, or close the session when none is left."""
        while not session.is_complete:
            card = await self.repository.find_card(session.current_card_id)
            slot.revalidate(session)
            if card is not None and card.user_id == session.user_id:
                session.present(now)
                return card

            logger.info(f"Card {session.current_card_id} is gone, skipping it in user {session.user_id}'s review")
            session.skip_current()

        self._finish(slot, session)
        return None

    def _finish(self, slot: SessionSlot, session: ReviewSession) -> None:
        if slot.session is session:
            slot.session = None
        logger.info(
            f"Review session finished for user {session.user_id}: "
            f"knew {session.knew_count}, did not know {session.did_not_know_count}"
        )
