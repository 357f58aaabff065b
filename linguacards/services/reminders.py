"""
LinguaCards - Reminder Service
Finds learners whose local reminder time has come and pushes a review to them.
"""
import asyncio
import logging
from datetime import datetime, time, timedelta
from typing import List, Optional, Protocol

from linguacards.core.config import settings
from linguacards.core.database import async_session_maker, utcnow
from linguacards.core.timezones import to_local
from linguacards.models.user import User
from linguacards.review.errors import RecipientUnreachable
from linguacards.services.repository import SqlReviewRepository
from linguacards.services.review import ReviewService, ReviewStep

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def _seconds_of_day(value: time) -> float:
    return value.hour * 3600 + value.minute * 60 + value.second + value.microsecond / 1_000_000


def within_window(local_time: time, reminder_time: time, window: timedelta) -> bool:
    """True when `local_time` is strictly closer than `window` to `reminder_time`, across midnight too."""
    diff = abs(_seconds_of_day(local_time) - _seconds_of_day(reminder_time))
    diff = min(diff, SECONDS_PER_DAY - diff)
    return diff < window.total_seconds()


class ReminderScheduler:
    """
    Decides which learners get a reminder on this tick.

    Meant to run once per tick (every minute by default); the window must
    stay narrower than half the tick so a reminder fires exactly once, and
    wider than the tick's clock jitter so it is never missed.
    """

    def __init__(self, repository: SqlReviewRepository, window_seconds: Optional[int] = None):
        self.repository = repository
        self.window = timedelta(
            seconds=window_seconds if window_seconds is not None else settings.REMINDER_WINDOW_SECONDS
        )

    def is_eligible(self, user: User, now: datetime) -> bool:
        """
        Whether `user` should be reminded at instant `now`.

        Learners who already met today's goal (their local today) are skipped.
        """
        if not user.is_active:
            return False

        local_now = to_local(now, user.timezone)
        if user.reviewed_on(local_now.date()) >= user.daily_goal:
            return False

        local_time = local_now.time()
        return any(
            within_window(local_time, reminder_time, self.window)
            for reminder_time in user.reminder_clock_times
        )

    async def select_eligible(self, now: Optional[datetime] = None) -> List[User]:
        now = now or utcnow()
        users = await self.repository.list_active_users()
        return [user for user in users if self.is_eligible(user, now)]

    async def select_eligible_users(self, now: Optional[datetime] = None) -> List[int]:
        return [user.id for user in await self.select_eligible(now)]


class ReminderDispatcher(Protocol):
    """Delivers a reminder; raises RecipientUnreachable when it never can."""

    async def send_reminder(self, user: User, step: ReviewStep) -> None:
        ...


class LoggingReminderDispatcher:
    """Dispatcher that only logs; used when no transport is wired in."""

    async def send_reminder(self, user: User, step: ReviewStep) -> None:
        logger.info(
            f"Reminder for user {user.id}: {step.session.total} card(s) waiting"
        )


class ReminderService:
    """One reminder tick: select learners, start their review, dispatch."""

    def __init__(
        self,
        repository: SqlReviewRepository,
        dispatcher: ReminderDispatcher,
        review_service: Optional[ReviewService] = None,
        scheduler: Optional[ReminderScheduler] = None,
    ):
        self.repository = repository
        self.dispatcher = dispatcher
        self.review_service = review_service or ReviewService(repository)
        self.scheduler = scheduler or ReminderScheduler(repository)

    async def run_tick(self, now: Optional[datetime] = None) -> List[int]:
        """
        Remind every eligible learner who has cards due.

        Learners already in the middle of a review are left alone. A
        permanently unreachable learner is marked inactive; any other
        failure is logged, the transaction is rolled back and the tick moves
        on to the next learner.

        Returns:
            Ids of learners reminded on this tick
        """
        now = now or utcnow()
        reminded = []

        # Ids only: a rollback below expires every loaded learner
        user_ids = [user.id for user in await self.scheduler.select_eligible(now)]

        for user_id in user_ids:
            if self.review_service.registry.peek(user_id) is not None:
                logger.info(f"User {user_id} is already reviewing, no reminder sent")
                continue

            try:
                step = await self.review_service.start_session(user_id, now=now)
                if step is None:
                    continue

                user = await self.review_service.get_user(user_id)
                await self.dispatcher.send_reminder(user, step)
                reminded.append(user_id)
                logger.info(f"Sent reminder to user {user_id}")
            except RecipientUnreachable as e:
                logger.warning(f"User {user_id} is unreachable, marking inactive: {e}")
                await self.repository.rollback()
                await self.repository.mark_inactive(user_id)
            except Exception as e:
                logger.warning(f"Failed to send reminder to user {user_id}: {e}")
                await self.repository.rollback()

        return reminded


async def reminder_loop(
    dispatcher: ReminderDispatcher,
    interval_seconds: Optional[float] = None,
) -> None:
    """Background task: run a reminder tick on a fixed interval."""
    interval = interval_seconds or settings.REMINDER_TICK_SECONDS
    while True:
        try:
            async with async_session_maker() as db:
                service = ReminderService(SqlReviewRepository(db), dispatcher)
                await service.run_tick()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Reminder tick failed: {e}")
        await asyncio.sleep(interval)
