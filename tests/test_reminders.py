"""
LinguaCards - Reminder Tests
"""
import logging
from datetime import date, datetime, time, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from linguacards.models import User
from linguacards.review.errors import RecipientUnreachable
from linguacards.review.rating import Rating
from linguacards.review.scheduling import Sm2Engine
from linguacards.review.session import SessionState
from linguacards.services.reminders import ReminderScheduler, ReminderService, within_window
from linguacards.services.repository import SqlReviewRepository
from linguacards.services.review import ReviewService

# 06:00:20 UTC is 09:00:20 in Moscow
NOW = datetime(2024, 3, 10, 6, 0, 20, tzinfo=timezone.utc)
WINDOW = timedelta(seconds=30)


def make_learner(**overrides) -> User:
    data = {
        "id": 1,
        "daily_goal": 20,
        "today_reviewed": 0,
        "today_date": None,
        "review_mode": "reveal",
        "reminder_times": ["09:00", "14:00", "20:00"],
        "timezone": "Europe/Moscow",
        "is_active": True,
    }
    data.update(overrides)
    return User(**data)


class RecordingDispatcher:
    def __init__(self, fail_for=None):
        self.sent = []
        self.fail_for = fail_for or {}

    async def send_reminder(self, user, step):
        error = self.fail_for.get(user.id)
        if error is not None:
            raise error
        self.sent.append((user.id, step.session.total))


class TestWindow:
    """Tests for the reminder time window."""

    def test_inside_window(self):
        assert within_window(time(9, 0, 20), time(9, 0), WINDOW)
        assert within_window(time(8, 59, 40), time(9, 0), WINDOW)

    def test_outside_window(self):
        assert not within_window(time(9, 1, 5), time(9, 0), WINDOW)

    def test_window_is_strict(self):
        assert not within_window(time(9, 0, 30), time(9, 0), WINDOW)

    def test_window_wraps_midnight(self):
        assert within_window(time(23, 59, 50), time(0, 0), WINDOW)
        assert within_window(time(0, 0, 10), time(23, 59, 50), WINDOW)


class TestEligibility:
    """Tests for per-learner reminder eligibility."""

    @pytest.fixture
    def scheduler(self) -> ReminderScheduler:
        return ReminderScheduler(None, window_seconds=30)

    def test_fires_shortly_after_reminder_time(self, scheduler):
        assert scheduler.is_eligible(make_learner(), NOW)

    def test_does_not_fire_a_minute_later(self, scheduler):
        now = datetime(2024, 3, 10, 6, 1, 5, tzinfo=timezone.utc)
        assert not scheduler.is_eligible(make_learner(), now)

    def test_uses_learner_timezone(self, scheduler):
        # 09:00:20 in Moscow is 15:00:20 in Tokyo
        assert not scheduler.is_eligible(make_learner(timezone="Asia/Tokyo"), NOW)

    def test_goal_reached_today_is_skipped(self, scheduler):
        learner = make_learner(today_reviewed=20, today_date=date(2024, 3, 10))
        assert not scheduler.is_eligible(learner, NOW)

    def test_goal_reached_yesterday_does_not_count(self, scheduler):
        learner = make_learner(today_reviewed=20, today_date=date(2024, 3, 9))
        assert scheduler.is_eligible(learner, NOW)

    def test_inactive_learner_is_skipped(self, scheduler):
        assert not scheduler.is_eligible(make_learner(is_active=False), NOW)

    def test_unknown_timezone_falls_back(self, scheduler, caplog):
        with caplog.at_level(logging.WARNING):
            assert scheduler.is_eligible(make_learner(timezone="Mars/Olympus_Mons"), NOW)
        assert "Mars/Olympus_Mons" in caplog.text


@pytest.mark.asyncio
async def test_select_eligible_users(repository, make_user):
    await make_user(1, reminder_times=["09:00"])
    await make_user(2, reminder_times=["09:05"])
    await make_user(3, reminder_times=["09:00"], is_active=False)

    scheduler = ReminderScheduler(repository, window_seconds=30)
    assert await scheduler.select_eligible_users(NOW) == [1]


@pytest.fixture
def reminder_service(repository, registry):
    def _build(dispatcher):
        review_service = ReviewService(repository, registry=registry, engine=Sm2Engine())
        return ReminderService(repository, dispatcher, review_service=review_service)
    return _build


@pytest.mark.asyncio
async def test_run_tick_reminds_learners_with_due_cards(reminder_service, registry, make_user, make_card):
    await make_user(1)
    await make_user(2)
    await make_user(3, reminder_times=["10:00"])
    await make_card(user_id=1, due_at=NOW - timedelta(days=1))
    await make_card(user_id=1, due_at=NOW - timedelta(hours=1))
    await make_card(user_id=2, due_at=NOW + timedelta(days=1))
    await make_card(user_id=3, due_at=NOW - timedelta(days=1))

    dispatcher = RecordingDispatcher()
    reminded = await reminder_service(dispatcher).run_tick(NOW)

    assert reminded == [1]
    assert dispatcher.sent == [(1, 2)]
    assert registry.peek(1) is not None


@pytest.mark.asyncio
async def test_unreachable_learner_is_marked_inactive(reminder_service, repository, make_user, make_card):
    await make_user(1)
    await make_card(user_id=1, due_at=NOW - timedelta(hours=1))

    dispatcher = RecordingDispatcher(fail_for={1: RecipientUnreachable("bot was blocked")})
    reminded = await reminder_service(dispatcher).run_tick(NOW)

    assert reminded == []
    user = await repository.find_user(1)
    assert user.is_active is False


@pytest.mark.asyncio
async def test_delivery_failure_does_not_stop_the_tick(reminder_service, repository, make_user, make_card):
    await make_user(1)
    await make_user(2)
    await make_card(user_id=1, due_at=NOW - timedelta(hours=1))
    await make_card(user_id=2, due_at=NOW - timedelta(hours=1))

    dispatcher = RecordingDispatcher(fail_for={1: RuntimeError("network down")})
    reminded = await reminder_service(dispatcher).run_tick(NOW)

    assert reminded == [2]
    assert (await repository.find_user(1)).is_active is True


@pytest.mark.asyncio
async def test_learner_mid_review_is_not_interrupted(reminder_service, registry, make_user, make_card):
    await make_user(1)
    await make_card(user_id=1, due_at=NOW - timedelta(hours=2))
    await make_card(user_id=1, due_at=NOW - timedelta(hours=1))

    dispatcher = RecordingDispatcher()
    service = reminder_service(dispatcher)
    review = service.review_service

    earlier = NOW - timedelta(minutes=5)
    await review.start_session(1, now=earlier)
    await review.reveal(1, now=earlier)
    await review.rate(1, Rating.GOOD, now=earlier)
    await review.reveal(1, now=earlier)
    session = registry.peek(1)

    reminded = await service.run_tick(NOW)

    assert reminded == []
    assert dispatcher.sent == []
    assert registry.peek(1) is session
    assert session.cursor == 1
    assert session.knew_count == 1
    assert session.state == SessionState.AWAITING_RATING

    step = await review.rate(1, Rating.GOOD, now=NOW)
    assert step.is_complete


class RollbackCountingRepository(SqlReviewRepository):
    def __init__(self, db):
        super().__init__(db)
        self.rollbacks = 0

    async def rollback(self) -> None:
        self.rollbacks += 1
        await super().rollback()


class StartFailingReviewService(ReviewService):
    """Fails to start a session for the given learners, as a broken query would."""

    def __init__(self, repository, registry, fail_for):
        super().__init__(repository, registry=registry, engine=Sm2Engine())
        self.fail_for = fail_for

    async def start_session(self, user_id, now=None):
        if user_id in self.fail_for:
            raise OperationalError("SELECT", {}, Exception("connection lost"))
        return await super().start_session(user_id, now=now)


@pytest.mark.asyncio
async def test_failed_start_rolls_back_and_tick_continues(db_session, registry, make_user, make_card):
    await make_user(1)
    await make_user(2)
    await make_card(user_id=1, due_at=NOW - timedelta(hours=1))
    await make_card(user_id=2, due_at=NOW - timedelta(hours=1))

    repository = RollbackCountingRepository(db_session)
    review_service = StartFailingReviewService(repository, registry, fail_for={1})
    dispatcher = RecordingDispatcher()
    service = ReminderService(repository, dispatcher, review_service=review_service)

    reminded = await service.run_tick(NOW)

    assert reminded == [2]
    assert dispatcher.sent == [(2, 1)]
    assert repository.rollbacks == 1
    assert registry.peek(1) is None


@pytest.mark.asyncio
async def test_unreachable_learner_rolls_back_before_marking(db_session, registry, make_user, make_card):
    await make_user(1)
    await make_card(user_id=1, due_at=NOW - timedelta(hours=1))

    repository = RollbackCountingRepository(db_session)
    review_service = ReviewService(repository, registry=registry, engine=Sm2Engine())
    dispatcher = RecordingDispatcher(fail_for={1: RecipientUnreachable("chat not found")})
    service = ReminderService(repository, dispatcher, review_service=review_service)

    assert await service.run_tick(NOW) == []
    assert repository.rollbacks == 1
    assert (await repository.find_user(1)).is_active is False
