"""
LinguaCards - Scheduling Engines
Pure functions from (card schedule, rating, now) to the card's next schedule.

Two engines share the same `schedule` contract:
- Sm2Engine: the simplified SM-2 algorithm (default)
- FsrsEngine: delegates to `fsrs-rs-python` as an opaque memory model
"""
import dataclasses
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Any, Optional, Protocol

from linguacards.core.config import settings
from linguacards.review.errors import SchedulingUnavailable
from linguacards.review.rating import Rating


MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 2.5
DEFAULT_EASE_FACTOR = 2.5
EASE_BONUS = 0.1
EASE_PENALTY = 0.2
LEARNED_THRESHOLD_DAYS = 21
RELEARN_DELAY = timedelta(minutes=1)


class MemoryState(IntEnum):
    """Phase of a card under the continuous memory model."""
    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


@dataclass(frozen=True)
class CardSchedule:
    """Scheduling fields of one card, detached from storage."""
    repetitions: int
    ease_factor: float
    interval_days: int
    due_at: datetime
    is_learned: bool = False

    # Continuous memory model (FSRS only)
    stability: Optional[float] = None
    difficulty: Optional[float] = None
    memory_state: MemoryState = MemoryState.NEW
    lapses: int = 0
    last_review_at: Optional[datetime] = None

    @classmethod
    def new(cls, now: datetime) -> "CardSchedule":
        """Schedule of a freshly created card: due immediately."""
        return cls(repetitions=0, ease_factor=DEFAULT_EASE_FACTOR, interval_days=0, due_at=now)


class SchedulingEngine(Protocol):
    """Anything that can reschedule a card after a review."""

    name: str

    def schedule(self, card: CardSchedule, rating: Rating, now: datetime) -> CardSchedule:
        ...


class Sm2Engine:
    """
    Simplified SM-2.

    - Knew (rating >= GOOD): intervals 1, 3, then previous * ease factor;
      the ease factor grows by 0.1 from the third success on.
    - Did not know: back to zero, ease factor drops by 0.2, due again in a
      minute so the card comes back within the same sitting.
    """

    name = "sm2"

    def __init__(self, learned_threshold_days: int = LEARNED_THRESHOLD_DAYS):
        self.learned_threshold_days = learned_threshold_days

    def schedule(self, card: CardSchedule, rating: Rating, now: datetime) -> CardSchedule:
        if Rating(rating).knew:
            repetitions = card.repetitions + 1
            ease_factor = card.ease_factor

            if repetitions == 1:
                interval_days = 1
            elif repetitions == 2:
                interval_days = 3
            else:
                interval_days = int(round(card.interval_days * ease_factor))

            if repetitions > 2:
                ease_factor = min(round(ease_factor + EASE_BONUS, 2), MAX_EASE_FACTOR)

            due_at = now + timedelta(days=interval_days)
        else:
            repetitions = 0
            interval_days = 0
            ease_factor = max(round(card.ease_factor - EASE_PENALTY, 2), MIN_EASE_FACTOR)
            due_at = now + RELEARN_DELAY

        return dataclasses.replace(
            card,
            repetitions=repetitions,
            ease_factor=ease_factor,
            interval_days=interval_days,
            due_at=due_at,
            is_learned=interval_days >= self.learned_threshold_days,
            last_review_at=now,
        )


class FsrsEngine:
    """
    Continuous memory model backed by `fsrs-rs-python`.

    The memory math belongs to the library: it returns the next memory state
    and interval for each rating, and this adapter only maps card fields in
    and out. Any failure surfaces as SchedulingUnavailable, never as a
    guessed interval.
    """

    name = "fsrs"

    def __init__(
        self,
        model: Any = None,
        desired_retention: float | None = None,
        learned_threshold_days: int = LEARNED_THRESHOLD_DAYS,
    ):
        self._model = model
        self.desired_retention = (
            desired_retention if desired_retention is not None else settings.FSRS_DESIRED_RETENTION
        )
        self.learned_threshold_days = learned_threshold_days

    @property
    def model(self):
        """Lazy load the FSRS model with the default parameters."""
        if self._model is None:
            try:
                from fsrs_rs_python import DEFAULT_PARAMETERS, FSRS
                self._model = FSRS(parameters=list(DEFAULT_PARAMETERS))
            except Exception as e:
                raise SchedulingUnavailable(f"FSRS backend could not be loaded: {e}") from e
        return self._model

    @staticmethod
    def _memory_state(card: CardSchedule):
        """The library's memory state, or None for a card never reviewed."""
        if card.memory_state == MemoryState.NEW or not card.stability or not card.difficulty:
            return None

        from fsrs_rs_python import MemoryState as FsrsMemoryState
        return FsrsMemoryState(stability=card.stability, difficulty=card.difficulty)

    @staticmethod
    def _next_memory_state(current: MemoryState, interval_days: float) -> MemoryState:
        if interval_days >= 1:
            return MemoryState.REVIEW
        if current in (MemoryState.REVIEW, MemoryState.RELEARNING):
            return MemoryState.RELEARNING
        return MemoryState.LEARNING

    def schedule(self, card: CardSchedule, rating: Rating, now: datetime) -> CardSchedule:
        days_elapsed = 0
        if card.last_review_at is not None:
            days_elapsed = max(round((now - card.last_review_at).total_seconds() / 86400), 0)

        try:
            next_states = self.model.next_states(
                self._memory_state(card),
                self.desired_retention,
                days_elapsed,
            )
            selected = {
                Rating.AGAIN: next_states.again,
                Rating.HARD: next_states.hard,
                Rating.GOOD: next_states.good,
                Rating.EASY: next_states.easy,
            }[Rating(rating)]
            interval = float(selected.interval)
            stability = float(selected.memory.stability)
            difficulty = float(selected.memory.difficulty)
        except SchedulingUnavailable:
            raise
        except Exception as e:
            raise SchedulingUnavailable(f"FSRS backend failed: {e}") from e

        due_at = now + max(timedelta(days=interval), RELEARN_DELAY)
        interval_days = max((due_at - now).days, 0)
        new_state = self._next_memory_state(card.memory_state, interval)

        lapses = card.lapses
        if rating == Rating.AGAIN and card.memory_state == MemoryState.REVIEW:
            lapses += 1

        return dataclasses.replace(
            card,
            repetitions=0 if rating == Rating.AGAIN else card.repetitions + 1,
            interval_days=interval_days,
            due_at=due_at,
            is_learned=interval_days >= self.learned_threshold_days,
            stability=stability,
            difficulty=difficulty,
            memory_state=new_state,
            lapses=lapses,
            last_review_at=now,
        )


def preview_intervals(
    engine: SchedulingEngine,
    card: CardSchedule,
    now: datetime,
) -> dict[Rating, timedelta]:
    """How long until the card would be due again, for every rating."""
    previews = {}
    for rating in Rating:
        delay = engine.schedule(card, rating, now).due_at - now
        previews[rating] = max(delay, timedelta(0))
    return previews


def format_interval(interval: timedelta) -> str:
    """Compact label for a delay, e.g. "<1m", "10m", "5h", "3d", "2mo", "1.5y"."""
    minutes = interval.total_seconds() / 60
    if minutes < 1:
        return "<1m"
    if minutes < 60:
        return f"{int(minutes)}m"
    hours = minutes / 60
    if hours < 24:
        return f"{int(hours)}h"
    days = hours / 24
    if days < 30:
        return f"{int(days)}d"
    if days < 365:
        return f"{int(days / 30)}mo"
    return f"{days / 365:.1f}y"


def get_scheduling_engine(name: str | None = None) -> SchedulingEngine:
    """Build the configured scheduling engine."""
    name = name or settings.SCHEDULING_ENGINE
    if name == "sm2":
        return Sm2Engine(learned_threshold_days=settings.LEARNED_THRESHOLD_DAYS)
    if name == "fsrs":
        return FsrsEngine(learned_threshold_days=settings.LEARNED_THRESHOLD_DAYS)
    raise ValueError(f"Unknown scheduling engine: {name}")
