"""
LinguaCards - Review Core
Pure scheduling, answer grading and session state for spaced-repetition reviews.
"""
from linguacards.review.answer_matcher import AnswerMatcher, MatchResult, answer_matcher, compare
from linguacards.review.errors import (
    InvalidSessionAction,
    RecipientUnreachable,
    ReviewError,
    SchedulingUnavailable,
    SessionCompleted,
    SessionExpired,
    UserNotFound,
)
from linguacards.review.rating import Rating, infer_rating
from linguacards.review.scheduling import (
    CardSchedule,
    FsrsEngine,
    MemoryState,
    SchedulingEngine,
    Sm2Engine,
    format_interval,
    get_scheduling_engine,
    preview_intervals,
)
from linguacards.review.session import ReviewMode, ReviewSession, SessionState

__all__ = [
    # Grading
    "AnswerMatcher",
    "MatchResult",
    "answer_matcher",
    "compare",
    "Rating",
    "infer_rating",
    # Scheduling
    "CardSchedule",
    "MemoryState",
    "SchedulingEngine",
    "Sm2Engine",
    "FsrsEngine",
    "preview_intervals",
    "format_interval",
    "get_scheduling_engine",
    # Sessions
    "ReviewMode",
    "ReviewSession",
    "SessionState",
    # Errors
    "ReviewError",
    "SessionExpired",
    "SessionCompleted",
    "InvalidSessionAction",
    "SchedulingUnavailable",
    "UserNotFound",
    "RecipientUnreachable",
]
