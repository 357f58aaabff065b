"""
LinguaCards - Ratings
Recall-quality ratings and automatic rating inference for typed answers
"""
from datetime import timedelta
from enum import IntEnum

from linguacards.core.config import settings
from linguacards.review.answer_matcher import MatchResult


class Rating(IntEnum):
    """
    Learner recall quality.

    The integer weights are persisted in the review log and compared
    ordinally ("knew" means rating >= GOOD), so they must never change.
    """
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @property
    def knew(self) -> bool:
        return self >= Rating.GOOD

    @classmethod
    def from_knew(cls, knew: bool) -> "Rating":
        """Map a two-valued Knew / DidNotKnow answer onto the ordinal scale."""
        return cls.GOOD if knew else cls.AGAIN


def infer_rating(
    match: MatchResult,
    latency: timedelta,
    fast_threshold: timedelta | None = None,
) -> Rating:
    """
    Derive a rating from a typed-answer verdict and how long the learner took.

    Exact and fast is EASY, exact otherwise GOOD, partial HARD, wrong AGAIN.
    """
    if fast_threshold is None:
        fast_threshold = timedelta(seconds=settings.FAST_ANSWER_SECONDS)

    if match == MatchResult.EXACT:
        return Rating.EASY if latency < fast_threshold else Rating.GOOD
    if match == MatchResult.PARTIAL:
        return Rating.HARD
    return Rating.AGAIN
