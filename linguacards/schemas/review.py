"""
LinguaCards - Review Schemas
Pydantic schemas for due cards, review sessions and learner statistics
"""
import uuid
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from linguacards.review.answer_matcher import MatchResult
from linguacards.review.rating import Rating
from linguacards.review.session import ReviewMode, SessionState


class CardResponse(BaseModel):
    """A card with its scheduling state."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    front: str
    back: str
    repetitions: int
    ease_factor: float
    interval_days: int
    due_at: datetime
    is_learned: bool


class CardPrompt(BaseModel):
    """The card on screen; `back` is only sent once the answer is visible."""
    id: uuid.UUID
    front: str
    back: Optional[str] = None


class DueCardsResponse(BaseModel):
    """Due cards for the caller."""
    items: List[CardResponse]
    total_due: int


class ReviewStepResponse(BaseModel):
    """Session view after a review action."""
    session_id: uuid.UUID
    mode: ReviewMode
    state: SessionState
    position: int
    total: int
    knew_count: int
    did_not_know_count: int
    is_complete: bool
    card: Optional[CardPrompt] = None
    graded_card: Optional[CardResponse] = None
    match: Optional[MatchResult] = None
    rating: Optional[Rating] = None


class RateRequest(BaseModel):
    """Self-assessed rating in reveal mode."""
    rating: Rating


class AnswerRequest(BaseModel):
    """Typed answer in typing mode."""
    text: str = Field(..., max_length=1000)


class PartialDecisionRequest(BaseModel):
    """How to count a close-but-not-exact answer."""
    count_as_correct: bool


class IntervalPreviewResponse(BaseModel):
    """Next interval per rating, formatted for buttons."""
    card_id: uuid.UUID
    intervals: Dict[str, str]  # rating name -> "10m", "3d", ...


class DayActivity(BaseModel):
    date: date
    cards_reviewed: int
    goal_reached: bool


class StatsResponse(BaseModel):
    """Today's progress, card counts and streaks."""
    reviewed_today: int
    daily_goal: int
    total_cards: int
    learned_cards: int
    current_streak: int
    longest_streak: int
    weekly_history: List[DayActivity] = []
