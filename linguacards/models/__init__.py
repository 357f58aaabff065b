"""LinguaCards - Database Models."""
from linguacards.models.card import Card, ReviewLog
from linguacards.models.user import ReviewMode, User, UserStats

__all__ = [
    "Card",
    "ReviewLog",
    "ReviewMode",
    "User",
    "UserStats",
]
