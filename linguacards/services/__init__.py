"""LinguaCards - Services initialization."""
from linguacards.services.due_selector import DueCardSelector
from linguacards.services.reminders import (
    LoggingReminderDispatcher,
    ReminderDispatcher,
    ReminderScheduler,
    ReminderService,
)
from linguacards.services.repository import ReviewRepository, SqlReviewRepository
from linguacards.services.review import ReviewService, ReviewStep
from linguacards.services.stats import StatsService
