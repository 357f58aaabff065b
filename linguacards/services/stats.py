"""
LinguaCards - Review Statistics Service
Daily activity history, card counts and goal streaks
"""
from datetime import date, datetime, timedelta
from typing import Optional

from linguacards.models.user import User, UserStats
from linguacards.services.repository import SqlReviewRepository


class StatsService:
    """
    Keeps a learner's review statistics current.

    A streak day is a day on which the daily goal was reached. The streak
    grows when yesterday was a streak day and restarts at 1 otherwise.
    """

    HISTORY_DAYS = 7

    def __init__(self, repository: SqlReviewRepository):
        self.repository = repository

    async def get_or_create_stats(self, user_id: int) -> UserStats:
        stats = await self.repository.get_stats(user_id)
        if stats is None:
            stats = UserStats(
                user_id=user_id,
                total_cards=0,
                learned_cards=0,
                current_streak=0,
                longest_streak=0,
                weekly_history=[],
            )
            await self.repository.add_stats(stats)
        return stats

    @staticmethod
    def today_progress(user: User, today: date) -> tuple[int, int]:
        """(reviewed today, daily goal)."""
        return user.reviewed_on(today), user.daily_goal

    async def update_after_review(self, user: User, today: date, now: datetime) -> UserStats:
        """
        Record one review in the learner's statistics.

        `user` must reflect the daily counter after this review.
        """
        stats = await self.get_or_create_stats(user.id)
        stats.last_activity_at = now

        history = [dict(day) for day in (stats.weekly_history or [])]
        today_key = today.isoformat()
        today_entry = next((day for day in history if day["date"] == today_key), None)
        if today_entry is None:
            today_entry = {"date": today_key, "cards_reviewed": 0, "goal_reached": False}
            history.append(today_entry)
        today_entry["cards_reviewed"] += 1

        reviewed, goal = self.today_progress(user, today)
        if reviewed >= goal and not today_entry["goal_reached"]:
            today_entry["goal_reached"] = True
            self._extend_streak(stats, history, today)

        oldest = (today - timedelta(days=self.HISTORY_DAYS - 1)).isoformat()
        # Reassign so the JSON column is flagged dirty
        stats.weekly_history = sorted(
            (day for day in history if day["date"] >= oldest),
            key=lambda day: day["date"],
        )

        stats.total_cards, stats.learned_cards = await self.repository.count_cards(user.id)
        return stats

    @staticmethod
    def _extend_streak(stats: UserStats, history: list, today: date) -> None:
        yesterday_key = (today - timedelta(days=1)).isoformat()
        yesterday = next((day for day in history if day["date"] == yesterday_key), None)

        if yesterday is not None and yesterday.get("goal_reached"):
            stats.current_streak = (stats.current_streak or 0) + 1
        else:
            stats.current_streak = 1
        stats.longest_streak = max(stats.longest_streak or 0, stats.current_streak)

    @staticmethod
    def current_streak(stats: UserStats, today: date) -> int:
        """
        The streak as of `today`.

        The stored streak is only updated when a goal is reached, so it is
        broken once neither today nor yesterday reached the goal.
        """
        if not stats.current_streak:
            return 0
        recent = {today.isoformat(), (today - timedelta(days=1)).isoformat()}
        for day in stats.weekly_history or []:
            if day["date"] in recent and day.get("goal_reached"):
                return stats.current_streak
        return 0

    async def get_summary(self, user: User, today: date) -> dict:
        stats: Optional[UserStats] = await self.repository.get_stats(user.id)
        reviewed, goal = self.today_progress(user, today)
        return {
            "reviewed_today": reviewed,
            "daily_goal": goal,
            "total_cards": stats.total_cards if stats else 0,
            "learned_cards": stats.learned_cards if stats else 0,
            "current_streak": self.current_streak(stats, today) if stats else 0,
            "longest_streak": stats.longest_streak if stats else 0,
            "weekly_history": list(stats.weekly_history or []) if stats else [],
        }
