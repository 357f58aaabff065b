"""
LinguaCards - Review Errors
Exception hierarchy shared by the review core and its collaborators
"""


class ReviewError(Exception):
    """Base review error."""
    pass


class SessionExpired(ReviewError):
    """No live review session for the user; the review flow must be restarted."""
    pass


class SessionCompleted(ReviewError):
    """The session already reached its last card and accepts no more actions."""
    pass


class InvalidSessionAction(ReviewError):
    """The action is not valid in the session's current sub-state."""
    pass


class SchedulingUnavailable(ReviewError):
    """The scheduling engine could not produce a schedule."""
    pass


class UserNotFound(ReviewError):
    """The learner has no scheduling context."""
    pass


class RecipientUnreachable(ReviewError):
    """A reminder can never be delivered to this user (e.g. they blocked the bot)."""
    pass
