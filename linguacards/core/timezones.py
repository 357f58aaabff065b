"""
LinguaCards - Timezone Helpers
Conversion of absolute instants into a learner's local wall-clock time
"""
import logging
from datetime import date, datetime, tzinfo

import pytz

from linguacards.core.config import settings

logger = logging.getLogger(__name__)


def resolve_timezone(name: str | None, default: str | None = None) -> tzinfo:
    """
    Look up an IANA timezone, falling back to the default zone.

    An unknown identifier is logged and never surfaced to the learner.
    """
    fallback = default or settings.DEFAULT_TIMEZONE
    if name:
        try:
            return pytz.timezone(name)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"Unknown timezone {name!r}, falling back to {fallback}")
    return pytz.timezone(fallback)


def to_local(now: datetime, tz_name: str | None) -> datetime:
    """Express an aware instant in the given zone."""
    return now.astimezone(resolve_timezone(tz_name))


def local_date(now: datetime, tz_name: str | None) -> date:
    """The calendar date at `now` in the given zone."""
    return to_local(now, tz_name).date()
