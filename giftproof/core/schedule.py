"""
Reveal timing: which days may be disclosed at a given moment.

Day ``d`` is locked before its calendar day, shows only its hint during that
day (UTC), and is fully revealed from the next day on.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

from dateutil import parser as date_parser

from giftproof.core.errors import IndexOutOfRange
from giftproof.core.models import DEFAULT_BATCH_SIZE, RevealPhase


def parse_date(value: Union[str, date, datetime]) -> date:
    """Parse an ISO-8601 date or timestamp into a UTC calendar date."""
    if isinstance(value, str):
        value = date_parser.isoparse(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


class RevealSchedule:
    """Maps days of a season onto calendar dates."""

    def __init__(
        self,
        season_start: Union[str, date, datetime],
        batch_size: int = DEFAULT_BATCH_SIZE,
        allow_future_reveals: bool = False,
    ):
        self.season_start = parse_date(season_start)
        self.batch_size = batch_size
        self.allow_future_reveals = allow_future_reveals

    def day_date(self, day: int) -> date:
        """Calendar date on which ``day`` enters its hint phase."""
        if not 1 <= day <= self.batch_size:
            raise IndexOutOfRange(f"Day must be between 1 and {self.batch_size}")
        return self.season_start + timedelta(days=day - 1)

    def phase(self, day: int, now: Optional[datetime] = None) -> RevealPhase:
        reveal_date = self.day_date(day)
        if self.allow_future_reveals:
            return RevealPhase.REVEALED

        today = parse_date(now or datetime.now(timezone.utc))
        if today < reveal_date:
            return RevealPhase.LOCKED
        if today == reveal_date:
            return RevealPhase.HINT
        return RevealPhase.REVEALED

    def revealable_days(self, now: Optional[datetime] = None):
        """Days whose full reveal may be published at ``now``."""
        return [
            day for day in range(1, self.batch_size + 1)
            if self.phase(day, now) is RevealPhase.REVEALED
        ]
