"""Current-time source for slot computations.

The slot engine compares generated slots against "now" when the requested
date is today. Passing a clock in keeps that comparison replaceable in tests.
"""

from datetime import datetime, tzinfo

from backend.core import config


class Clock:
    """Reads the wall clock in the clinic timezone."""

    def __init__(self, timezone: tzinfo | None = None):
        self.timezone = timezone or config.get_clinic_timezone()

    def now(self) -> datetime:
        return datetime.now(self.timezone)


class FixedClock(Clock):
    """Always reports the same moment. Naive moments are taken as clinic-local."""

    def __init__(self, moment: datetime, timezone: tzinfo | None = None):
        super().__init__(timezone)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self.timezone)
        self.moment = moment.astimezone(self.timezone)

    def now(self) -> datetime:
        return self.moment
