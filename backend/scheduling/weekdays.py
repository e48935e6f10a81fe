from datetime import date
from enum import Enum


class Weekday(Enum):
    """Days of the week, valued by their lowercase English name as stored."""

    SUNDAY = 'sunday'
    MONDAY = 'monday'
    TUESDAY = 'tuesday'
    WEDNESDAY = 'wednesday'
    THURSDAY = 'thursday'
    FRIDAY = 'friday'
    SATURDAY = 'saturday'

    @classmethod
    def from_date(cls, value: date) -> 'Weekday':
        # date.weekday() counts from Monday
        return _BY_PYTHON_WEEKDAY[value.weekday()]

    @classmethod
    def from_store_name(cls, name: str) -> 'Weekday':
        return cls(name.strip().lower())

    @property
    def store_name(self) -> str:
        return self.value

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


_BY_PYTHON_WEEKDAY = (
    Weekday.MONDAY,
    Weekday.TUESDAY,
    Weekday.WEDNESDAY,
    Weekday.THURSDAY,
    Weekday.FRIDAY,
    Weekday.SATURDAY,
    Weekday.SUNDAY,
)

WEEK_ORDER = (
    Weekday.SUNDAY,
    Weekday.MONDAY,
    Weekday.TUESDAY,
    Weekday.WEDNESDAY,
    Weekday.THURSDAY,
    Weekday.FRIDAY,
    Weekday.SATURDAY,
)
