import logging

from pydantic import BaseModel

from backend.scheduling.slots import parse_time_of_day
from backend.scheduling.stores import AvailabilityWindow
from backend.scheduling.weekdays import WEEK_ORDER, Weekday

logger = logging.getLogger(__name__)


class DaySchedule(BaseModel):
    day_of_week: str
    day: str
    windows: list[AvailabilityWindow]


def _window_sort_key(window: AvailabilityWindow) -> tuple:
    try:
        return (0, parse_time_of_day(window.start_time), window.end_time)
    except ValueError:
        return (1, None, window.start_time)


def summarize_weekly_schedule(windows: list[AvailabilityWindow]) -> list[DaySchedule]:
    """Group windows by weekday, Sunday first, skipping days with no windows."""
    by_day: dict[Weekday, list[AvailabilityWindow]] = {}
    for window in windows:
        try:
            weekday = Weekday.from_store_name(window.day_of_week or '')
        except ValueError:
            logger.warning('Ignoring availability window with unknown day %r.', window.day_of_week)
            continue
        by_day.setdefault(weekday, []).append(window)

    return [
        DaySchedule(
            day_of_week=weekday.store_name,
            day=weekday.display_name,
            windows=sorted(by_day[weekday], key=_window_sort_key),
        )
        for weekday in WEEK_ORDER
        if weekday in by_day
    ]
