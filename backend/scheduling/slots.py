"""Bookable slot computation for a doctor on a single calendar date.

A doctor's recurring weekly windows are walked on a 30-minute grid. Slots that
collide with a non-cancelled appointment are removed, and so are slots that
have already started when the date is today. Store failures never abort the
computation: the failing fetch counts as empty and the result is flagged as
degraded.
"""

import asyncio
import logging
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Awaitable, Callable
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field

from backend.core.clock import Clock
from backend.scheduling.stores import (
    AppointmentRecord,
    AppointmentStore,
    AvailabilityStore,
    AvailabilityWindow,
)
from backend.scheduling.weekdays import Weekday

logger = logging.getLogger(__name__)

SLOT_INTERVAL_MINUTES = 30
AVAILABILITY_SOURCE = 'availability'
APPOINTMENTS_SOURCE = 'appointments'
UTC = ZoneInfo('UTC')


class SlotResultStatus(str, Enum):
    OK = 'ok'
    DEGRADED = 'degraded'


class SlotAvailabilityResult(BaseModel):
    doctor_id: str | None = None
    target_date: date | None = None
    slots: list[datetime] = Field(default_factory=list)
    status: SlotResultStatus = SlotResultStatus.OK
    failed_sources: list[str] = Field(default_factory=list)

    @property
    def is_degraded(self) -> bool:
        return self.status == SlotResultStatus.DEGRADED

    def matches(self, doctor_id: str | None, target_date: date | None) -> bool:
        """True when this result was computed for the given selection."""
        return self.doctor_id == doctor_id and self.target_date == target_date


def parse_time_of_day(value: str) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS[.fff]``. A bare hour is read as ``HH:00``.

    Seconds are validated but dropped, since slots start on whole minutes.
    """
    parts = (value or '').strip().split(':')
    if not 1 <= len(parts) <= 3:
        raise ValueError(f'Invalid time of day: {value!r}')

    if len(parts) == 3:
        parts[2], dot, fraction = parts[2].partition('.')
        if dot and not fraction.isdigit():
            raise ValueError(f'Invalid time of day: {value!r}')
    if not all(part.isdigit() for part in parts):
        raise ValueError(f'Invalid time of day: {value!r}')

    hour = int(parts[0])
    minute = int(parts[1]) if len(parts) > 1 else 0
    second = int(parts[2]) if len(parts) > 2 else 0
    if hour > 23 or minute > 59 or second > 59:
        raise ValueError(f'Invalid time of day: {value!r}')

    return time(hour, minute)


def to_local(moment: datetime, timezone: tzinfo) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone)
    return moment.astimezone(timezone)


def to_instant(moment: datetime, timezone: tzinfo) -> datetime:
    return to_local(moment, timezone).astimezone(UTC)


def normalize_target_date(target_date: date | datetime, timezone: tzinfo) -> date:
    if isinstance(target_date, datetime):
        return to_local(target_date, timezone).date()
    return target_date


def generate_window_slots(target_date: date, window: AvailabilityWindow, timezone: tzinfo) -> list[datetime]:
    """Slot starts for one window. Only the start has to fall before the window end.

    The grid advances in absolute time, so a daylight-saving change inside the
    window never yields a wall-clock time that does not exist or repeats.
    """
    start = datetime.combine(target_date, parse_time_of_day(window.start_time), tzinfo=timezone)
    end = datetime.combine(target_date, parse_time_of_day(window.end_time), tzinfo=timezone)
    step = timedelta(minutes=SLOT_INTERVAL_MINUTES)

    slots: list[datetime] = []
    current = start.astimezone(UTC)
    end = end.astimezone(UTC)
    while current < end:
        slots.append(current.astimezone(timezone))
        current += step

    return slots


def bucket_booked_time(scheduled_at: datetime, timezone: tzinfo) -> datetime:
    local = to_local(scheduled_at, timezone)
    minute = 0 if local.minute < 30 else 30
    return local.replace(minute=minute, second=0, microsecond=0)


def build_occupied_times(appointments: list[AppointmentRecord], timezone: tzinfo) -> set[datetime]:
    """Bucketed booking starts as UTC instants."""
    return {
        bucket_booked_time(appointment.scheduled_at, timezone).astimezone(UTC)
        for appointment in appointments
        if appointment.scheduled_at is not None and not appointment.is_cancelled
    }


async def _fetch_or_empty(
    source: str,
    fetch: Callable[[], Awaitable[list]],
    failed_sources: list[str],
) -> list:
    try:
        return list(await fetch() or [])
    except Exception:
        logger.exception('Fetching %s failed; continuing without it.', source)
        failed_sources.append(source)
        return []


async def get_available_slots(
    doctor_id: str | None,
    target_date: date | datetime | None,
    availability_store: AvailabilityStore,
    appointment_store: AppointmentStore,
    clock: Clock | None = None,
) -> SlotAvailabilityResult:
    if not doctor_id or not doctor_id.strip() or target_date is None:
        return SlotAvailabilityResult(
            doctor_id=doctor_id,
            target_date=target_date.date() if isinstance(target_date, datetime) else target_date,
        )

    clock = clock or Clock()
    timezone = clock.timezone
    slot_date = normalize_target_date(target_date, timezone)
    weekday = Weekday.from_date(slot_date)
    day_start = datetime.combine(slot_date, time.min, tzinfo=timezone)
    day_end = datetime.combine(slot_date, time.max, tzinfo=timezone)

    failed_sources: list[str] = []
    windows, appointments = await asyncio.gather(
        _fetch_or_empty(
            AVAILABILITY_SOURCE,
            lambda: availability_store.fetch_windows(doctor_id, weekday),
            failed_sources,
        ),
        _fetch_or_empty(
            APPOINTMENTS_SOURCE,
            lambda: appointment_store.fetch_appointments(doctor_id, day_start, day_end),
            failed_sources,
        ),
    )

    result = SlotAvailabilityResult(
        doctor_id=doctor_id,
        target_date=slot_date,
        status=SlotResultStatus.DEGRADED if failed_sources else SlotResultStatus.OK,
        failed_sources=sorted(failed_sources),
    )

    if not windows:
        logger.debug('Doctor %s has no availability on %s.', doctor_id, weekday.store_name)
        return result

    generated: set[datetime] = set()
    for window in windows:
        try:
            generated.update(slot.astimezone(UTC) for slot in generate_window_slots(slot_date, window, timezone))
        except ValueError:
            logger.warning(
                'Skipping malformed availability window %s-%s for doctor %s.',
                window.start_time,
                window.end_time,
                doctor_id,
            )

    occupied = build_occupied_times(appointments, timezone)
    now = to_instant(clock.now(), timezone)
    is_today = now.astimezone(timezone).date() == slot_date

    # generated, occupied and now are all UTC instants
    result.slots = [
        slot.astimezone(timezone)
        for slot in sorted(generated)
        if slot not in occupied and not (is_today and slot <= now)
    ]

    logger.debug(
        'Doctor %s on %s: %d window(s), %d generated, %d available.',
        doctor_id,
        slot_date.isoformat(),
        len(windows),
        len(generated),
        len(result.slots),
    )

    return result


async def is_slot_available(
    doctor_id: str | None,
    moment: datetime,
    availability_store: AvailabilityStore,
    appointment_store: AppointmentStore,
    clock: Clock | None = None,
) -> bool:
    """Whether the grid slot containing ``moment`` is currently offered."""
    clock = clock or Clock()
    slot_start = bucket_booked_time(moment, clock.timezone)

    result = await get_available_slots(
        doctor_id,
        slot_start.date(),
        availability_store,
        appointment_store,
        clock=clock,
    )
    if result.is_degraded:
        return False

    return slot_start.astimezone(UTC) in {slot.astimezone(UTC) for slot in result.slots}
