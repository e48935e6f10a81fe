"""Read interfaces the slot engine queries, and their SQLAlchemy implementations.

The engine only sees the records and protocols defined here. Weekdays cross
this boundary as ``Weekday`` members and are turned into the stored lowercase
names inside the SQL stores.
"""

import asyncio
from datetime import datetime
from enum import Enum
from typing import Callable, Protocol

from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from backend.models.appointment import Appointment
from backend.models.availability import DoctorAvailability
from backend.scheduling.weekdays import Weekday


class AppointmentStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class AvailabilityWindow(BaseModel):
    doctor_id: str | None = None
    day_of_week: str | None = None
    start_time: str
    end_time: str

    class Config:
        from_attributes = True


class AppointmentRecord(BaseModel):
    id: int | str | None = None
    scheduled_at: datetime | None = None
    status: str | None = None

    class Config:
        from_attributes = True

    @property
    def is_cancelled(self) -> bool:
        return (self.status or '').strip().lower() == AppointmentStatus.CANCELLED.value


class AvailabilityStore(Protocol):
    async def fetch_windows(self, doctor_id: str, weekday: Weekday) -> list[AvailabilityWindow]:
        ...

    async def list_windows(self, doctor_id: str) -> list[AvailabilityWindow]:
        ...


class AppointmentStore(Protocol):
    async def fetch_appointments(
        self,
        doctor_id: str,
        range_start: datetime,
        range_end: datetime,
    ) -> list[AppointmentRecord]:
        ...


class SqlAvailabilityStore:
    """Reads ``doctor_availability`` rows through a fresh session per query."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    async def fetch_windows(self, doctor_id: str, weekday: Weekday) -> list[AvailabilityWindow]:
        return await asyncio.to_thread(self._query_windows, doctor_id, weekday.store_name)

    async def list_windows(self, doctor_id: str) -> list[AvailabilityWindow]:
        return await asyncio.to_thread(self._query_windows, doctor_id, None)

    def _query_windows(self, doctor_id: str, day_of_week: str | None) -> list[AvailabilityWindow]:
        db = self.session_factory()
        try:
            query = db.query(DoctorAvailability).filter(DoctorAvailability.doctor_id == doctor_id)
            if day_of_week is not None:
                query = query.filter(DoctorAvailability.day_of_week == day_of_week)
            rows = query.order_by(DoctorAvailability.start_time.asc()).all()
            return [AvailabilityWindow.model_validate(row) for row in rows]
        finally:
            db.close()


class SqlAppointmentStore:
    """Reads non-cancelled ``appointments`` rows scheduled inside a closed range."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    async def fetch_appointments(
        self,
        doctor_id: str,
        range_start: datetime,
        range_end: datetime,
    ) -> list[AppointmentRecord]:
        return await asyncio.to_thread(self._query_appointments, doctor_id, range_start, range_end)

    def _query_appointments(
        self,
        doctor_id: str,
        range_start: datetime,
        range_end: datetime,
    ) -> list[AppointmentRecord]:
        db = self.session_factory()
        try:
            rows = db.query(Appointment).filter(
                Appointment.doctor_id == doctor_id,
                Appointment.scheduled_at >= range_start,
                Appointment.scheduled_at <= range_end,
                or_(
                    Appointment.status.is_(None),
                    Appointment.status != AppointmentStatus.CANCELLED.value,
                ),
            ).order_by(Appointment.scheduled_at.asc()).all()
            return [AppointmentRecord.model_validate(row) for row in rows]
        finally:
            db.close()
