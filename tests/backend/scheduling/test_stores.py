import asyncio
import os
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from backend.core import config  # noqa: E402
from backend.database import Base  # noqa: E402
from backend.models.appointment import Appointment  # noqa: E402
from backend.models.availability import DoctorAvailability  # noqa: E402
from backend.scheduling.slots import build_occupied_times  # noqa: E402
from backend.scheduling.stores import SqlAppointmentStore, SqlAvailabilityStore  # noqa: E402
from backend.scheduling.weekdays import Weekday  # noqa: E402

UTC = ZoneInfo('UTC')


@pytest.fixture
def session_factory():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=[DoctorAvailability.__table__, Appointment.__table__])
    try:
        yield testing_session_local
    finally:
        Base.metadata.drop_all(bind=engine, tables=[Appointment.__table__, DoctorAvailability.__table__])
        engine.dispose()


def _add(session_factory, *rows) -> None:
    db = session_factory()
    try:
        db.add_all(rows)
        db.commit()
    finally:
        db.close()


def test_fetch_windows_filters_by_doctor_and_day(session_factory) -> None:
    _add(
        session_factory,
        DoctorAvailability(doctor_id='doc-1', day_of_week='monday', start_time='14:00', end_time='16:00'),
        DoctorAvailability(doctor_id='doc-1', day_of_week='monday', start_time='09:00', end_time='12:00'),
        DoctorAvailability(doctor_id='doc-1', day_of_week='tuesday', start_time='09:00', end_time='12:00'),
        DoctorAvailability(doctor_id='doc-2', day_of_week='monday', start_time='08:00', end_time='09:00'),
    )
    store = SqlAvailabilityStore(session_factory)

    windows = asyncio.run(store.fetch_windows('doc-1', Weekday.MONDAY))

    assert [(window.start_time, window.end_time) for window in windows] == [('09:00', '12:00'), ('14:00', '16:00')]
    assert {window.day_of_week for window in windows} == {'monday'}


def test_list_windows_returns_every_day(session_factory) -> None:
    _add(
        session_factory,
        DoctorAvailability(doctor_id='doc-1', day_of_week='friday', start_time='09:00', end_time='12:00'),
        DoctorAvailability(doctor_id='doc-1', day_of_week='sunday', start_time='10:00', end_time='11:00'),
    )
    store = SqlAvailabilityStore(session_factory)

    windows = asyncio.run(store.list_windows('doc-1'))

    assert sorted(window.day_of_week for window in windows) == ['friday', 'sunday']


def test_fetch_appointments_returns_active_bookings_within_range(session_factory) -> None:
    _add(
        session_factory,
        Appointment(doctor_id='doc-1', scheduled_at=datetime(2026, 1, 5, 9, 47), status='confirmed'),
        Appointment(doctor_id='doc-1', scheduled_at=datetime(2026, 1, 5, 10, 0), status='cancelled'),
        Appointment(doctor_id='doc-1', scheduled_at=datetime(2026, 1, 5, 23, 30), status='completed'),
        Appointment(doctor_id='doc-1', scheduled_at=datetime(2026, 1, 6, 9, 0), status='pending'),
        Appointment(doctor_id='doc-2', scheduled_at=datetime(2026, 1, 5, 9, 0), status='pending'),
    )
    store = SqlAppointmentStore(session_factory)

    appointments = asyncio.run(
        store.fetch_appointments(
            'doc-1',
            datetime(2026, 1, 5, 0, 0, tzinfo=UTC),
            datetime(2026, 1, 5, 23, 59, 59, 999999, tzinfo=UTC),
        )
    )

    assert [appointment.scheduled_at.replace(tzinfo=None) for appointment in appointments] == [
        datetime(2026, 1, 5, 9, 47),
        datetime(2026, 1, 5, 23, 30),
    ]
    assert [appointment.status for appointment in appointments] == ['confirmed', 'completed']


def test_appointments_keep_their_instant_outside_utc(session_factory, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'CLINIC_TIMEZONE', 'America/New_York')
    clinic = ZoneInfo('America/New_York')
    _add(
        session_factory,
        Appointment(doctor_id='doc-1', scheduled_at=datetime(2026, 1, 5, 14, 47, tzinfo=UTC), status='confirmed'),
        Appointment(doctor_id='doc-1', scheduled_at=datetime(2026, 1, 5, 10, 15), status='pending'),
        Appointment(doctor_id='doc-1', scheduled_at=datetime(2026, 1, 6, 3, 0, tzinfo=UTC), status='pending'),
        Appointment(doctor_id='doc-1', scheduled_at=datetime(2026, 1, 5, 4, 0, tzinfo=UTC), status='pending'),
    )
    store = SqlAppointmentStore(session_factory)

    appointments = asyncio.run(
        store.fetch_appointments(
            'doc-1',
            datetime(2026, 1, 5, 0, 0, tzinfo=clinic),
            datetime(2026, 1, 5, 23, 59, 59, 999999, tzinfo=clinic),
        )
    )

    assert [appointment.scheduled_at for appointment in appointments] == [
        datetime(2026, 1, 5, 14, 47, tzinfo=UTC),
        datetime(2026, 1, 5, 15, 15, tzinfo=UTC),
        datetime(2026, 1, 6, 3, 0, tzinfo=UTC),
    ]
    assert build_occupied_times(appointments, clinic) == {
        datetime(2026, 1, 5, 9, 30, tzinfo=clinic),
        datetime(2026, 1, 5, 10, 0, tzinfo=clinic),
        datetime(2026, 1, 5, 22, 0, tzinfo=clinic),
    }
