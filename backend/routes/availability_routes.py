import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from backend.core.clock import Clock
from backend.database import SessionLocal, ensure_availability_schema, ensure_appointment_schema
from backend.scheduling.schedule import DaySchedule, summarize_weekly_schedule
from backend.scheduling.slots import get_available_slots, is_slot_available
from backend.scheduling.stores import (
    AppointmentStore,
    AvailabilityStore,
    SqlAppointmentStore,
    SqlAvailabilityStore,
)

router = APIRouter(tags=['availability'])

logger = logging.getLogger(__name__)

DEGRADED_HEADER = 'X-Slots-Degraded'


class AvailableSlotsResponse(BaseModel):
    doctor_id: str
    date: date
    slots: list[datetime]
    status: str
    failed_sources: list[str]


class SlotCheckResponse(BaseModel):
    doctor_id: str
    at: datetime
    available: bool


class WeeklyScheduleResponse(BaseModel):
    doctor_id: str
    days: list[DaySchedule]


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and Postgres credentials.',
        ) from exc


def prepare_slot_lookup() -> None:
    try:
        ensure_database_ready()
    except HTTPException:
        logger.warning('Schema check failed; slot lookups will run against the stores as-is.')


def get_availability_store() -> AvailabilityStore:
    return SqlAvailabilityStore(SessionLocal)


def get_appointment_store() -> AppointmentStore:
    return SqlAppointmentStore(SessionLocal)


def get_clock() -> Clock:
    return Clock()


@router.get('/doctors/{doctor_id}/slots', response_model=AvailableSlotsResponse)
async def list_available_slots(
    doctor_id: str,
    response: Response,
    slot_date: date = Query(..., alias='date'),
    availability_store: AvailabilityStore = Depends(get_availability_store),
    appointment_store: AppointmentStore = Depends(get_appointment_store),
    clock: Clock = Depends(get_clock),
):
    prepare_slot_lookup()

    result = await get_available_slots(
        doctor_id.strip(),
        slot_date,
        availability_store,
        appointment_store,
        clock=clock,
    )
    if result.is_degraded:
        response.headers[DEGRADED_HEADER] = 'true'

    return AvailableSlotsResponse(
        doctor_id=doctor_id,
        date=slot_date,
        slots=result.slots,
        status=result.status.value,
        failed_sources=result.failed_sources,
    )


@router.get('/doctors/{doctor_id}/slots/check', response_model=SlotCheckResponse)
async def check_slot(
    doctor_id: str,
    at: datetime = Query(...),
    availability_store: AvailabilityStore = Depends(get_availability_store),
    appointment_store: AppointmentStore = Depends(get_appointment_store),
    clock: Clock = Depends(get_clock),
):
    prepare_slot_lookup()

    available = await is_slot_available(
        doctor_id.strip(),
        at,
        availability_store,
        appointment_store,
        clock=clock,
    )

    return SlotCheckResponse(doctor_id=doctor_id, at=at, available=available)


@router.get('/doctors/{doctor_id}/schedule', response_model=WeeklyScheduleResponse)
async def get_weekly_schedule(
    doctor_id: str,
    availability_store: AvailabilityStore = Depends(get_availability_store),
):
    normalized_doctor_id = doctor_id.strip()
    if not normalized_doctor_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Doctor id is required.',
        )

    ensure_database_ready()

    try:
        windows = await availability_store.list_windows(normalized_doctor_id)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and Postgres credentials.',
        ) from exc

    return WeeklyScheduleResponse(
        doctor_id=normalized_doctor_id,
        days=summarize_weekly_schedule(windows),
    )
