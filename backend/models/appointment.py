"""Appointment model definitions."""

from sqlalchemy import Column, Integer, String
from backend.database import Base, UTCDateTime


class Appointment(Base):
    """Represents a booked appointment with a doctor."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(String, nullable=False, index=True)
    patient_id = Column(String)
    scheduled_at = Column(UTCDateTime)  # naive UTC in storage
    status = Column(String, default="pending")  # pending/confirmed/completed/cancelled
    appointment_type = Column(String)  # online/hospital/home
    notes = Column(String)
