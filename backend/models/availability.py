"""Doctor availability model definitions."""

from sqlalchemy import Column, Integer, String
from backend.database import Base


class DoctorAvailability(Base):
    """Represents a recurring weekly window in which a doctor takes appointments."""
    __tablename__ = "doctor_availability"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(String, nullable=False, index=True)
    day_of_week = Column(String, nullable=False)  # sunday..saturday
    start_time = Column(String, nullable=False)  # HH:MM or HH:MM:SS
    end_time = Column(String, nullable=False)
