from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    # Professional information
    name = Column(String(200), nullable=False)
    department = Column(String(100), nullable=False)
    license_number = Column(String(50), nullable=False, unique=True)
    phone = Column(String(20), nullable=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="doctor")
    availability = relationship(
        "DoctorAvailability",
        back_populates="doctor",
        order_by="DoctorAvailability.position",
        cascade="all, delete-orphan",
    )
    appointments = relationship("Appointment", back_populates="doctor")

    def __repr__(self):
        return f"<Doctor(id={self.id}, name='{self.name}', department='{self.department}')>"

class DoctorAvailability(Base):
    """One recurring weekly slot; a start later than the end spans midnight."""
    __tablename__ = "doctor_availability"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    day = Column(String(10), nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM

    doctor = relationship("Doctor", back_populates="availability")

    def __repr__(self):
        return f"<DoctorAvailability(doctor_id={self.doctor_id}, day='{self.day}', {self.start_time}-{self.end_time})>"
