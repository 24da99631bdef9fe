import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .domain.scheduling.enums import (
    RELEASING_STATUSES,
    AppointmentStatus,
    AppointmentType,
    TechnicianState,
    UserRole,
)


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


def _enum_column(enum_cls):
    return Enum(enum_cls, native_enum=False, length=30, validate_strings=True)


# Rows in a releasing status are excluded from the per-technician slot uniqueness
_ACTIVE_APPOINTMENT_PREDICATE = text(
    "status NOT IN ({})".format(", ".join(f"'{status.value}'" for status in RELEASING_STATUSES))
)


class User(Base):
    """Identity record mirrored from the external identity service"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    role = Column(_enum_column(UserRole), nullable=False, default=UserRole.CLIENT)
    created_at = Column(DateTime, server_default=func.now())

    vehicles = relationship("Vehicle", back_populates="owner")


class Vehicle(Base):
    """Vehicle snapshot owned by the vehicle registry"""

    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    brand = Column(String(100), nullable=False)
    model = Column(String(100), nullable=True)
    license_plate = Column(String(20), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

    owner = relationship("User", back_populates="vehicles")
    appointments = relationship("Appointment", back_populates="vehicle")


class Technician(Base):
    __tablename__ = "technicians"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, unique=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    position = Column(String(100), nullable=False, default="Technician")
    # Only AVAILABLE technicians take part in availability and rotation
    state = Column(
        _enum_column(TechnicianState), nullable=False, default=TechnicianState.AVAILABLE, index=True
    )
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointments = relationship("Appointment", back_populates="technician")


TECHNICIAN_SLOT_INDEX = "uq_appointment_technician_slot"


class Appointment(Base):
    """Workshop appointment. Never deleted; cancellation is the terminal mutation."""

    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_appointment_end_after_start"),
        Index(
            TECHNICIAN_SLOT_INDEX,
            "technician_id",
            "appointment_date",
            "start_time",
            unique=True,
            sqlite_where=_ACTIVE_APPOINTMENT_PREDICATE,
            postgresql_where=_ACTIVE_APPOINTMENT_PREDICATE,
        ),
        Index("ix_appointment_technician_date", "technician_id", "appointment_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )

    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    # Null only before the booking transaction commits
    technician_id = Column(Integer, ForeignKey("technicians.id"), nullable=True)

    appointment_type = Column(_enum_column(AppointmentType), nullable=False)
    appointment_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(
        _enum_column(AppointmentStatus),
        nullable=False,
        default=AppointmentStatus.SCHEDULED,
        index=True,
    )

    current_mileage = Column(Integer, nullable=True)
    client_notes = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)  # Set only when CANCELLED

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    vehicle = relationship("Vehicle", back_populates="appointments")
    technician = relationship("Technician", back_populates="appointments")
