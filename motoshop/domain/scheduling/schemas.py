"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, field_validator

from .enums import AppointmentStatus, AppointmentType
from .rules import ScheduleRules


def _validate_mileage(v):
    if v is not None and v < 0:
        raise ValueError("Mileage cannot be negative")
    return v


def _validate_local_time(v):
    if v is not None and v.tzinfo is not None:
        raise ValueError("Start time must be a local time without a UTC offset")
    return v


class AppointmentCreate(BaseModel):
    """Schema for a client booking"""

    vehicle_id: int
    appointment_type: AppointmentType
    appointment_date: date
    start_time: time
    client_notes: Optional[str] = None
    current_mileage: Optional[int] = None

    @field_validator("current_mileage")
    @classmethod
    def validate_mileage(cls, v):
        return _validate_mileage(v)

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v):
        return _validate_local_time(v)


class UnplannedAppointmentCreate(BaseModel):
    """Schema for an admin booking outside the rule table"""

    vehicle_id: int
    appointment_date: date
    start_time: time
    # Only sets the duration; the stored type is UNPLANNED
    appointment_type: Optional[AppointmentType] = None
    technician_id: Optional[int] = None
    admin_notes: Optional[str] = None
    current_mileage: Optional[int] = None
    enforce_business_hours: bool = False

    @field_validator("current_mileage")
    @classmethod
    def validate_mileage(cls, v):
        return _validate_mileage(v)

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v):
        return _validate_local_time(v)


class CancelAppointmentRequest(BaseModel):
    reason: str
    notify: bool = True


class ClientCancelAppointmentRequest(BaseModel):
    reason: str


class ReassignTechnicianRequest(BaseModel):
    technician_id: int
    notify: bool = True


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: int
    public_id: str
    appointment_type: AppointmentType
    status: AppointmentStatus
    appointment_date: date
    start_time: time
    end_time: time
    reception_deadline: time
    vehicle_id: int
    license_plate: Optional[str] = None
    vehicle_brand: Optional[str] = None
    vehicle_model: Optional[str] = None
    technician_id: Optional[int] = None
    technician_name: Optional[str] = None
    client_notes: Optional[str] = None
    admin_notes: Optional[str] = None
    current_mileage: Optional[int] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_appointment(cls, appointment) -> "AppointmentResponse":
        vehicle = appointment.vehicle
        technician = appointment.technician
        return cls(
            id=appointment.id,
            public_id=appointment.public_id,
            appointment_type=appointment.appointment_type,
            status=appointment.status,
            appointment_date=appointment.appointment_date,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            reception_deadline=ScheduleRules.reception_deadline(
                appointment.appointment_date, appointment.start_time
            ),
            vehicle_id=appointment.vehicle_id,
            license_plate=vehicle.license_plate if vehicle else None,
            vehicle_brand=vehicle.brand if vehicle else None,
            vehicle_model=vehicle.model if vehicle else None,
            technician_id=appointment.technician_id,
            technician_name=technician.full_name if technician else None,
            client_notes=appointment.client_notes,
            admin_notes=appointment.admin_notes,
            current_mileage=appointment.current_mileage,
            cancellation_reason=appointment.cancellation_reason,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
        )


class AvailableSlot(BaseModel):
    start_time: time
    end_time: time
    available_technicians: int
    reception_deadline: time


class AvailableSlotsResponse(BaseModel):
    appointment_date: date
    appointment_type: AppointmentType
    slots: list[AvailableSlot]


class PlateRestrictionResponse(BaseModel):
    license_plate: str
    appointment_date: date
    restricted: bool
    restricted_weekday: Optional[str] = None
    message: str


class ReworkRedirectResponse(BaseModel):
    """Returned instead of slots or a booking for rework requests"""

    requires_contact: bool = True
    message: str
    whatsapp_url: str
    phone: str
    business_hours: Optional[str] = None
