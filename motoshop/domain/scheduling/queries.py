"""Read-side queries for the admin console and the client's appointment screens"""

from datetime import date

from sqlalchemy.orm import Session

from ...models import Appointment
from .exceptions import AppointmentNotFound, SchedulingValidationError, VehicleNotFound
from .repository import AppointmentRepository, VehicleRepository

MAX_CALENDAR_DAYS = 62


class AppointmentQueries:
    def __init__(self, db: Session):
        self.db = db
        self.appointments = AppointmentRepository()
        self.vehicles = VehicleRepository()

    def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.appointments.get_by_id(self.db, appointment_id)
        if not appointment:
            raise AppointmentNotFound("Appointment not found", appointment_id=appointment_id)
        return appointment

    def get_client_appointment(self, client_id: int, appointment_id: int) -> Appointment:
        appointment = self.appointments.get_for_client(self.db, appointment_id, client_id)
        if not appointment:
            raise AppointmentNotFound("Appointment not found", appointment_id=appointment_id)
        return appointment

    def daily_agenda(self, agenda_date: date) -> list[Appointment]:
        """All appointments of the day ordered by start time"""
        return self.appointments.list_for_date(self.db, agenda_date)

    def calendar(self, start_date: date, end_date: date) -> list[Appointment]:
        if start_date > end_date:
            raise SchedulingValidationError(
                "The start date must not be after the end date",
                start=start_date.isoformat(),
                end=end_date.isoformat(),
            )
        if (end_date - start_date).days + 1 > MAX_CALENDAR_DAYS:
            raise SchedulingValidationError(
                f"The calendar range cannot exceed {MAX_CALENDAR_DAYS} days",
                start=start_date.isoformat(),
                end=end_date.isoformat(),
            )
        return self.appointments.list_between(self.db, start_date, end_date)

    def vehicle_history(self, vehicle_id: int) -> list[Appointment]:
        if not self.vehicles.get_vehicle(self.db, vehicle_id):
            raise VehicleNotFound("Vehicle not found", vehicle_id=vehicle_id)
        return self.appointments.list_for_vehicle(self.db, vehicle_id)

    def client_history(self, client_id: int) -> list[Appointment]:
        """Newest first"""
        return self.appointments.list_for_client(self.db, client_id)

    def client_vehicle_history(self, client_id: int, vehicle_id: int) -> list[Appointment]:
        if not self.vehicles.get_client_vehicle(self.db, vehicle_id, client_id):
            raise VehicleNotFound("Vehicle not found", vehicle_id=vehicle_id)
        return self.appointments.list_for_vehicle(self.db, vehicle_id)
