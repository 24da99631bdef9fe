"""Cancellation and technician reassignment"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Appointment
from ...services.notification_service import NotificationKind
from ...shared.validators import validate_non_blank
from .availability import SlotAvailabilityCalculator
from .enums import CANCELLABLE_STATUSES, RELEASING_STATUSES, AppointmentStatus
from .exceptions import (
    AlreadyCancelled,
    AppointmentNotFound,
    SchedulingValidationError,
    TechnicianConflict,
    TechnicianNotFound,
)
from .locking import DaySchedulingLocks, day_locks
from .repository import AppointmentRepository, TechnicianRepository, is_slot_conflict
from .service import notify_safely

logger = logging.getLogger(__name__)


class AppointmentCancellationService:
    """Cancels appointments and moves them between technicians without changing their time"""

    def __init__(self, db: Session, notifier=None, locks: Optional[DaySchedulingLocks] = None):
        self.db = db
        self.notifier = notifier
        self.locks = locks or day_locks
        self.availability = SlotAvailabilityCalculator(db)
        self.appointments = AppointmentRepository()
        self.technicians = TechnicianRepository()

    def cancel_appointment(self, appointment_id: int, reason: str, notify: bool = True) -> Appointment:
        appointment = self.appointments.get_by_id(self.db, appointment_id)
        if not appointment:
            raise AppointmentNotFound("Appointment not found", appointment_id=appointment_id)
        return self._cancel(appointment, reason, notify)

    def cancel_client_appointment(self, client_id: int, appointment_id: int, reason: str) -> Appointment:
        """Cancel one of the client's own appointments. Other clients' ids look unknown."""
        appointment = self.appointments.get_for_client(self.db, appointment_id, client_id)
        if not appointment:
            raise AppointmentNotFound("Appointment not found", appointment_id=appointment_id)
        return self._cancel(appointment, reason, notify=True)

    def reassign_technician(
        self, appointment_id: int, new_technician_id: int, notify: bool = True
    ) -> Appointment:
        appointment = self.appointments.get_by_id(self.db, appointment_id)
        if not appointment:
            raise AppointmentNotFound("Appointment not found", appointment_id=appointment_id)
        if appointment.status in RELEASING_STATUSES:
            raise SchedulingValidationError(
                f"A {appointment.status.value} appointment cannot be reassigned",
                appointment_id=appointment_id,
                status=appointment.status.value,
            )

        technician = self.technicians.get_technician(self.db, new_technician_id)
        if not technician:
            raise TechnicianNotFound("Technician not found", technician_id=new_technician_id)

        if appointment.technician_id == new_technician_id:
            return appointment

        with self.locks.hold(appointment.appointment_date):
            if not self.availability.is_technician_free(
                new_technician_id,
                appointment.appointment_date,
                appointment.start_time,
                appointment.end_time,
                exclude_appointment_id=appointment.id,
            ):
                raise TechnicianConflict(
                    "The technician is not available at the appointment time",
                    technician_id=new_technician_id,
                    appointment_id=appointment.id,
                )

            previous_technician_id = appointment.technician_id
            try:
                appointment = self.appointments.update(
                    self.db, appointment, technician_id=new_technician_id
                )
            except IntegrityError as e:
                self.db.rollback()
                if not is_slot_conflict(e):
                    raise
                raise TechnicianConflict(
                    "The technician is not available at the appointment time",
                    technician_id=new_technician_id,
                    appointment_id=appointment_id,
                ) from e

        logger.info(
            f"🔁 Appointment {appointment.id} reassigned from technician "
            f"{previous_technician_id} to {new_technician_id}"
        )
        if notify:
            notify_safely(self.notifier, appointment, NotificationKind.UPDATED)
        return appointment

    def _cancel(self, appointment: Appointment, reason: str, notify: bool) -> Appointment:
        if appointment.status == AppointmentStatus.CANCELLED:
            raise AlreadyCancelled("The appointment is already cancelled", appointment_id=appointment.id)
        if appointment.status not in CANCELLABLE_STATUSES:
            raise SchedulingValidationError(
                f"A {appointment.status.value} appointment cannot be cancelled",
                appointment_id=appointment.id,
                status=appointment.status.value,
            )
        try:
            reason = validate_non_blank(reason, "Cancellation reason")
        except ValueError as e:
            raise SchedulingValidationError(str(e), appointment_id=appointment.id) from e

        appointment = self.appointments.update(
            self.db,
            appointment,
            status=AppointmentStatus.CANCELLED,
            cancellation_reason=reason,
        )
        logger.info(f"✅ Appointment {appointment.id} cancelled: {reason}")

        if notify:
            notify_safely(self.notifier, appointment, NotificationKind.CANCELLED, reason)
        return appointment
