"""Scheduling service - Booking workflows for clients and admins"""

import logging
from datetime import date, time
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import WORKSHOP_BUSINESS_HOURS, WORKSHOP_PHONE, WORKSHOP_WHATSAPP_URL
from ...models import Appointment, Vehicle
from ...services.notification_service import AppointmentNotification, NotificationKind
from ...shared.validators import normalize_plate
from .assignment import TechnicianAssigner
from .availability import SlotAvailability, SlotAvailabilityCalculator
from .enums import AppointmentStatus, AppointmentType, TechnicianState
from .exceptions import (
    BrandNotEligible,
    LicensePlateRestricted,
    NoTechnicianAvailable,
    ReworkRequiresContact,
    SchedulingValidationError,
    TechnicianConflict,
    TechnicianNotFound,
    VehicleNotFound,
    VehicleNotOwned,
)
from .locking import DaySchedulingLocks, day_locks
from .plate_restriction import WEEKDAY_NAMES, is_plate_restricted, last_digit, restricted_weekday
from .repository import AppointmentRepository, TechnicianRepository, VehicleRepository, is_slot_conflict
from .rules import ScheduleRules, schedule_rules

logger = logging.getLogger(__name__)

# One retry after losing a commit race to another process
COMMIT_ATTEMPTS = 2


def rework_contact_redirect() -> ReworkRequiresContact:
    return ReworkRequiresContact(
        message=(
            "Rework requests are not booked online. "
            "Please contact the workshop so we can review your case."
        ),
        whatsapp_url=WORKSHOP_WHATSAPP_URL,
        phone=WORKSHOP_PHONE,
        business_hours=WORKSHOP_BUSINESS_HOURS,
    )


def notify_safely(notifier, appointment: Appointment, kind: NotificationKind, reason: Optional[str] = None):
    """Hand the event to the notifier. A failure here never undoes the committed change."""
    if notifier is None:
        return
    try:
        notifier.notify(AppointmentNotification.from_appointment(appointment), kind, reason)
    except Exception as e:
        logger.error(f"❌ Failed to queue {kind.value} notification for appointment {appointment.id}: {e}")


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


class AppointmentScheduler:
    """Service layer for booking appointments"""

    def __init__(
        self,
        db: Session,
        notifier=None,
        rules: Optional[ScheduleRules] = None,
        locks: Optional[DaySchedulingLocks] = None,
        clock: Callable[[], date] = date.today,
        window_days: Optional[int] = None,
    ):
        self.db = db
        self.notifier = notifier
        self.rules = rules or schedule_rules
        self.locks = locks or day_locks
        self.clock = clock
        self.availability = SlotAvailabilityCalculator(db, self.rules)
        self.assigner = TechnicianAssigner(db, window_days)
        self.appointments = AppointmentRepository()
        self.technicians = TechnicianRepository()
        self.vehicles = VehicleRepository()

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def get_available_slots(
        self, appointment_date: date, appointment_type: AppointmentType
    ) -> list[SlotAvailability]:
        if appointment_type == AppointmentType.REWORK:
            raise rework_contact_redirect()
        if not self.rules.is_working_day(appointment_date):
            raise SchedulingValidationError(
                "The workshop only schedules appointments Monday to Friday",
                date=appointment_date.isoformat(),
            )
        return self.availability.available_slots(appointment_date, appointment_type)

    def check_plate_restriction(
        self,
        appointment_date: date,
        vehicle_id: Optional[int] = None,
        license_plate: Optional[str] = None,
    ) -> dict:
        """Evaluate the plate rule for a vehicle (or a bare plate) on a date"""
        if vehicle_id is not None:
            vehicle = self.vehicles.get_vehicle(self.db, vehicle_id)
            if not vehicle:
                raise VehicleNotFound("Vehicle not found", vehicle_id=vehicle_id)
            license_plate = vehicle.license_plate
        elif not license_plate:
            raise SchedulingValidationError("A vehicle or a license plate is required")

        plate = normalize_plate(license_plate)
        restricted = is_plate_restricted(plate, appointment_date)
        digit = last_digit(plate)
        weekday = restricted_weekday(digit) if digit is not None else None

        if restricted:
            message = (
                f"Vehicles with plates ending in {digit} cannot circulate on "
                f"{WEEKDAY_NAMES[appointment_date.weekday()]}"
            )
        else:
            message = "The vehicle can circulate on the selected date"

        return {
            "license_plate": plate,
            "appointment_date": appointment_date,
            "restricted": restricted,
            "restricted_weekday": WEEKDAY_NAMES[weekday] if weekday is not None else None,
            "message": message,
        }

    # ------------------------------------------------------------------
    # Client booking
    # ------------------------------------------------------------------

    def schedule_appointment(
        self,
        client_id: int,
        vehicle_id: int,
        appointment_type: AppointmentType,
        appointment_date: date,
        start_time: time,
        client_notes: Optional[str] = None,
        current_mileage: Optional[int] = None,
    ) -> Appointment:
        """Book a rule-table slot for one of the client's vehicles"""
        appointment_type = AppointmentType(appointment_type)
        logger.info(
            f"📥 Booking {appointment_type.value} for client {client_id}, vehicle {vehicle_id} "
            f"on {appointment_date} {format_time(start_time)}"
        )

        self._validate_local_time(start_time)
        if appointment_type == AppointmentType.REWORK:
            raise rework_contact_redirect()
        if not self.rules.is_user_bookable(appointment_type):
            raise SchedulingValidationError(
                f"{appointment_type.value} appointments cannot be booked by clients",
                appointment_type=appointment_type.value,
            )

        vehicle = self._get_vehicle(vehicle_id)
        if vehicle.owner_id != client_id:
            logger.warning(f"⚠️ Client {client_id} tried to book vehicle {vehicle_id} they do not own")
            raise VehicleNotOwned("The vehicle does not belong to the current user", vehicle_id=vehicle_id)
        if not self.rules.is_brand_eligible(appointment_type, vehicle.brand):
            raise BrandNotEligible(
                f"{appointment_type.value} is only available for Auteco vehicles",
                appointment_type=appointment_type.value,
                brand=vehicle.brand,
            )

        self._validate_client_slot(appointment_type, appointment_date, start_time)
        self._validate_mileage(current_mileage)
        end_time = self._end_time(appointment_type, start_time)
        self._ensure_plate_allowed(vehicle, appointment_date)

        if not self.availability.free_technicians(appointment_date, start_time, end_time):
            raise self._no_technician(appointment_type, appointment_date, start_time)

        appointment = self._commit_with_rotation(
            appointment_type,
            appointment_date,
            start_time,
            end_time,
            vehicle_id=vehicle.id,
            appointment_type=appointment_type,
            client_notes=client_notes,
            current_mileage=current_mileage,
        )
        logger.info(
            f"✅ Appointment {appointment.id} scheduled with technician {appointment.technician_id}"
        )
        notify_safely(self.notifier, appointment, NotificationKind.CREATED)
        return appointment

    # ------------------------------------------------------------------
    # Admin unplanned booking
    # ------------------------------------------------------------------

    def schedule_unplanned_appointment(
        self,
        vehicle_id: int,
        appointment_date: date,
        start_time: time,
        appointment_type: Optional[AppointmentType] = None,
        technician_id: Optional[int] = None,
        admin_notes: Optional[str] = None,
        current_mileage: Optional[int] = None,
        enforce_business_hours: bool = False,
    ) -> Appointment:
        """
        Book outside the rule table. Slot, brand and bookability rules do not
        apply; the stored type is always UNPLANNED and the requested type only
        sets the duration. The plate restriction still applies.
        """
        duration_type = AppointmentType(appointment_type or AppointmentType.UNPLANNED)
        logger.info(
            f"📥 Booking unplanned appointment for vehicle {vehicle_id} on "
            f"{appointment_date} {format_time(start_time)} (duration of {duration_type.value})"
        )

        self._validate_local_time(start_time)
        vehicle = self._get_vehicle(vehicle_id)
        self._validate_mileage(current_mileage)
        end_time = self._end_time(duration_type, start_time)

        if enforce_business_hours and (
            not self.rules.is_within_business_hours(start_time) or self.rules.is_lunch_break(start_time)
        ):
            raise SchedulingValidationError(
                "The start time is outside business hours",
                start_time=format_time(start_time),
            )

        self._ensure_plate_allowed(vehicle, appointment_date)

        appointment_data = {
            "vehicle_id": vehicle.id,
            "appointment_type": AppointmentType.UNPLANNED,
            "admin_notes": admin_notes,
            "current_mileage": current_mileage,
        }

        if technician_id is not None:
            appointment = self._commit_with_technician(
                technician_id, appointment_date, start_time, end_time, **appointment_data
            )
        else:
            if not self.availability.free_technicians(appointment_date, start_time, end_time):
                raise self._no_technician(AppointmentType.UNPLANNED, appointment_date, start_time)
            appointment = self._commit_with_rotation(
                AppointmentType.UNPLANNED, appointment_date, start_time, end_time, **appointment_data
            )

        logger.info(
            f"✅ Unplanned appointment {appointment.id} scheduled with technician {appointment.technician_id}"
        )
        notify_safely(self.notifier, appointment, NotificationKind.CREATED)
        return appointment

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_vehicle(self, vehicle_id: int) -> Vehicle:
        vehicle = self.vehicles.get_vehicle(self.db, vehicle_id)
        if not vehicle:
            raise VehicleNotFound("Vehicle not found", vehicle_id=vehicle_id)
        return vehicle

    def _validate_client_slot(
        self, appointment_type: AppointmentType, appointment_date: date, start_time: time
    ) -> None:
        if appointment_date <= self.clock():
            raise SchedulingValidationError(
                "Appointments must be booked for a future date",
                date=appointment_date.isoformat(),
            )
        if not self.rules.is_working_day(appointment_date):
            raise SchedulingValidationError(
                "The workshop only schedules appointments Monday to Friday",
                date=appointment_date.isoformat(),
            )
        valid_slots = self.rules.valid_slots_for(appointment_type)
        if start_time not in valid_slots:
            raise SchedulingValidationError(
                f"{format_time(start_time)} is not a valid start time for {appointment_type.value}",
                start_time=format_time(start_time),
                valid_slots=[format_time(slot) for slot in valid_slots],
            )

    @staticmethod
    def _validate_local_time(start_time: time) -> None:
        if start_time.tzinfo is not None:
            raise SchedulingValidationError(
                "Start times are local workshop times without a UTC offset",
                start_time=start_time.isoformat(),
            )

    @staticmethod
    def _validate_mileage(current_mileage: Optional[int]) -> None:
        if current_mileage is not None and current_mileage < 0:
            raise SchedulingValidationError("Mileage cannot be negative", current_mileage=current_mileage)

    def _end_time(self, appointment_type: AppointmentType, start_time: time) -> time:
        end_time = self.rules.end_time_for(appointment_type, start_time)
        if end_time is None:
            raise SchedulingValidationError(
                "The appointment would end after midnight",
                start_time=format_time(start_time),
            )
        return end_time

    def _ensure_plate_allowed(self, vehicle: Vehicle, appointment_date: date) -> None:
        if is_plate_restricted(vehicle.license_plate, appointment_date):
            logger.info(f"🚫 Plate {vehicle.license_plate} is restricted on {appointment_date}")
            raise LicensePlateRestricted(
                "The vehicle cannot circulate on the selected date because of its license plate",
                license_plate=normalize_plate(vehicle.license_plate),
                date=appointment_date.isoformat(),
            )

    @staticmethod
    def _no_technician(
        appointment_type: AppointmentType, appointment_date: date, start_time: time
    ) -> NoTechnicianAvailable:
        return NoTechnicianAvailable(
            "No technician is available for the selected slot",
            appointment_type=appointment_type.value,
            date=appointment_date.isoformat(),
            start_time=format_time(start_time),
        )

    def _commit_with_rotation(
        self,
        rotation_type: AppointmentType,
        appointment_date: date,
        start_time: time,
        end_time: time,
        **appointment_data,
    ) -> Appointment:
        """
        Recompute candidates, rotate and insert under the day lock. A unique
        index violation means another process took the slot first; retry once
        against the refreshed candidate set.
        """
        with self.locks.hold(appointment_date):
            for attempt in range(1, COMMIT_ATTEMPTS + 1):
                candidates = self.availability.free_technicians(appointment_date, start_time, end_time)
                technician_id = self.assigner.assign(appointment_date, start_time, rotation_type, candidates)
                try:
                    return self.appointments.create(
                        self.db,
                        technician_id=technician_id,
                        appointment_date=appointment_date,
                        start_time=start_time,
                        end_time=end_time,
                        status=AppointmentStatus.SCHEDULED,
                        **appointment_data,
                    )
                except IntegrityError as e:
                    self.db.rollback()
                    if not is_slot_conflict(e):
                        raise
                    logger.warning(
                        f"⚠️ Commit race lost for technician {technician_id} on {appointment_date} "
                        f"{format_time(start_time)} (attempt {attempt}/{COMMIT_ATTEMPTS}): {e.orig}"
                    )

        raise self._no_technician(rotation_type, appointment_date, start_time)

    def _commit_with_technician(
        self,
        technician_id: int,
        appointment_date: date,
        start_time: time,
        end_time: time,
        **appointment_data,
    ) -> Appointment:
        technician = self.technicians.get_technician(self.db, technician_id)
        if not technician:
            raise TechnicianNotFound("Technician not found", technician_id=technician_id)
        if technician.state != TechnicianState.AVAILABLE:
            raise TechnicianConflict(
                "The technician is not available", technician_id=technician_id
            )

        with self.locks.hold(appointment_date):
            if not self.availability.is_technician_free(technician_id, appointment_date, start_time, end_time):
                raise TechnicianConflict(
                    "The technician already has an appointment at that time",
                    technician_id=technician_id,
                    date=appointment_date.isoformat(),
                    start_time=format_time(start_time),
                )
            try:
                return self.appointments.create(
                    self.db,
                    technician_id=technician_id,
                    appointment_date=appointment_date,
                    start_time=start_time,
                    end_time=end_time,
                    status=AppointmentStatus.SCHEDULED,
                    **appointment_data,
                )
            except IntegrityError as e:
                self.db.rollback()
                if not is_slot_conflict(e):
                    raise
                logger.warning(f"⚠️ Technician {technician_id} slot taken concurrently: {e.orig}")
                raise TechnicianConflict(
                    "The technician already has an appointment at that time",
                    technician_id=technician_id,
                    date=appointment_date.isoformat(),
                    start_time=format_time(start_time),
                ) from e
