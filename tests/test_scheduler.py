from datetime import date, time, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from motoshop.domain.scheduling.enums import AppointmentStatus, AppointmentType, TechnicianState
from motoshop.domain.scheduling.exceptions import (
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
from motoshop.domain.scheduling.repository import AppointmentRepository, is_slot_conflict
from motoshop.domain.scheduling.service import AppointmentScheduler
from motoshop.models import Appointment
from motoshop.services.notification_service import NotificationKind

from .conftest import (
    MONDAY,
    TODAY,
    FailingNotifier,
    make_appointment,
    make_technician,
    make_user,
    make_vehicle,
)

SLOT_TAKEN = (
    "UNIQUE constraint failed: appointments.technician_id, "
    "appointments.appointment_date, appointments.start_time"
)
END_BEFORE_START = "CHECK constraint failed: ck_appointment_end_after_start"


def book(scheduler, client, vehicle, appointment_type=AppointmentType.OIL_CHANGE, start=time(8, 0), **kwargs):
    return scheduler.schedule_appointment(
        client_id=client.id,
        vehicle_id=vehicle.id,
        appointment_type=appointment_type,
        appointment_date=kwargs.pop("appointment_date", MONDAY),
        start_time=start,
        **kwargs,
    )


class TestClientBooking:
    def test_books_oil_change(self, scheduler, notifier, client_user, vehicle, technicians):
        appointment = book(scheduler, client_user, vehicle, client_notes="Noise in the chain", current_mileage=12000)

        assert appointment.status == AppointmentStatus.SCHEDULED
        assert appointment.appointment_type == AppointmentType.OIL_CHANGE
        assert appointment.start_time == time(8, 0)
        assert appointment.end_time == time(8, 30)
        assert appointment.technician_id == technicians[0].id
        assert appointment.current_mileage == 12000
        assert appointment.public_id

        notification, kind, reason = notifier.sent[0]
        assert kind == NotificationKind.CREATED
        assert notification.license_plate == "ABC123"
        assert notification.reception_deadline == "08:00"
        assert reason is None

    def test_rotation_spreads_bookings(self, scheduler, client_user, vehicle, technicians):
        assigned = [book(scheduler, client_user, vehicle, start=start).technician_id for start in (time(8, 0), time(8, 30), time(9, 0))]
        assert assigned == [technician.id for technician in technicians]

    def test_rework_redirects_to_contact(self, scheduler, client_user, vehicle, technicians):
        with pytest.raises(ReworkRequiresContact) as exc_info:
            book(scheduler, client_user, vehicle, appointment_type=AppointmentType.REWORK)

        payload = exc_info.value.to_dict()
        assert payload["requires_contact"] is True
        assert payload["whatsapp_url"].startswith("https://wa.me/")
        assert payload["phone"]

    def test_unplanned_is_not_client_bookable(self, scheduler, client_user, vehicle, technicians):
        with pytest.raises(SchedulingValidationError):
            book(scheduler, client_user, vehicle, appointment_type=AppointmentType.UNPLANNED)

    def test_unknown_vehicle(self, scheduler, client_user, technicians):
        with pytest.raises(VehicleNotFound):
            scheduler.schedule_appointment(client_user.id, 999, AppointmentType.OIL_CHANGE, MONDAY, time(8, 0))

    def test_vehicle_of_another_client(self, db, scheduler, vehicle, technicians):
        intruder = make_user(db, full_name="Pedro Perez")
        with pytest.raises(VehicleNotOwned):
            book(scheduler, intruder, vehicle)

    def test_brand_gating(self, scheduler, client_user, vehicle, technicians):
        with pytest.raises(BrandNotEligible):
            book(scheduler, client_user, vehicle, appointment_type=AppointmentType.AUTECO_WARRANTY, start=time(7, 30))

    def test_auteco_vehicle_can_book_warranty(self, scheduler, client_user, auteco_vehicle, technicians):
        appointment = book(
            scheduler, client_user, auteco_vehicle, appointment_type=AppointmentType.AUTECO_WARRANTY, start=time(13, 15)
        )
        assert appointment.end_time == time(15, 15)

    @pytest.mark.parametrize(
        "appointment_type,start",
        [
            (AppointmentType.OIL_CHANGE, time(8, 15)),
            (AppointmentType.OIL_CHANGE, time(7, 0)),
            (AppointmentType.MAINTENANCE, time(13, 0)),
            (AppointmentType.QUICK_SERVICE, time(7, 30)),
        ],
    )
    def test_start_must_be_a_rule_table_slot(self, scheduler, client_user, vehicle, technicians, appointment_type, start):
        with pytest.raises(SchedulingValidationError):
            book(scheduler, client_user, vehicle, appointment_type=appointment_type, start=start)

    @pytest.mark.parametrize("appointment_date", [TODAY, date(2024, 5, 31), date(2024, 6, 15)])
    def test_date_must_be_a_future_working_day(self, scheduler, client_user, vehicle, technicians, appointment_date):
        with pytest.raises(SchedulingValidationError):
            book(scheduler, client_user, vehicle, appointment_date=appointment_date)

    def test_plate_restriction_wins_over_free_technicians(self, db, scheduler, client_user, technicians):
        restricted = make_vehicle(db, client_user, license_plate="XYZ451")
        with pytest.raises(LicensePlateRestricted):
            book(scheduler, client_user, restricted)
        assert db.query(Appointment).count() == 0

    def test_plate_restriction_checked_before_availability(self, db, scheduler, client_user):
        restricted = make_vehicle(db, client_user, license_plate="XYZ452")
        with pytest.raises(LicensePlateRestricted):
            book(scheduler, client_user, restricted)

    def test_no_free_technician(self, db, scheduler, client_user, vehicle, technicians):
        for technician in technicians:
            make_appointment(db, vehicle, technician, start_time=time(8, 0))
        with pytest.raises(NoTechnicianAvailable):
            book(scheduler, client_user, vehicle)

    def test_start_time_with_utc_offset(self, scheduler, client_user, vehicle, technicians):
        with pytest.raises(SchedulingValidationError):
            book(scheduler, client_user, vehicle, start=time(8, 0, tzinfo=timezone.utc))

    def test_negative_mileage_rejected(self, scheduler, client_user, vehicle, technicians):
        with pytest.raises(SchedulingValidationError):
            book(scheduler, client_user, vehicle, current_mileage=-1)

    def test_notification_failure_keeps_booking(self, db, locks, client_user, vehicle, technicians):
        scheduler = AppointmentScheduler(db, notifier=FailingNotifier(), locks=locks, clock=lambda: TODAY)
        appointment = book(scheduler, client_user, vehicle)

        stored = db.query(Appointment).filter(Appointment.id == appointment.id).one()
        assert stored.status == AppointmentStatus.SCHEDULED


class TestCommitRetry:
    def test_race_loss_is_retried_once(self, monkeypatch, scheduler, client_user, vehicle, technicians):
        original_create = AppointmentRepository.create
        calls = []

        def flaky_create(db, **data):
            calls.append(data["technician_id"])
            if len(calls) == 1:
                raise IntegrityError("INSERT INTO appointments", {}, Exception(SLOT_TAKEN))
            return original_create(db, **data)

        monkeypatch.setattr(AppointmentRepository, "create", staticmethod(flaky_create))

        appointment = book(scheduler, client_user, vehicle)
        assert len(calls) == 2
        assert appointment.id is not None

    def test_second_race_loss_gives_up(self, monkeypatch, scheduler, client_user, vehicle, technicians):
        calls = []

        def always_conflict(db, **data):
            calls.append(data["technician_id"])
            raise IntegrityError("INSERT INTO appointments", {}, Exception(SLOT_TAKEN))

        monkeypatch.setattr(AppointmentRepository, "create", staticmethod(always_conflict))

        with pytest.raises(NoTechnicianAvailable):
            book(scheduler, client_user, vehicle)
        assert len(calls) == 2

    def test_other_integrity_errors_are_not_retried(self, monkeypatch, scheduler, client_user, vehicle, technicians):
        calls = []

        def broken_create(db, **data):
            calls.append(data["technician_id"])
            raise IntegrityError("INSERT INTO appointments", {}, Exception(END_BEFORE_START))

        monkeypatch.setattr(AppointmentRepository, "create", staticmethod(broken_create))

        with pytest.raises(IntegrityError):
            book(scheduler, client_user, vehicle)
        assert len(calls) == 1

    def test_chosen_technician_integrity_error_is_not_a_conflict(self, monkeypatch, scheduler, vehicle, technicians):
        def broken_create(db, **data):
            raise IntegrityError("INSERT INTO appointments", {}, Exception(END_BEFORE_START))

        monkeypatch.setattr(AppointmentRepository, "create", staticmethod(broken_create))

        with pytest.raises(IntegrityError):
            scheduler.schedule_unplanned_appointment(
                vehicle.id, MONDAY, time(10, 10), technician_id=technicians[0].id
            )

    @pytest.mark.parametrize(
        "message,expected",
        [
            (SLOT_TAKEN, True),
            ('duplicate key value violates unique constraint "uq_appointment_technician_slot"', True),
            (END_BEFORE_START, False),
            ("FOREIGN KEY constraint failed", False),
            ("UNIQUE constraint failed: appointments.public_id", False),
        ],
    )
    def test_slot_conflict_detection(self, message, expected):
        assert is_slot_conflict(IntegrityError("INSERT", {}, Exception(message))) is expected


class TestUnplannedBooking:
    def test_any_time_any_brand(self, scheduler, notifier, vehicle, technicians):
        appointment = scheduler.schedule_unplanned_appointment(
            vehicle_id=vehicle.id,
            appointment_date=MONDAY,
            start_time=time(10, 10),
            appointment_type=AppointmentType.AUTECO_WARRANTY,
            admin_notes="Walk-in",
        )
        assert appointment.appointment_type == AppointmentType.UNPLANNED
        assert appointment.end_time == time(12, 10)
        assert appointment.admin_notes == "Walk-in"
        assert notifier.sent[0][1] == NotificationKind.CREATED

    def test_default_duration(self, scheduler, vehicle, technicians):
        appointment = scheduler.schedule_unplanned_appointment(vehicle.id, MONDAY, time(18, 0))
        assert appointment.end_time == time(19, 0)

    def test_rework_can_be_booked_by_admin(self, scheduler, vehicle, technicians):
        appointment = scheduler.schedule_unplanned_appointment(
            vehicle.id, MONDAY, time(9, 0), appointment_type=AppointmentType.REWORK
        )
        assert appointment.end_time == time(11, 0)

    def test_plate_restriction_still_applies(self, db, scheduler, client_user, technicians):
        restricted = make_vehicle(db, client_user, license_plate="XYZ451")
        with pytest.raises(LicensePlateRestricted):
            scheduler.schedule_unplanned_appointment(restricted.id, MONDAY, time(10, 10))

    def test_chosen_technician(self, scheduler, vehicle, technicians):
        appointment = scheduler.schedule_unplanned_appointment(
            vehicle.id, MONDAY, time(10, 10), technician_id=technicians[2].id
        )
        assert appointment.technician_id == technicians[2].id

    def test_unknown_technician(self, scheduler, vehicle, technicians):
        with pytest.raises(TechnicianNotFound):
            scheduler.schedule_unplanned_appointment(vehicle.id, MONDAY, time(10, 10), technician_id=999)

    def test_busy_technician(self, db, scheduler, vehicle, technicians):
        make_appointment(db, vehicle, technicians[0], start_time=time(10, 0))
        with pytest.raises(TechnicianConflict):
            scheduler.schedule_unplanned_appointment(
                vehicle.id, MONDAY, time(10, 10), technician_id=technicians[0].id
            )

    def test_not_available_technician(self, db, scheduler, vehicle):
        technician = make_technician(db, "Diego Rojas", state=TechnicianState.NOT_AVAILABLE)
        with pytest.raises(TechnicianConflict):
            scheduler.schedule_unplanned_appointment(vehicle.id, MONDAY, time(10, 10), technician_id=technician.id)

    @pytest.mark.parametrize("start", [time(12, 30), time(18, 0), time(6, 30)])
    def test_business_hours_when_enforced(self, scheduler, vehicle, technicians, start):
        with pytest.raises(SchedulingValidationError):
            scheduler.schedule_unplanned_appointment(vehicle.id, MONDAY, start, enforce_business_hours=True)

    def test_end_past_midnight(self, scheduler, vehicle, technicians):
        with pytest.raises(SchedulingValidationError):
            scheduler.schedule_unplanned_appointment(vehicle.id, MONDAY, time(23, 30))

    def test_start_time_with_utc_offset(self, scheduler, vehicle, technicians):
        with pytest.raises(SchedulingValidationError):
            scheduler.schedule_unplanned_appointment(
                vehicle.id, MONDAY, time(8, 0, tzinfo=timezone.utc), enforce_business_hours=True
            )


class TestReadOperations:
    def test_available_slots(self, scheduler, technicians):
        slots = scheduler.get_available_slots(MONDAY, AppointmentType.QUICK_SERVICE)
        assert [slot.start_time for slot in slots] == [time(7, 15), time(13, 30)]

    def test_available_slots_for_rework(self, scheduler, technicians):
        with pytest.raises(ReworkRequiresContact):
            scheduler.get_available_slots(MONDAY, AppointmentType.REWORK)

    def test_available_slots_on_weekend(self, scheduler, technicians):
        with pytest.raises(SchedulingValidationError):
            scheduler.get_available_slots(date(2024, 6, 16), AppointmentType.OIL_CHANGE)

    def test_plate_check_by_vehicle(self, db, scheduler, client_user):
        restricted = make_vehicle(db, client_user, license_plate="XYZ451")
        result = scheduler.check_plate_restriction(MONDAY, vehicle_id=restricted.id)
        assert result["restricted"] is True
        assert result["restricted_weekday"] == "Monday"

    def test_plate_check_by_plate(self, scheduler):
        result = scheduler.check_plate_restriction(MONDAY, license_plate=" abc123 ")
        assert result["license_plate"] == "ABC123"
        assert result["restricted"] is False
        assert result["restricted_weekday"] == "Tuesday"

    def test_plate_check_needs_input(self, scheduler):
        with pytest.raises(SchedulingValidationError):
            scheduler.check_plate_restriction(MONDAY)

    def test_plate_check_unknown_vehicle(self, scheduler):
        with pytest.raises(VehicleNotFound):
            scheduler.check_plate_restriction(MONDAY, vehicle_id=404)
