from datetime import date, time, timedelta

import pytest

from motoshop.domain.scheduling.enums import AppointmentType
from motoshop.domain.scheduling.rules import (
    AFTERNOON_RECEPTION_DEADLINE,
    MORNING_RECEPTION_DEADLINE,
    ScheduleRules,
    add_duration,
)


@pytest.fixture
def rules():
    return ScheduleRules(auteco_brand_names=["AUTECO"])


class TestSlots:
    def test_oil_change_slots_in_day_order(self, rules):
        slots = rules.valid_slots_for(AppointmentType.OIL_CHANGE)
        assert slots[0] == time(8, 0)
        assert slots[-1] == time(16, 30)
        assert len(slots) == 11
        assert list(slots) == sorted(slots)

    def test_maintenance_has_no_afternoon_slot(self, rules):
        assert rules.valid_slots_for(AppointmentType.MAINTENANCE) == (time(7, 45),)

    @pytest.mark.parametrize(
        "appointment_type,expected",
        [
            (AppointmentType.MANUAL_WARRANTY_REVIEW, (time(7, 0), time(13, 0))),
            (AppointmentType.AUTECO_WARRANTY, (time(7, 30), time(13, 15))),
            (AppointmentType.QUICK_SERVICE, (time(7, 15), time(13, 30))),
        ],
    )
    def test_single_slot_per_session(self, rules, appointment_type, expected):
        assert rules.valid_slots_for(appointment_type) == expected

    @pytest.mark.parametrize("appointment_type", [AppointmentType.REWORK, AppointmentType.UNPLANNED])
    def test_unbookable_types_have_no_slots(self, rules, appointment_type):
        assert rules.valid_slots_for(appointment_type) == ()
        assert not rules.is_user_bookable(appointment_type)


class TestDurations:
    @pytest.mark.parametrize(
        "appointment_type,minutes",
        [
            (AppointmentType.OIL_CHANGE, 30),
            (AppointmentType.QUICK_SERVICE, 60),
            (AppointmentType.UNPLANNED, 60),
            (AppointmentType.MANUAL_WARRANTY_REVIEW, 45),
            (AppointmentType.AUTECO_WARRANTY, 120),
            (AppointmentType.REWORK, 120),
            (AppointmentType.MAINTENANCE, 180),
        ],
    )
    def test_duration_table(self, rules, appointment_type, minutes):
        assert rules.duration_for(appointment_type) == timedelta(minutes=minutes)

    def test_end_time(self, rules):
        assert rules.end_time_for(AppointmentType.MAINTENANCE, time(7, 45)) == time(10, 45)

    def test_end_time_past_midnight_is_rejected(self, rules):
        assert rules.end_time_for(AppointmentType.MAINTENANCE, time(22, 0)) is None
        assert add_duration(time(23, 30), timedelta(minutes=30)) is None


class TestBrandEligibility:
    def test_auteco_only_types_need_auteco(self, rules):
        assert rules.is_brand_eligible(AppointmentType.AUTECO_WARRANTY, "AUTECO")
        assert rules.is_brand_eligible(AppointmentType.MANUAL_WARRANTY_REVIEW, "  auteco ")
        assert not rules.is_brand_eligible(AppointmentType.AUTECO_WARRANTY, "Yamaha")
        assert not rules.is_brand_eligible(AppointmentType.AUTECO_WARRANTY, None)

    def test_other_types_accept_any_brand(self, rules):
        assert rules.is_brand_eligible(AppointmentType.OIL_CHANGE, "Yamaha")
        assert rules.is_brand_eligible(AppointmentType.MAINTENANCE, None)

    def test_configured_aliases(self):
        rules = ScheduleRules(auteco_brand_names=["Auteco", "Auteco Mobility"])
        assert rules.is_brand_eligible(AppointmentType.AUTECO_WARRANTY, "AUTECO MOBILITY")
        assert not rules.is_brand_eligible(AppointmentType.AUTECO_WARRANTY, "Auteco Motos")


class TestCalendar:
    def test_reception_deadline_by_session(self, rules):
        monday = date(2024, 6, 10)
        assert rules.reception_deadline(monday, time(7, 45)) == MORNING_RECEPTION_DEADLINE
        assert rules.reception_deadline(monday, time(14, 0)) == AFTERNOON_RECEPTION_DEADLINE
        assert rules.reception_deadline(monday, time(12, 0)) == time(13, 50)

    def test_business_hours_and_lunch(self, rules):
        assert rules.is_within_business_hours(time(7, 0))
        assert not rules.is_within_business_hours(time(6, 59))
        assert not rules.is_within_business_hours(time(17, 30))
        assert rules.is_lunch_break(time(12, 30))
        assert not rules.is_lunch_break(time(13, 0))

    def test_working_days(self, rules):
        assert rules.is_working_day(date(2024, 6, 14))  # Friday
        assert not rules.is_working_day(date(2024, 6, 15))  # Saturday
        assert not rules.is_working_day(date(2024, 6, 16))  # Sunday
