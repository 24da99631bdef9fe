"""Static scheduling rules per appointment type"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from ...config import AUTECO_BRAND_NAMES
from ...shared.validators import normalize_brand
from .enums import AppointmentType

WORK_START = time(7, 0)
WORK_END = time(17, 30)
LUNCH_START = time(12, 0)
LUNCH_END = time(13, 0)

# Latest physical arrival for each session
MORNING_RECEPTION_DEADLINE = time(8, 0)
AFTERNOON_RECEPTION_DEADLINE = time(13, 50)


@dataclass(frozen=True)
class AppointmentRule:
    morning_slots: tuple[time, ...]
    afternoon_slots: tuple[time, ...]
    duration_minutes: int
    auteco_only: bool = False
    user_bookable: bool = True

    @property
    def slots(self) -> tuple[time, ...]:
        return self.morning_slots + self.afternoon_slots


RULES: dict[AppointmentType, AppointmentRule] = {
    AppointmentType.MANUAL_WARRANTY_REVIEW: AppointmentRule(
        morning_slots=(time(7, 0),),
        afternoon_slots=(time(13, 0),),
        duration_minutes=45,
        auteco_only=True,
    ),
    AppointmentType.AUTECO_WARRANTY: AppointmentRule(
        morning_slots=(time(7, 30),),
        afternoon_slots=(time(13, 15),),
        duration_minutes=120,
        auteco_only=True,
    ),
    AppointmentType.QUICK_SERVICE: AppointmentRule(
        morning_slots=(time(7, 15),),
        afternoon_slots=(time(13, 30),),
        duration_minutes=60,
    ),
    AppointmentType.MAINTENANCE: AppointmentRule(
        morning_slots=(time(7, 45),),
        afternoon_slots=(),
        duration_minutes=180,
    ),
    AppointmentType.OIL_CHANGE: AppointmentRule(
        morning_slots=(time(8, 0), time(8, 30), time(9, 0), time(9, 30), time(10, 0)),
        afternoon_slots=(
            time(14, 0),
            time(14, 30),
            time(15, 0),
            time(15, 30),
            time(16, 0),
            time(16, 30),
        ),
        duration_minutes=30,
    ),
    # Booked by admins at any time
    AppointmentType.UNPLANNED: AppointmentRule(
        morning_slots=(), afternoon_slots=(), duration_minutes=60, user_bookable=False
    ),
    # Never booked online
    AppointmentType.REWORK: AppointmentRule(
        morning_slots=(), afternoon_slots=(), duration_minutes=120, user_bookable=False
    ),
}


class ScheduleRules:
    """Lookups over the rule table. Holds no mutable state."""

    def __init__(self, auteco_brand_names: Optional[Iterable[str]] = None):
        names = AUTECO_BRAND_NAMES if auteco_brand_names is None else auteco_brand_names
        self.auteco_brand_names = frozenset(normalize_brand(name) for name in names)

    @staticmethod
    def rule_for(appointment_type: AppointmentType) -> AppointmentRule:
        return RULES[AppointmentType(appointment_type)]

    def valid_slots_for(self, appointment_type: AppointmentType) -> tuple[time, ...]:
        """Start times in day order, morning before afternoon"""
        return self.rule_for(appointment_type).slots

    def duration_for(self, appointment_type: AppointmentType) -> timedelta:
        return timedelta(minutes=self.rule_for(appointment_type).duration_minutes)

    def end_time_for(self, appointment_type: AppointmentType, start: time) -> Optional[time]:
        """End of an appointment starting at `start`, or None if it would run past midnight"""
        return add_duration(start, self.duration_for(appointment_type))

    def is_brand_eligible(self, appointment_type: AppointmentType, brand: Optional[str]) -> bool:
        if not self.rule_for(appointment_type).auteco_only:
            return True
        return normalize_brand(brand) in self.auteco_brand_names

    def is_auteco_only(self, appointment_type: AppointmentType) -> bool:
        return self.rule_for(appointment_type).auteco_only

    def is_user_bookable(self, appointment_type: AppointmentType) -> bool:
        return self.rule_for(appointment_type).user_bookable

    @staticmethod
    def reception_deadline(appointment_date: date, start: time) -> time:
        """Latest arrival time for the session the start time belongs to"""
        if start < LUNCH_START:
            return MORNING_RECEPTION_DEADLINE
        return AFTERNOON_RECEPTION_DEADLINE

    @staticmethod
    def is_within_business_hours(start: time) -> bool:
        return WORK_START <= start < WORK_END

    @staticmethod
    def is_lunch_break(start: time) -> bool:
        return LUNCH_START <= start < LUNCH_END

    @staticmethod
    def is_working_day(appointment_date: date) -> bool:
        return appointment_date.weekday() < 5


def add_duration(start: time, duration: timedelta) -> Optional[time]:
    anchor = datetime.combine(date.min, start)
    end = anchor + duration
    if end.date() != anchor.date():
        return None
    return end.time()


schedule_rules = ScheduleRules()
