"""Slot availability - which rule-table slots still have a free technician"""

import logging
from dataclasses import dataclass, field
from datetime import date, time
from typing import Optional

from sqlalchemy.orm import Session

from .enums import AppointmentType
from .repository import AppointmentRepository, TechnicianRepository
from .rules import ScheduleRules, schedule_rules

logger = logging.getLogger(__name__)


@dataclass
class SlotAvailability:
    start_time: time
    end_time: time
    free_technician_ids: list[int] = field(default_factory=list)

    @property
    def free_count(self) -> int:
        return len(self.free_technician_ids)


class SlotAvailabilityCalculator:
    """Read-only availability queries. Takes no locks."""

    def __init__(self, db: Session, rules: Optional[ScheduleRules] = None):
        self.db = db
        self.rules = rules or schedule_rules
        self.appointments = AppointmentRepository()
        self.technicians = TechnicianRepository()

    def available_slots(
        self, appointment_date: date, appointment_type: AppointmentType
    ) -> list[SlotAvailability]:
        """Rule-table slots of the type with at least one free technician, in rule order"""
        available_ids = self.technicians.available_technician_ids(self.db)
        if not available_ids:
            logger.info(f"⚠️ No available technicians for {appointment_date}")
            return []

        slots = []
        for start in self.rules.valid_slots_for(appointment_type):
            end = self.rules.end_time_for(appointment_type, start)
            if end is None:
                continue
            free = self._free_among(available_ids, appointment_date, start, end)
            if free:
                slots.append(SlotAvailability(start_time=start, end_time=end, free_technician_ids=free))

        logger.debug(
            f"📅 {len(slots)} available {appointment_type.value} slots on {appointment_date}"
        )
        return slots

    def free_technicians(
        self,
        appointment_date: date,
        start: time,
        end: time,
        exclude_appointment_id: Optional[int] = None,
    ) -> list[int]:
        """AVAILABLE technicians with no overlapping appointment, ascending by id"""
        available_ids = self.technicians.available_technician_ids(self.db)
        return self._free_among(
            available_ids, appointment_date, start, end, exclude_appointment_id
        )

    def is_technician_free(
        self,
        technician_id: int,
        appointment_date: date,
        start: time,
        end: time,
        exclude_appointment_id: Optional[int] = None,
    ) -> bool:
        if not self.technicians.is_available(self.db, technician_id):
            return False
        return not self.appointments.technician_has_conflict(
            self.db, technician_id, appointment_date, start, end, exclude_appointment_id
        )

    def _free_among(
        self,
        technician_ids: list[int],
        appointment_date: date,
        start: time,
        end: time,
        exclude_appointment_id: Optional[int] = None,
    ) -> list[int]:
        busy = self.appointments.busy_technician_ids(
            self.db, appointment_date, start, end, exclude_appointment_id
        )
        return [technician_id for technician_id in technician_ids if technician_id not in busy]
