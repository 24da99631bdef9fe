"""Technician rotation - pick the least loaded free technician"""

import logging
from datetime import date, time, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...config import ROTATION_WINDOW_DAYS
from .enums import AppointmentType
from .exceptions import NoTechnicianAvailable
from .repository import AppointmentRepository

logger = logging.getLogger(__name__)


class TechnicianAssigner:
    """
    Least-loaded rotation over a candidate set.

    Load is the number of appointments (unplanned included) holding the
    technician in the trailing window that ends on the booking date. Ties go
    to the lowest technician id. Load is recomputed from history on every
    call, so there is no stored cursor.
    """

    def __init__(self, db: Session, window_days: Optional[int] = None):
        self.db = db
        self.window_days = window_days or ROTATION_WINDOW_DAYS
        self.appointments = AppointmentRepository()

    def window_for(self, appointment_date: date) -> tuple[date, date]:
        return appointment_date - timedelta(days=self.window_days - 1), appointment_date

    def rank(self, appointment_date: date, candidates: Iterable[int]) -> list[tuple[int, int]]:
        """(technician_id, load) pairs, best candidate first"""
        candidate_ids = sorted(set(candidates))
        window_start, window_end = self.window_for(appointment_date)
        load = self.appointments.load_by_technician(
            self.db, candidate_ids, window_start, window_end
        )
        return sorted(
            ((technician_id, load.get(technician_id, 0)) for technician_id in candidate_ids),
            key=lambda pair: (pair[1], pair[0]),
        )

    def assign(
        self,
        appointment_date: date,
        start: time,
        appointment_type: AppointmentType,
        candidates: Iterable[int],
    ) -> int:
        ranking = self.rank(appointment_date, candidates)
        if not ranking:
            raise NoTechnicianAvailable(
                "No technician is available for the selected slot",
                date=appointment_date.isoformat(),
                start_time=start.isoformat(timespec="minutes"),
                appointment_type=AppointmentType(appointment_type).value,
            )

        technician_id, load = ranking[0]
        logger.info(
            f"🔧 Assigned technician {technician_id} (load {load}) to "
            f"{AppointmentType(appointment_type).value} on {appointment_date} {start}"
        )
        return technician_id
