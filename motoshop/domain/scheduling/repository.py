"""Scheduling repository - Database operations for appointments, technicians and vehicles"""

from datetime import date, time
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ...models import TECHNICIAN_SLOT_INDEX, Appointment, Technician, Vehicle
from .enums import RELEASING_STATUSES, TechnicianState


def _occupying(query):
    """Restrict a query to appointments that still hold their technician"""
    return query.filter(Appointment.status.notin_(RELEASING_STATUSES))


def is_slot_conflict(error: IntegrityError) -> bool:
    """True when an insert or update collided with another active appointment on the technician slot"""
    message = str(error.orig)
    if TECHNICIAN_SLOT_INDEX in message:
        return True
    # SQLite reports the columns instead of the index name
    return "UNIQUE constraint failed" in message and "appointments.technician_id" in message


def _with_details(query):
    return query.options(
        joinedload(Appointment.vehicle).joinedload(Vehicle.owner),
        joinedload(Appointment.technician),
    )


class VehicleRepository:
    """Read access to the vehicle registry"""

    @staticmethod
    def get_vehicle(db: Session, vehicle_id: int) -> Optional[Vehicle]:
        return db.query(Vehicle).filter(Vehicle.id == vehicle_id).first()

    @staticmethod
    def get_client_vehicle(db: Session, vehicle_id: int, client_id: int) -> Optional[Vehicle]:
        return (
            db.query(Vehicle)
            .filter(Vehicle.id == vehicle_id, Vehicle.owner_id == client_id)
            .first()
        )


class TechnicianRepository:
    """Read access to technicians"""

    @staticmethod
    def get_technician(db: Session, technician_id: int) -> Optional[Technician]:
        return db.query(Technician).filter(Technician.id == technician_id).first()

    @staticmethod
    def available_technician_ids(db: Session) -> list[int]:
        """IDs of AVAILABLE technicians in ascending order"""
        rows = (
            db.query(Technician.id)
            .filter(Technician.state == TechnicianState.AVAILABLE)
            .order_by(Technician.id)
            .all()
        )
        return [row.id for row in rows]

    @staticmethod
    def is_available(db: Session, technician_id: int) -> bool:
        state = db.query(Technician.state).filter(Technician.id == technician_id).scalar()
        return state == TechnicianState.AVAILABLE


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        return _with_details(db.query(Appointment)).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def get_for_client(db: Session, appointment_id: int, client_id: int) -> Optional[Appointment]:
        """Get an appointment only when its vehicle belongs to the client"""
        return (
            _with_details(db.query(Appointment))
            .join(Vehicle, Appointment.vehicle_id == Vehicle.id)
            .filter(Appointment.id == appointment_id, Vehicle.owner_id == client_id)
            .first()
        )

    @staticmethod
    def list_for_date(db: Session, appointment_date: date) -> list[Appointment]:
        return (
            _with_details(db.query(Appointment))
            .filter(Appointment.appointment_date == appointment_date)
            .order_by(Appointment.start_time, Appointment.id)
            .all()
        )

    @staticmethod
    def list_between(db: Session, start_date: date, end_date: date) -> list[Appointment]:
        return (
            _with_details(db.query(Appointment))
            .filter(
                Appointment.appointment_date >= start_date,
                Appointment.appointment_date <= end_date,
            )
            .order_by(Appointment.appointment_date, Appointment.start_time, Appointment.id)
            .all()
        )

    @staticmethod
    def list_for_vehicle(db: Session, vehicle_id: int) -> list[Appointment]:
        return (
            _with_details(db.query(Appointment))
            .filter(Appointment.vehicle_id == vehicle_id)
            .order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc())
            .all()
        )

    @staticmethod
    def list_for_client(db: Session, client_id: int) -> list[Appointment]:
        return (
            _with_details(db.query(Appointment))
            .join(Vehicle, Appointment.vehicle_id == Vehicle.id)
            .filter(Vehicle.owner_id == client_id)
            .order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc())
            .all()
        )

    @staticmethod
    def busy_technician_ids(
        db: Session,
        appointment_date: date,
        start: time,
        end: time,
        exclude_appointment_id: Optional[int] = None,
    ) -> set[int]:
        """Technicians holding an appointment that overlaps [start, end) on the date"""
        query = _occupying(
            db.query(Appointment.technician_id).filter(
                Appointment.appointment_date == appointment_date,
                Appointment.technician_id.isnot(None),
                Appointment.start_time < end,
                Appointment.end_time > start,
            )
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return {row.technician_id for row in query.distinct().all()}

    @staticmethod
    def technician_has_conflict(
        db: Session,
        technician_id: int,
        appointment_date: date,
        start: time,
        end: time,
        exclude_appointment_id: Optional[int] = None,
    ) -> bool:
        query = _occupying(
            db.query(Appointment.id).filter(
                Appointment.technician_id == technician_id,
                Appointment.appointment_date == appointment_date,
                Appointment.start_time < end,
                Appointment.end_time > start,
            )
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.first() is not None

    @staticmethod
    def load_by_technician(
        db: Session, technician_ids: list[int], start_date: date, end_date: date
    ) -> dict[int, int]:
        """Count occupying appointments per technician between two dates (inclusive)"""
        if not technician_ids:
            return {}
        rows = (
            _occupying(
                db.query(Appointment.technician_id, func.count(Appointment.id).label("total"))
                .filter(
                    Appointment.technician_id.in_(technician_ids),
                    Appointment.appointment_date >= start_date,
                    Appointment.appointment_date <= end_date,
                )
            )
            .group_by(Appointment.technician_id)
            .all()
        )
        return {row.technician_id: row.total for row in rows}

    @staticmethod
    def create(db: Session, **appointment_data) -> Appointment:
        """Insert an appointment and commit"""
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def update(db: Session, appointment: Appointment, **updates) -> Appointment:
        """Update an appointment with provided fields"""
        for key, value in updates.items():
            if hasattr(appointment, key):
                setattr(appointment, key, value)

        db.commit()
        db.refresh(appointment)
        return appointment

