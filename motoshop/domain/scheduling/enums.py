"""Enumerations shared by the scheduling models, rules and schemas"""

from enum import Enum


class AppointmentType(str, Enum):
    MANUAL_WARRANTY_REVIEW = "MANUAL_WARRANTY_REVIEW"  # Auteco only
    AUTECO_WARRANTY = "AUTECO_WARRANTY"  # Auteco only
    QUICK_SERVICE = "QUICK_SERVICE"
    MAINTENANCE = "MAINTENANCE"
    OIL_CHANGE = "OIL_CHANGE"
    UNPLANNED = "UNPLANNED"  # Admin only
    REWORK = "REWORK"  # Never booked online, handled by direct contact


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"
    NO_SHOW = "NO_SHOW"


# Appointments in these statuses no longer hold their technician's slot
RELEASING_STATUSES = (
    AppointmentStatus.CANCELLED,
    AppointmentStatus.REJECTED,
    AppointmentStatus.NO_SHOW,
)

CANCELLABLE_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.IN_PROGRESS)


class TechnicianState(str, Enum):
    AVAILABLE = "AVAILABLE"
    NOT_AVAILABLE = "NOT_AVAILABLE"


class UserRole(str, Enum):
    CLIENT = "CLIENT"
    ADMIN = "ADMIN"
    TECHNICIAN = "TECHNICIAN"
