"""Scheduling domain errors. Each maps to one HTTP status in main.py."""

from typing import Any, Optional


class SchedulingError(Exception):
    status_code = 400
    code = "scheduling_error"

    def __init__(self, detail: str, **context: Any):
        super().__init__(detail)
        self.detail = detail
        self.context = context

    def to_dict(self) -> dict:
        return {"detail": self.detail, "code": self.code, "context": self.context}


class NotFound(SchedulingError):
    status_code = 404
    code = "not_found"


class AppointmentNotFound(NotFound):
    code = "appointment_not_found"


class VehicleNotFound(NotFound):
    code = "vehicle_not_found"


class TechnicianNotFound(NotFound):
    code = "technician_not_found"


class SchedulingValidationError(SchedulingError):
    status_code = 400
    code = "validation_error"


class VehicleNotOwned(SchedulingError):
    status_code = 403
    code = "forbidden"


class BrandNotEligible(SchedulingError):
    status_code = 400
    code = "brand_not_eligible"


class LicensePlateRestricted(SchedulingError):
    status_code = 409
    code = "license_plate_restricted"


class NoTechnicianAvailable(SchedulingError):
    status_code = 409
    code = "no_technician_available"


class TechnicianConflict(SchedulingError):
    status_code = 409
    code = "technician_conflict"


class AlreadyCancelled(SchedulingError):
    status_code = 409
    code = "already_cancelled"


class ReworkRequiresContact(Exception):
    """
    Rework is never booked online. Carries the workshop contact details so the
    caller can redirect the client instead of failing.
    """

    def __init__(
        self,
        message: str,
        whatsapp_url: str,
        phone: str,
        business_hours: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.whatsapp_url = whatsapp_url
        self.phone = phone
        self.business_hours = business_hours

    def to_dict(self) -> dict:
        return {
            "requires_contact": True,
            "message": self.message,
            "whatsapp_url": self.whatsapp_url,
            "phone": self.phone,
            "business_hours": self.business_hours,
        }
