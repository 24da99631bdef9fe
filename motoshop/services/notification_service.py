"""
Unified Notification Service
Sends appointment emails and SMS from the same event.
Failures are captured per channel and never reach the booking workflow.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import BackgroundTasks

from ..config import NOTIFICATIONS_ENABLED
from ..shared.validators import validate_phone

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    CREATED = "CREATED"
    CANCELLED = "CANCELLED"
    UPDATED = "UPDATED"


@dataclass(frozen=True)
class AppointmentNotification:
    """Snapshot of an appointment taken before the session closes"""

    appointment_id: int
    client_name: str
    client_email: Optional[str]
    client_phone: Optional[str]
    appointment_type: str
    appointment_date: str
    start_time: str
    vehicle: str
    license_plate: str
    technician_name: Optional[str] = None
    reception_deadline: Optional[str] = None

    @classmethod
    def from_appointment(cls, appointment) -> "AppointmentNotification":
        from ..domain.scheduling.rules import ScheduleRules

        vehicle = appointment.vehicle
        owner = vehicle.owner if vehicle else None
        technician = appointment.technician
        deadline = ScheduleRules.reception_deadline(
            appointment.appointment_date, appointment.start_time
        )
        return cls(
            appointment_id=appointment.id,
            client_name=owner.full_name if owner else "",
            client_email=owner.email if owner else None,
            client_phone=owner.phone if owner else None,
            appointment_type=getattr(appointment.appointment_type, "value", appointment.appointment_type),
            appointment_date=appointment.appointment_date.isoformat(),
            start_time=appointment.start_time.strftime("%H:%M"),
            vehicle=" ".join(part for part in (vehicle.brand, vehicle.model) if part) if vehicle else "",
            license_plate=vehicle.license_plate if vehicle else "",
            technician_name=technician.full_name if technician else None,
            reception_deadline=deadline.strftime("%H:%M"),
        )


async def send_notification(
    client_email: Optional[str],
    client_phone: Optional[str],
    client_name: str,
    notification_type: str,
    email_func,
    sms_func,
    email_kwargs: dict,
    sms_kwargs: dict,
) -> dict:
    """
    Unified notification sender that handles both email and SMS

    Args:
        client_email: Client email address
        client_phone: Client phone number
        client_name: Client name for logging
        notification_type: Type of notification (for logging)
        email_func: Email function to call
        sms_func: SMS function to call
        email_kwargs: Kwargs for email function
        sms_kwargs: Kwargs for SMS function

    Returns:
        Dict with email_sent and sms_sent status
    """
    result = {"email_sent": False, "sms_sent": False, "email_error": None, "sms_error": None}

    # Send Email
    if client_email:
        try:
            logger.info(f"📧 Sending {notification_type} email to {client_email}")
            await email_func(to=client_email, **email_kwargs)
            result["email_sent"] = True
            logger.info(f"✅ {notification_type} email sent successfully to {client_email}")
        except Exception as e:
            result["email_error"] = str(e)
            logger.error(f"❌ Failed to send {notification_type} email to {client_email}: {e}")
    else:
        logger.debug(f"⚠️ No email address for {notification_type} notification to {client_name}")

    # Send SMS
    if client_phone:
        try:
            formatted_phone = validate_phone(client_phone)
            logger.info(f"📱 Attempting to send {notification_type} SMS to {formatted_phone}")
            success, error = await sms_func(to_phone=formatted_phone, **sms_kwargs)

            if success:
                result["sms_sent"] = True
                logger.info(f"✅ {notification_type} SMS sent successfully to {formatted_phone}")
            else:
                result["sms_error"] = error
                if error and "disabled" not in error.lower():
                    logger.warning(f"⚠️ {notification_type} SMS not sent to {formatted_phone}: {error}")
                else:
                    logger.debug(f"ℹ️ {notification_type} SMS skipped: {error}")
        except Exception as e:
            result["sms_error"] = str(e)
            logger.error(f"❌ Failed to send {notification_type} SMS to {client_phone}: {e}")
    else:
        logger.debug(f"⚠️ No phone number for {notification_type} SMS to {client_name}")

    return result


async def send_appointment_notification(
    notification: AppointmentNotification,
    kind: NotificationKind,
    reason: Optional[str] = None,
) -> dict:
    """Send the email and SMS for one appointment event"""
    from ..email_service import (
        send_appointment_cancelled_email,
        send_appointment_created_email,
        send_appointment_updated_email,
    )
    from .twilio_service import (
        send_appointment_cancelled_sms,
        send_appointment_created_sms,
        send_appointment_updated_sms,
    )

    if not NOTIFICATIONS_ENABLED:
        logger.debug(f"ℹ️ Notifications disabled, skipping {kind.value} for appointment {notification.appointment_id}")
        return {"email_sent": False, "sms_sent": False, "email_error": None, "sms_error": None}

    common = {
        "client_name": notification.client_name,
        "appointment_date": notification.appointment_date,
        "start_time": notification.start_time,
        "license_plate": notification.license_plate,
    }
    email_common = {
        **common,
        "appointment_type": notification.appointment_type,
        "vehicle": notification.vehicle,
    }

    if kind == NotificationKind.CREATED:
        email_func, sms_func = send_appointment_created_email, send_appointment_created_sms
        email_kwargs = {
            **email_common,
            "technician_name": notification.technician_name,
            "reception_deadline": notification.reception_deadline,
        }
        sms_kwargs = {**common, "reception_deadline": notification.reception_deadline}
    elif kind == NotificationKind.CANCELLED:
        email_func, sms_func = send_appointment_cancelled_email, send_appointment_cancelled_sms
        email_kwargs = {**email_common, "reason": reason}
        sms_kwargs = {**common, "reason": reason}
    else:
        email_func, sms_func = send_appointment_updated_email, send_appointment_updated_sms
        email_kwargs = {
            **email_common,
            "technician_name": notification.technician_name,
            "reception_deadline": notification.reception_deadline,
        }
        sms_kwargs = {**common, "technician_name": notification.technician_name}

    return await send_notification(
        client_email=notification.client_email,
        client_phone=notification.client_phone,
        client_name=notification.client_name,
        notification_type=f"appointment_{kind.value.lower()}",
        email_func=email_func,
        sms_func=sms_func,
        email_kwargs=email_kwargs,
        sms_kwargs=sms_kwargs,
    )


class BackgroundTaskNotifier:
    """Queues notifications to run after the response is sent"""

    def __init__(self, background_tasks: BackgroundTasks):
        self.background_tasks = background_tasks

    def notify(
        self,
        notification: AppointmentNotification,
        kind: NotificationKind,
        reason: Optional[str] = None,
    ) -> None:
        self.background_tasks.add_task(send_appointment_notification, notification, kind, reason)
        logger.debug(f"📬 Queued {kind.value} notification for appointment {notification.appointment_id}")
