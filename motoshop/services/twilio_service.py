"""
Twilio SMS Service
Sends appointment SMS through the Twilio Messages API
"""

import logging
from typing import Optional

import httpx

from ..config import TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_FROM_NUMBER, WORKSHOP_NAME

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"


async def send_sms(
    to_phone: str,
    message_body: str,
    message_type: str,
) -> tuple[bool, Optional[str]]:
    """
    Send SMS via Twilio

    Args:
        to_phone: Recipient phone number (should be in E.164 format)
        message_body: SMS message content
        message_type: Type of message (appointment_created, appointment_cancelled, ...)

    Returns:
        Tuple of (success: bool, error_message: Optional[str])
    """
    if not to_phone:
        logger.debug("No phone number provided")
        return False, "No phone number provided"

    # Ensure phone number is in E.164 format
    if not to_phone.startswith("+"):
        logger.warning(f"Phone number not in E.164 format: {to_phone}")
        return False, "Phone number must be in E.164 format (e.g., +573001234567)"

    if not (TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER):
        logger.debug("Twilio credentials not configured")
        return False, "SMS disabled: Twilio not configured"

    try:
        logger.info(f"📱 Preparing SMS: type={message_type}, to={to_phone}")
        data = {
            "To": to_phone,
            "From": TWILIO_FROM_NUMBER,
            "Body": message_body,
        }

        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{TWILIO_API_BASE}/Accounts/{TWILIO_ACCOUNT_SID}/Messages.json",
                auth=(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN),
                data=data,
                timeout=10.0,
            )

        logger.info(f"📡 Twilio API response status: {response.status_code}")

        if response.status_code in [200, 201]:
            message_sid = response.json().get("sid")
            logger.info(f"✅ SMS sent successfully: {message_type} to {to_phone} (SID: {message_sid})")
            return True, None

        error_data = response.json()
        error_message = error_data.get("message", "Unknown error")
        error_code = error_data.get("code")
        logger.error(f"❌ Twilio API error: [{error_code}] {error_message}")
        return False, f"[{error_code}] {error_message}" if error_code else error_message

    except Exception as e:
        logger.error(f"❌ Failed to send SMS: {str(e)}")
        return False, str(e)


async def send_appointment_created_sms(
    to_phone: str,
    client_name: str,
    appointment_date: str,
    start_time: str,
    license_plate: str,
    reception_deadline: Optional[str] = None,
) -> tuple[bool, Optional[str]]:
    deadline = f" Please arrive before {reception_deadline}." if reception_deadline else ""
    message = (
        f"Hi {client_name}, your {WORKSHOP_NAME} appointment for {license_plate} "
        f"is confirmed on {appointment_date} at {start_time}.{deadline}"
    )
    return await send_sms(to_phone, message, "appointment_created")


async def send_appointment_cancelled_sms(
    to_phone: str,
    client_name: str,
    appointment_date: str,
    start_time: str,
    license_plate: str,
    reason: Optional[str] = None,
) -> tuple[bool, Optional[str]]:
    reason_text = f" Reason: {reason}" if reason else ""
    message = (
        f"Hi {client_name}, your {WORKSHOP_NAME} appointment for {license_plate} "
        f"on {appointment_date} at {start_time} was cancelled.{reason_text}"
    )
    return await send_sms(to_phone, message, "appointment_cancelled")


async def send_appointment_updated_sms(
    to_phone: str,
    client_name: str,
    appointment_date: str,
    start_time: str,
    license_plate: str,
    technician_name: Optional[str] = None,
) -> tuple[bool, Optional[str]]:
    technician = f" Your technician is now {technician_name}." if technician_name else ""
    message = (
        f"Hi {client_name}, your {WORKSHOP_NAME} appointment for {license_plate} "
        f"on {appointment_date} at {start_time} was updated.{technician}"
    )
    return await send_sms(to_phone, message, "appointment_updated")
