"""
Email Service using Resend API with MJML templates
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    appointment_cancelled_template,
    appointment_created_template,
    appointment_updated_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dict-like result with 'html' and 'errors'
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        html = getattr(result, "html", None)
        if html is not None:
            if getattr(result, "errors", None):
                logger.warning(f"MJML compilation warnings: {result.errors}")
            return html
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)

    recipients = [to] if isinstance(to, str) else to
    sender = from_address or EMAIL_FROM_ADDRESS

    try:
        logger.info(f"📧 Sending email via Resend to: {to}")
        email_data = {
            "from": sender,
            "to": recipients,
            "subject": subject,
            "html": html_content,
        }
        response = resend.Emails.send(email_data)
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


# ============================================
# Appointment emails
# ============================================


async def send_appointment_created_email(
    to: str,
    client_name: str,
    appointment_type: str,
    appointment_date: str,
    start_time: str,
    vehicle: str,
    license_plate: str,
    technician_name: Optional[str] = None,
    reception_deadline: Optional[str] = None,
) -> dict:
    mjml_content = appointment_created_template(
        client_name=client_name,
        appointment_type=appointment_type,
        appointment_date=appointment_date,
        start_time=start_time,
        vehicle=vehicle,
        license_plate=license_plate,
        technician_name=technician_name,
        reception_deadline=reception_deadline,
    )
    return await send_email(
        to=to,
        subject=f"Appointment confirmed - {appointment_date} {start_time}",
        mjml_content=mjml_content,
    )


async def send_appointment_cancelled_email(
    to: str,
    client_name: str,
    appointment_type: str,
    appointment_date: str,
    start_time: str,
    vehicle: str,
    license_plate: str,
    reason: Optional[str] = None,
) -> dict:
    mjml_content = appointment_cancelled_template(
        client_name=client_name,
        appointment_type=appointment_type,
        appointment_date=appointment_date,
        start_time=start_time,
        vehicle=vehicle,
        license_plate=license_plate,
        reason=reason,
    )
    return await send_email(
        to=to,
        subject=f"Appointment cancelled - {appointment_date}",
        mjml_content=mjml_content,
    )


async def send_appointment_updated_email(
    to: str,
    client_name: str,
    appointment_type: str,
    appointment_date: str,
    start_time: str,
    vehicle: str,
    license_plate: str,
    technician_name: Optional[str] = None,
    reception_deadline: Optional[str] = None,
) -> dict:
    mjml_content = appointment_updated_template(
        client_name=client_name,
        appointment_type=appointment_type,
        appointment_date=appointment_date,
        start_time=start_time,
        vehicle=vehicle,
        license_plate=license_plate,
        technician_name=technician_name,
        reception_deadline=reception_deadline,
    )
    return await send_email(
        to=to,
        subject=f"Appointment updated - {appointment_date}",
        mjml_content=mjml_content,
    )
