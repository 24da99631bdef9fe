"""
MJML Email Templates
Appointment emails for workshop clients, compiled to HTML in email_service
"""

from typing import Optional

from .config import WORKSHOP_BUSINESS_HOURS, WORKSHOP_NAME, WORKSHOP_PHONE, WORKSHOP_WHATSAPP_URL

THEME = {
    "primary": "#dc2626",
    "primary_dark": "#b91c1c",
    "primary_light": "#fee2e2",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#16a34a",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}

APPOINTMENT_TYPE_LABELS = {
    "MANUAL_WARRANTY_REVIEW": "Manual warranty review",
    "AUTECO_WARRANTY": "Auteco warranty",
    "QUICK_SERVICE": "Quick service",
    "MAINTENANCE": "Maintenance",
    "OIL_CHANGE": "Oil change",
    "UNPLANNED": "Unplanned service",
    "REWORK": "Rework",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="22px" font-weight="700" color="{THEME['primary']}" padding="0">
              {WORKSHOP_NAME}
            </mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="0 40px 40px 40px">
          <mj-column>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="0 0 32px 0" />
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="#ffffff" padding="0 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="14px" color="#94a3b8" padding="0">
              {WORKSHOP_BUSINESS_HOURS}
            </mj-text>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="12px 0 0 0">
              {WORKSHOP_NAME} · {WORKSHOP_PHONE}
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _appointment_details(
    appointment_type: str,
    appointment_date: str,
    start_time: str,
    vehicle: str,
    license_plate: str,
    technician_name: Optional[str] = None,
    reception_deadline: Optional[str] = None,
) -> str:
    rows = [
        ("Service", APPOINTMENT_TYPE_LABELS.get(appointment_type, appointment_type)),
        ("Date", appointment_date),
        ("Time", start_time),
        ("Vehicle", vehicle),
        ("Plate", license_plate),
    ]
    if technician_name:
        rows.append(("Technician", technician_name))
    if reception_deadline:
        rows.append(("Arrive before", reception_deadline))

    table_rows = "".join(
        f"""
        <tr>
          <td style="padding: 6px 0; color: {THEME['text_muted']};">{label}</td>
          <td style="padding: 6px 0; font-weight: 600; color: {THEME['text_primary']};">{value}</td>
        </tr>"""
        for label, value in rows
    )
    return f"""
    <mj-table padding="0 0 24px 0">
      {table_rows}
    </mj-table>
    """


def appointment_created_template(
    client_name: str,
    appointment_type: str,
    appointment_date: str,
    start_time: str,
    vehicle: str,
    license_plate: str,
    technician_name: Optional[str] = None,
    reception_deadline: Optional[str] = None,
) -> str:
    """Booking confirmation MJML template"""
    content = f"""
    <mj-text>
      Hi {client_name},
    </mj-text>

    <mj-text padding="0 0 16px 0">
      Your appointment has been scheduled. Here are the details:
    </mj-text>

    {_appointment_details(appointment_type, appointment_date, start_time, vehicle, license_plate, technician_name, reception_deadline)}

    <mj-text color="{THEME['text_muted']}" font-size="14px">
      Please bring your vehicle before the reception deadline so we can start on time.
    </mj-text>
    """

    return get_base_template(
        title="Appointment confirmed",
        preview_text=f"Your appointment on {appointment_date} at {start_time} is confirmed",
        content_sections=content,
    )


def appointment_cancelled_template(
    client_name: str,
    appointment_type: str,
    appointment_date: str,
    start_time: str,
    vehicle: str,
    license_plate: str,
    reason: Optional[str] = None,
) -> str:
    """Cancellation notice MJML template"""
    reason_section = ""
    if reason:
        reason_section = f"""
    <mj-text padding="0 0 16px 0">
      <strong>Reason:</strong> {reason}
    </mj-text>
    """

    content = f"""
    <mj-text>
      Hi {client_name},
    </mj-text>

    <mj-text padding="0 0 16px 0">
      Your appointment has been cancelled.
    </mj-text>

    {_appointment_details(appointment_type, appointment_date, start_time, vehicle, license_plate)}

    {reason_section}

    <mj-text color="{THEME['text_muted']}" font-size="14px">
      If you have questions, contact us on WhatsApp or call {WORKSHOP_PHONE}.
    </mj-text>
    """

    return get_base_template(
        title="Appointment cancelled",
        preview_text=f"Your appointment on {appointment_date} has been cancelled",
        content_sections=content,
        cta_url=WORKSHOP_WHATSAPP_URL,
        cta_label="Contact us on WhatsApp",
    )


def appointment_updated_template(
    client_name: str,
    appointment_type: str,
    appointment_date: str,
    start_time: str,
    vehicle: str,
    license_plate: str,
    technician_name: Optional[str] = None,
    reception_deadline: Optional[str] = None,
) -> str:
    """Appointment change MJML template"""
    content = f"""
    <mj-text>
      Hi {client_name},
    </mj-text>

    <mj-text padding="0 0 16px 0">
      Your appointment has been updated. The date and time stay the same.
    </mj-text>

    {_appointment_details(appointment_type, appointment_date, start_time, vehicle, license_plate, technician_name, reception_deadline)}
    """

    return get_base_template(
        title="Appointment updated",
        preview_text=f"Your appointment on {appointment_date} has been updated",
        content_sections=content,
    )
