"""
Email notifications for appointment events.

Messages are rendered from Jinja2 templates and sent over SMTP in a worker
thread. Sending never raises: callers get a result dict and decide whether to
surface a warning.
"""

import asyncio
import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, TemplateError

from propertyhub.config import settings
from propertyhub.models.appointment import Appointment

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"

SUBJECTS = {
    "created": "New appointment scheduled - {title}",
    "confirmed": "Appointment confirmed - {title}",
    "cancelled": "Appointment cancelled - {title}",
}

_template_env: Optional[Environment] = None


def get_template_env() -> Environment:
    """Get or create Jinja2 template environment."""
    global _template_env
    if _template_env is None:
        _template_env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=True
        )
    return _template_env


def render_template(template_name: str, **context) -> str:
    env = get_template_env()
    return env.get_template(template_name).render(**context)


def format_appointment_date(value: datetime) -> str:
    """e.g. ``January 15, 2024 at 14:30``"""
    return f"{value:%B} {value.day}, {value.year} at {value:%H:%M}"


def get_appointment_email_subject(event: str, property_title: str) -> str:
    return SUBJECTS[event].format(title=property_title)


class EmailService:
    """Sends appointment notifications to the client and the agent."""

    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = settings.email_enabled if enabled is None else enabled

    def _send_sync(self, to: str, subject: str, html_body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{settings.email_from_name} <{settings.email_from_address}>"
        msg["To"] = to
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=15) as server:
            if settings.smtp_use_tls:
                server.starttls()
            if settings.smtp_username and settings.smtp_password:
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(msg)

    async def send_email(self, to: str, subject: str, html_body: str) -> Dict[str, Any]:
        """
        Send an HTML email.

        Returns:
            ``{"success": True}``, ``{"success": True, "skipped": True}`` when
            email is disabled, or ``{"success": False, "error": ...}``
        """
        if not self.enabled:
            logger.debug(f"Email disabled, not sending '{subject}' to {to}")
            return {"success": True, "skipped": True}

        try:
            await asyncio.to_thread(self._send_sync, to, subject, html_body)
            logger.info(f"Email sent successfully to {to}: {subject}")
            return {"success": True}
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP error sending email to {to}: {e}")
            return {"success": False, "error": str(e)}

    async def _send_event(self, event: str, appointment: Appointment) -> Dict[str, Any]:
        """Render and send one event to both participants."""
        prop = appointment.property_rel
        client = appointment.user
        agent = appointment.agent

        context = {
            "property_title": prop.title,
            "property_address": f"{prop.address}, {prop.city}, {prop.state}",
            "appointment_date": format_appointment_date(appointment.scheduled_at),
            "client_name": client.name,
            "client_email": client.email,
            "client_phone": client.phone,
            "agent_name": agent.name if agent else None,
            "agent_email": agent.email if agent else None,
            "agent_phone": agent.phone if agent else None,
            "notes": appointment.notes,
            "cancellation_reason": appointment.cancellation_reason,
            "app_name": settings.app_name,
        }
        subject = get_appointment_email_subject(event, prop.title)

        recipients = [("client", client.email)]
        if agent:
            recipients.append(("agent", agent.email))

        failed: List[str] = []
        skipped = False
        for role, address in recipients:
            try:
                html_body = render_template(f"appointment_{event}.html", recipient=role, **context)
            except TemplateError as e:
                logger.error(f"Failed to render appointment_{event} email: {e}")
                failed.append(role)
                continue

            result = await self.send_email(address, subject, html_body)
            skipped = skipped or result.get("skipped", False)
            if not result["success"]:
                failed.append(role)

        if failed:
            logger.warning(
                f"Appointment {appointment.id} {event} email failed for: {', '.join(failed)}"
            )
            return {"success": False, "error": f"Email delivery failed: {', '.join(failed)}"}

        return {"success": True, "skipped": skipped} if skipped else {"success": True}

    async def send_appointment_created(self, appointment: Appointment) -> Dict[str, Any]:
        return await self._send_event("created", appointment)

    async def send_appointment_confirmed(self, appointment: Appointment) -> Dict[str, Any]:
        return await self._send_event("confirmed", appointment)

    async def send_appointment_cancelled(self, appointment: Appointment) -> Dict[str, Any]:
        return await self._send_event("cancelled", appointment)
