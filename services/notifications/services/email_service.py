"""Servicio de envío de e-mails de tickets usando Resend"""
import asyncio
import logging
from html import escape
from typing import List, Optional, Union
import resend
from app.core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Servicio para enviar e-mails usando Resend"""

    def __init__(self, api_key: Optional[str] = None, from_email: Optional[str] = None):
        self.resend_api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.from_email = from_email or settings.RESEND_FROM_EMAIL

        if not self.resend_api_key:
            logger.warning("RESEND_API_KEY no configurada. Los e-mails no se enviarán.")
            self.resend_configured = False
        else:
            resend.api_key = self.resend_api_key
            self.resend_configured = True
            logger.info(f"EmailService (Resend) inicializado con from: {self.from_email}")

    async def send_email(
        self,
        to_email: Union[str, List[str]],
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> bool:
        """
        Enviar un e-mail usando Resend

        Returns:
            True si el proveedor lo aceptó (o el envío es simulado), False si no
        """
        if not self.resend_configured:
            logger.warning(f"Resend no configurado. E-mail simulado a {to_email}: {subject}")
            return True

        to_emails = [to_email] if isinstance(to_email, str) else to_email
        params = {
            "from": self.from_email,
            "to": to_emails,
            "subject": subject,
            "html": html_content,
        }
        if text_content:
            params["text"] = text_content

        # El SDK de Resend es síncrono
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, resend.Emails.send, params)
        except Exception as e:
            logger.error(f"Error enviando e-mail a {to_emails}: {e}", exc_info=True)
            return False

        logger.info(f"E-mail enviado a {to_emails}: {subject} (ID: {result.get('id', 'N/A')})")
        return True

    async def send_ticket_email(
        self,
        to_email: str,
        attendee_name: str,
        event_name: str,
        ticket_id: str,
    ) -> bool:
        """Enviar al comprador su ticket id para la entrada al evento"""
        subject = f"Your Ticket for {event_name}"
        organization = escape(settings.ORGANIZATION_NAME)
        html_content = f"""
            <p>Hi {escape(attendee_name)},</p>
            <p>Thank you for registering! Your ticket for <strong>{escape(event_name)}</strong> is confirmed.</p>
            <p>Ticket ID: <strong>{escape(ticket_id)}</strong></p>
            <p>Please have your ticket ready for scanning at the event entrance.</p>
            <br>
            <p>Best regards,</p>
            <p><strong>The {organization} Team</strong></p>
        """
        text_content = (
            f"Hi {attendee_name},\n\n"
            f"Your ticket for {event_name} is confirmed.\n"
            f"Ticket ID: {ticket_id}\n\n"
            f"The {settings.ORGANIZATION_NAME} Team"
        )
        return await self.send_email(
            to_email=to_email,
            subject=subject,
            html_content=html_content,
            text_content=text_content,
        )
