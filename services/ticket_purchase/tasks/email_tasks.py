"""Tareas en segundo plano para e-mails de tickets"""
import logging
import asyncio
from shared.cache.celery_app import celery_app

logger = logging.getLogger(__name__)


def run_async(coro):
    """Ejecutar una corrutina desde el contexto síncrono de Celery"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


# Sin autoretry: un envío fallido queda registrado en el log para un operador
@celery_app.task(name="send_ticket_email", bind=True)
def send_ticket_email_task(self, ticket_id: str, event_title: str, name: str, email: str):
    """Enviar un ticket emitido a su comprador"""
    from services.notifications.services.email_service import EmailService

    logger.info(f"[CELERY] Enviando ticket {ticket_id} a {email} para {event_title}")

    service = EmailService()
    success = run_async(service.send_ticket_email(
        to_email=email,
        attendee_name=name,
        event_name=event_title,
        ticket_id=ticket_id,
    ))

    if success:
        logger.info(f"[CELERY] Ticket {ticket_id} enviado a {email}")
        return {"status": "sent", "email": email, "ticket_id": ticket_id}

    logger.error(f"[CELERY] Error enviando el ticket {ticket_id} a {email}")
    return {"status": "failed", "email": email, "ticket_id": ticket_id}
