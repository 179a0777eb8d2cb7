"""Envía los tickets emitidos a la cola de e-mails en segundo plano"""
import asyncio
import logging
from functools import partial

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Publica una tarea ``send_ticket_email`` por cada ticket nuevo

    La publicación no espera resultado: un fallo del broker se registra en el
    log y no cambia la respuesta del request que emitió el ticket.
    """

    def _publish(self, ticket_id: str, event_title: str, name: str, email: str):
        from services.ticket_purchase.tasks.email_tasks import send_ticket_email_task

        return send_ticket_email_task.apply_async(
            kwargs={
                "ticket_id": ticket_id,
                "event_title": event_title,
                "name": name,
                "email": email,
            },
            retry=False,
        )

    async def dispatch(self, ticket_id: str, event_title: str, name: str, email: str) -> bool:
        # La publicación habla con el broker de forma síncrona
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(
                None,
                partial(self._publish, ticket_id, event_title, name, email),
            )
        except Exception as e:
            logger.error(f"No se pudo encolar el e-mail del ticket {ticket_id}: {e}", exc_info=True)
            return False

        logger.info(f"E-mail del ticket {ticket_id} encolado (task {result.id})")
        return True
