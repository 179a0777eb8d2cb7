"""
Emisión de tickets desde los dos avisos de pago

Un pago puede llegar dos veces: desde el navegador del comprador justo después
del checkout (confirmación del cliente) y desde el webhook de Razorpay
(notificación del gateway). Cualquiera puede llegar primero, tarde o nunca.
Ambos caminos verifican su propia firma y convergen en
``TicketStore.finalize_ticket``, que garantiza un ticket por payment id sin
importar el orden de llegada.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
import json
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from shared.database.models import Ticket
from shared.utils.errors import InvalidSignatureError, MissingRequiredFieldError
from shared.utils.signatures import verify_client_confirmation, verify_gateway_notification
from services.ticket_purchase.services.purchase_service import PurchaseService
from services.ticket_purchase.services.registration_store import (
    RegistrationStore, normalize_email, normalize_title
)
from services.ticket_purchase.services.ticket_store import TicketPayload, TicketStore

logger = logging.getLogger(__name__)

SOURCE_CLIENT = "client"
SOURCE_GATEWAY = "gateway"

HANDLED_EVENTS = ("payment.captured", "order.paid")


@dataclass
class IssueResult:
    ticket: Ticket
    created: bool
    registration_id: Optional[str] = None


def _as_dict(value: Any) -> Dict[str, Any]:
    # Razorpay envía "notes": [] cuando la orden no tiene notas
    return value if isinstance(value, dict) else {}


def _first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _mask(signature: Optional[str]) -> str:
    if not signature:
        return "<none>"
    return f"{signature[:6]}..."


class TicketIssuer:
    """Convierte confirmaciones de pago verificadas en tickets"""

    def __init__(
        self,
        dispatcher,
        key_secret: Optional[str] = None,
        webhook_secret: Optional[str] = None,
    ):
        self.dispatcher = dispatcher
        self.key_secret = key_secret if key_secret is not None else settings.RAZORPAY_KEY_SECRET
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.RAZORPAY_WEBHOOK_SECRET
        )

    async def issue_from_client_path(
        self,
        db: AsyncSession,
        order_id: Optional[str],
        payment_id: Optional[str],
        signature: Optional[str],
        event_title: Optional[str] = None,
        name: Optional[str] = None,
        email: Optional[str] = None,
        form_data: Optional[Dict[str, Any]] = None,
    ) -> IssueResult:
        """
        Emitir (o devolver) el ticket de un pago confirmado por el navegador

        El formulario inline es lo que el comprador acaba de enviar, así que
        prevalece sobre cualquier pre-registro; el pre-registro solo se enlaza.

        Raises:
            InvalidSignatureError: la firma no corresponde a order_id|payment_id
            MissingRequiredFieldError: falta evento, nombre o email incluso
                después de consultar la orden guardada
        """
        if not verify_client_confirmation(order_id, payment_id, signature, self.key_secret):
            logger.warning(
                f"Confirmación de cliente rechazada para orden {order_id}, pago {payment_id} "
                f"(firma {_mask(signature)})"
            )
            raise InvalidSignatureError("client")

        order_notes: Dict[str, Any] = {}
        if not (_first(event_title) and _first(name) and _first(email)):
            order = await PurchaseService.get_order(db, order_id)
            if order is not None:
                order_notes = dict(_as_dict(order.notes))

        resolved_event = _first(event_title, order_notes.get("event_title"))
        resolved_name = _first(name, order_notes.get("name"))
        resolved_email = _first(email, order_notes.get("email"))
        self._require(event_title=resolved_event, name=resolved_name, email=resolved_email)

        payload = TicketPayload(
            event_title=normalize_title(resolved_event),
            name=resolved_name,
            email=normalize_email(resolved_email),
            form_data=_as_dict(form_data),
            order_id=order_id,
            source=SOURCE_CLIENT,
        )
        ticket, created = await TicketStore.finalize_ticket(db, payment_id, payload)

        registration_id = None
        if created:
            # Solo quien crea el ticket enlaza el pre-registro; un aviso repetido
            # no debe tomar el pre-registro de una compra posterior
            registration = await RegistrationStore.find_pending(db, payload.email, payload.event_title)
            if registration is not None:
                registration_id = registration.id
                await RegistrationStore.mark_completed(db, registration_id, ticket.id)
            await self._notify(ticket)

        return IssueResult(ticket=ticket, created=created, registration_id=registration_id)

    async def issue_from_gateway_path(
        self,
        db: AsyncSession,
        raw_body: bytes,
        signature: Optional[str],
    ) -> Optional[IssueResult]:
        """
        Emitir (o devolver) el ticket de un webhook de Razorpay

        La firma cubre el body crudo, por eso se valida antes de parsear.
        El webhook no trae formulario: se toma del pre-registro pendiente más
        reciente del mismo comprador y evento, si existe.

        Returns:
            IssueResult, o None para eventos que no confirman un pago
        """
        if not verify_gateway_notification(raw_body, signature, self.webhook_secret):
            logger.warning(f"Notificación del gateway rechazada (firma {_mask(signature)})")
            raise InvalidSignatureError("gateway")

        try:
            body = json.loads(raw_body)
        except ValueError:
            raise MissingRequiredFieldError("payload")
        if not isinstance(body, dict):
            raise MissingRequiredFieldError("payload")

        event_type = body.get("event")
        if event_type not in HANDLED_EVENTS:
            logger.info(f"Evento del gateway ignorado: {event_type}")
            return None

        payload = _as_dict(body.get("payload"))
        payment = _as_dict(_as_dict(payload.get("payment")).get("entity"))
        order_entity = _as_dict(_as_dict(payload.get("order")).get("entity"))

        payment_id = _first(payment.get("id"))
        gateway_order_id = _first(payment.get("order_id"), order_entity.get("id"))
        self._require(payment_id=payment_id)

        payment_notes = _as_dict(payment.get("notes"))
        order_entity_notes = _as_dict(order_entity.get("notes"))
        stored_notes: Dict[str, Any] = {}
        if gateway_order_id:
            order = await PurchaseService.get_order(db, gateway_order_id)
            if order is not None:
                stored_notes = dict(_as_dict(order.notes))

        email = _first(
            payment_notes.get("email"),
            payment.get("email"),
            order_entity_notes.get("email"),
            stored_notes.get("email"),
        )
        event_title = _first(
            payment_notes.get("event_title"),
            payment_notes.get("eventTitle"),
            order_entity_notes.get("event_title"),
            stored_notes.get("event_title"),
        )
        self._require(email=email, event_title=event_title)
        email = normalize_email(email)
        event_title = normalize_title(event_title)

        # Copiar a variables locales: si el insert choca con el índice único,
        # el rollback expira todos los objetos de la sesión
        registration_id: Optional[str] = None
        registration = await RegistrationStore.find_pending(db, email, event_title)
        if registration is not None:
            registration_id = registration.id
            name = registration.name
            form_data = dict(registration.form_data or {})
        else:
            name = _first(
                payment_notes.get("name"),
                order_entity_notes.get("name"),
                stored_notes.get("name"),
            ) or email
            form_data = {}

        ticket, created = await TicketStore.finalize_ticket(
            db,
            payment_id,
            TicketPayload(
                event_title=event_title,
                name=name,
                email=email,
                form_data=form_data,
                order_id=gateway_order_id,
                source=SOURCE_GATEWAY,
            ),
        )

        if not created:
            logger.info(f"Gateway {event_type} del pago {payment_id} ya tiene ticket {ticket.id}")
            return IssueResult(ticket=ticket, created=False)

        if registration_id is not None:
            await RegistrationStore.mark_completed(db, registration_id, ticket.id)
        await self._notify(ticket)

        return IssueResult(ticket=ticket, created=True, registration_id=registration_id)

    @staticmethod
    def _require(**fields: Optional[str]) -> None:
        for field_name, value in fields.items():
            if not value:
                raise MissingRequiredFieldError(field_name)

    async def _notify(self, ticket: Ticket) -> None:
        # El ticket ya está guardado; un fallo de envío no cambia la respuesta
        try:
            await self.dispatcher.dispatch(
                ticket_id=ticket.id,
                event_title=ticket.event,
                name=ticket.primary_name,
                email=ticket.email,
            )
        except Exception as e:
            logger.error(f"Falló la notificación del ticket {ticket.id}: {e}", exc_info=True)
