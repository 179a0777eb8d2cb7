"""Persistencia de tickets: un ticket por pago, garantizado por la base de datos"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import logging
import time
import uuid

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.database.models import Ticket, DAY_PENDING, DAY_CHECKED_IN, utcnow

logger = logging.getLogger(__name__)

VALID_DAYS = (1, 2)


@dataclass
class TicketPayload:
    """Datos del ticket aparte de su payment id"""

    event_title: str
    name: str
    email: str
    form_data: Dict[str, Any] = field(default_factory=dict)
    order_id: Optional[str] = None
    source: str = "client"


def generate_ticket_id() -> str:
    # Prefijo en milisegundos para ordenar; el sufijo aleatorio evita colisiones
    return f"TICKET-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8].upper()}"


class TicketStore:
    """Acceso a datos de tickets"""

    @staticmethod
    async def finalize_ticket(
        db: AsyncSession,
        payment_id: str,
        payload: TicketPayload,
    ) -> Tuple[Ticket, bool]:
        """
        Crear el ticket de un pago, o devolver el que ya existe

        El insert depende del índice único de ``tickets.payment_id``; no hay
        lectura previa. Si otro llamador llegó primero (incluso en paralelo)
        la base de datos rechaza el insert y se lee y devuelve el ticket existente.

        Returns:
            (ticket, created); created es False si el pago ya tenía ticket
        """
        ticket = Ticket(
            id=generate_ticket_id(),
            event=payload.event_title,
            primary_name=payload.name,
            email=payload.email,
            form_data=dict(payload.form_data or {}),
            payment_id=payment_id,
            order_id=payload.order_id,
            source=payload.source,
            status_day_1=DAY_PENDING,
            status_day_2=DAY_PENDING,
            created_at=utcnow(),
        )

        try:
            async with db.begin():
                db.add(ticket)
        except IntegrityError:
            await db.rollback()
            existing = await TicketStore.get_by_payment_id(db, payment_id)
            if existing is None:
                # La violación no fue sobre payment_id
                raise
            logger.info(
                f"El pago {payment_id} ya tiene ticket {existing.id} "
                f"(source={existing.source}); se devuelve el existente"
            )
            return existing, False

        logger.info(f"Ticket {ticket.id} creado para el pago {payment_id} vía {payload.source}")
        return ticket, True

    @staticmethod
    async def get_by_payment_id(db: AsyncSession, payment_id: str) -> Optional[Ticket]:
        stmt = (
            select(Ticket)
            .where(Ticket.payment_id == payment_id)
            .execution_options(populate_existing=True)
        )
        async with db.begin():
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

    @staticmethod
    async def get_ticket(db: AsyncSession, ticket_id: str) -> Optional[Ticket]:
        stmt = (
            select(Ticket)
            .where(Ticket.id == ticket_id)
            .execution_options(populate_existing=True)
        )
        async with db.begin():
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

    @staticmethod
    async def list_tickets(db: AsyncSession, limit: Optional[int] = None) -> List[Ticket]:
        """Todos los tickets, del más reciente al más antiguo"""
        stmt = select(Ticket).order_by(Ticket.created_at.desc(), Ticket.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        async with db.begin():
            result = await db.execute(stmt)
            return list(result.scalars().all())

    @staticmethod
    async def mark_day_checked_in(db: AsyncSession, ticket_id: str, day: int) -> bool:
        """
        Pasar un día de entrada de pending a checked-in

        Update condicional: solo coincide mientras el día sigue pending, así
        de dos escaneos simultáneos exactamente uno modifica la fila.

        Returns:
            True si esta llamada hizo la transición
        """
        if day not in VALID_DAYS:
            raise ValueError(f"invalid day: {day}")

        status_column = getattr(Ticket, f"status_day_{day}")
        stmt = (
            update(Ticket)
            .where(Ticket.id == ticket_id, status_column == DAY_PENDING)
            .values(**{
                f"status_day_{day}": DAY_CHECKED_IN,
                f"checked_in_day_{day}_at": utcnow(),
            })
            .execution_options(synchronize_session=False)
        )
        async with db.begin():
            result = await db.execute(stmt)
            changed = result.rowcount == 1
        return changed
