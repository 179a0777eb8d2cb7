"""Check-in en la entrada: estado de admisión por día de cada ticket"""
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Optional
import logging
from shared.database.models import Ticket
from services.ticket_purchase.services.ticket_store import TicketStore, VALID_DAYS
from services.ticket_validation.models.ticket import CheckInOutcome, CheckInResult, TicketSummary

logger = logging.getLogger(__name__)


def parse_day(day: Any) -> Optional[int]:
    """1 o 2 desde un int o un string numérico; None para cualquier otro valor"""
    if isinstance(day, bool):
        return None
    if isinstance(day, int):
        value = day
    elif isinstance(day, str) and day.strip().isdigit():
        value = int(day.strip())
    else:
        return None
    return value if value in VALID_DAYS else None


def _summary(ticket: Ticket) -> TicketSummary:
    return TicketSummary(ticket_id=ticket.id, name=ticket.primary_name, event=ticket.event)


class TicketValidationService:
    """Máquina de estados del check-in: pending -> checked-in, una vez por día"""

    @staticmethod
    async def validate_and_check_in(
        db: AsyncSession,
        ticket_id: str,
        day: Any,
    ) -> CheckInResult:
        """
        Admitir al titular de un ticket para un día del evento

        La transición es un update condicional sobre el estado del día, antes
        de cualquier lectura. Después se lee el ticket para el resumen; si el
        update no modificó nada, la lectura distingue un ticket inexistente de
        uno ya usado ese día. En esos dos casos no se escribe nada.
        """
        parsed_day = parse_day(day)
        if parsed_day is None:
            logger.info(f"Check-in rechazado para {ticket_id}: día inválido {day!r}")
            return CheckInResult(outcome=CheckInOutcome.INVALID_REQUEST)

        changed = await TicketStore.mark_day_checked_in(db, ticket_id, parsed_day)
        ticket = await TicketStore.get_ticket(db, ticket_id)

        if ticket is None:
            logger.info(f"Check-in de ticket inexistente {ticket_id}")
            return CheckInResult(outcome=CheckInOutcome.NOT_FOUND, day=parsed_day)

        if changed:
            logger.info(f"Ticket {ticket_id} validado para el día {parsed_day}")
            return CheckInResult(
                outcome=CheckInOutcome.SUCCESS, day=parsed_day, ticket=_summary(ticket)
            )

        logger.info(f"Ticket {ticket_id} ya validado para el día {parsed_day}")
        return CheckInResult(
            outcome=CheckInOutcome.ALREADY_CHECKED_IN, day=parsed_day, ticket=_summary(ticket)
        )

    @staticmethod
    async def get_ticket(db: AsyncSession, ticket_id: str) -> Optional[Ticket]:
        return await TicketStore.get_ticket(db, ticket_id)
