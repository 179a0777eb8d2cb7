"""Rutas de entrada: check-in y consulta de tickets"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict
from shared.database.connection import get_db
from shared.auth.dependencies import get_current_scanner
from shared.utils.errors import InvalidDaySelectorError, TicketNotFoundError
from shared.utils.rate_limiter import limiter, RATE_LIMITS
from services.ticket_validation.models.ticket import (
    CheckInOutcome,
    CheckInResponse,
    TicketResponse,
)
from services.ticket_validation.services.ticket_service import TicketValidationService


router = APIRouter()


@router.post("/validate/{ticket_id}", response_model=CheckInResponse)
@limiter.limit(RATE_LIMITS["validation"])
async def validate_ticket(
    request: Request,  # Requerido por el rate limiter
    ticket_id: str,
    day: str = Query(...),
    db: AsyncSession = Depends(get_db),
    current_user: Dict = Depends(get_current_scanner)
):
    """
    Validar un ticket para el día 1 o 2

    Un escaneo repetido responde 200 con outcome ``already_checked_in``.
    """
    result = await TicketValidationService.validate_and_check_in(db, ticket_id, day)

    if result.outcome == CheckInOutcome.INVALID_REQUEST:
        raise InvalidDaySelectorError()
    if result.outcome == CheckInOutcome.NOT_FOUND:
        raise TicketNotFoundError(ticket_id)

    return CheckInResponse(
        success=result.outcome == CheckInOutcome.SUCCESS,
        outcome=result.outcome,
        message=result.message,
        day=result.day,
        ticket_id=result.ticket.ticket_id,
        name=result.ticket.name,
        event=result.ticket.event,
    )


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(
    ticket_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Dict = Depends(get_current_scanner)
):
    """Obtener detalles de un ticket para la app del scanner"""
    ticket = await TicketValidationService.get_ticket(db, ticket_id)

    if not ticket:
        raise TicketNotFoundError(ticket_id)

    return TicketResponse(
        ticket_id=ticket.id,
        event=ticket.event,
        name=ticket.primary_name,
        email=ticket.email,
        form_data=ticket.form_data or {},
        status_day_1=ticket.status_day_1,
        status_day_2=ticket.status_day_2,
        checked_in_day_1_at=ticket.checked_in_day_1_at,
        checked_in_day_2_at=ticket.checked_in_day_2_at,
        created_at=ticket.created_at,
    )
