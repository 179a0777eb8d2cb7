"""Rutas de administración"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, Optional

from shared.database.connection import get_db
from shared.auth.dependencies import get_current_admin
from shared.utils.rate_limiter import limiter, RATE_LIMITS
from services.admin.models.admin import (
    AdminRegistrationResponse,
    AdminRegistrationsListResponse,
    RegistrationsSummary,
)
from services.admin.services.tickets_admin_service import TicketsAdminService


router = APIRouter()


# ==================== REGISTROS ====================

@router.get("/registrations", response_model=AdminRegistrationsListResponse)
@limiter.limit(RATE_LIMITS["admin"])
async def get_registrations(
    request: Request,  # Requerido por el rate limiter
    limit: Optional[int] = Query(None, ge=1, le=10000, description="Número máximo de tickets"),
    db: AsyncSession = Depends(get_db),
    current_user: Dict = Depends(get_current_admin)
):
    """
    Listar los tickets emitidos, del más reciente al más antiguo

    Requiere autenticación de administrador
    """
    result = await TicketsAdminService().get_registrations(db, limit=limit)

    registrations = [
        AdminRegistrationResponse(
            ticket_id=ticket.id,
            event=ticket.event,
            name=ticket.primary_name,
            email=ticket.email,
            form_data=ticket.form_data or {},
            payment_id=ticket.payment_id,
            order_id=ticket.order_id,
            source=ticket.source,
            status_day_1=ticket.status_day_1,
            status_day_2=ticket.status_day_2,
            created_at=ticket.created_at,
        )
        for ticket in result["tickets"]
    ]

    return AdminRegistrationsListResponse(
        registrations=registrations,
        summary=RegistrationsSummary(**result["summary"]),
    )
