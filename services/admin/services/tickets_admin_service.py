"""Servicio de listado de tickets para administradores"""
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, Optional

from shared.database.models import DAY_CHECKED_IN
from services.ticket_purchase.services.ticket_store import TicketStore


class TicketsAdminService:
    """Operaciones de solo lectura sobre tickets para administradores"""

    async def get_registrations(
        self,
        db: AsyncSession,
        limit: Optional[int] = None
    ) -> Dict:
        """
        Obtener todos los tickets emitidos, del más reciente al más antiguo

        Args:
            db: Sesión de base de datos
            limit: Número máximo de tickets (todos si es None)

        Returns:
            Dict con tickets y resumen
        """
        tickets = await TicketStore.list_tickets(db, limit=limit)

        summary = {
            "total": len(tickets),
            "checked_in_day_1": sum(1 for t in tickets if t.status_day_1 == DAY_CHECKED_IN),
            "checked_in_day_2": sum(1 for t in tickets if t.status_day_2 == DAY_CHECKED_IN),
        }

        return {"tickets": tickets, "summary": summary}
