"""Pre-registros: formulario enviado antes de conocer el resultado del pago"""
from typing import Any, Dict, Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shared.database.models import (
    PendingRegistration, REGISTRATION_PENDING, REGISTRATION_COMPLETED, utcnow
)

logger = logging.getLogger(__name__)


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def normalize_title(title: Optional[str]) -> str:
    return (title or "").strip()


class RegistrationStore:
    """Acceso a datos de pre-registros, por (evento, email del comprador)"""

    @staticmethod
    async def create(
        db: AsyncSession,
        event_title: str,
        name: str,
        email: str,
        form_data: Optional[Dict[str, Any]] = None,
    ) -> PendingRegistration:
        registration = PendingRegistration(
            event_title=normalize_title(event_title),
            name=name.strip(),
            email=normalize_email(email),
            form_data=dict(form_data or {}),
            status=REGISTRATION_PENDING,
            created_at=utcnow(),
        )
        async with db.begin():
            db.add(registration)

        logger.info(
            f"Pre-registro {registration.id} guardado para {registration.email} "
            f"({registration.event_title})"
        )
        return registration

    @staticmethod
    async def find_pending(
        db: AsyncSession,
        email: str,
        event_title: str,
    ) -> Optional[PendingRegistration]:
        """Pre-registro más reciente que sigue esperando el pago, si existe"""
        stmt = (
            select(PendingRegistration)
            .where(
                PendingRegistration.email == normalize_email(email),
                PendingRegistration.event_title == normalize_title(event_title),
                PendingRegistration.status == REGISTRATION_PENDING,
            )
            .order_by(PendingRegistration.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        async with db.begin():
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

    @staticmethod
    async def mark_completed(
        db: AsyncSession,
        registration_id: str,
        ticket_id: str,
    ) -> bool:
        """
        Enlazar un pre-registro con su ticket

        Solo se modifica si sigue en pending_payment, por lo que se completa
        una única vez.
        """
        stmt = (
            update(PendingRegistration)
            .where(
                PendingRegistration.id == registration_id,
                PendingRegistration.status == REGISTRATION_PENDING,
            )
            .values(
                status=REGISTRATION_COMPLETED,
                ticket_id=ticket_id,
                completed_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        async with db.begin():
            result = await db.execute(stmt)
            changed = result.rowcount == 1

        if changed:
            logger.info(f"Pre-registro {registration_id} completado con el ticket {ticket_id}")
        return changed
