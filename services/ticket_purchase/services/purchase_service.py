"""Servicio de checkout: órdenes de pago y pre-registros"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Dict, Optional
import asyncio
import uuid
from functools import partial
import logging
from app.core.config import settings
from shared.database.models import Order, PendingRegistration, utcnow
from services.ticket_purchase.models.purchase import CreateOrderRequest, PreRegistrationRequest
from services.ticket_purchase.services.razorpay_service import RazorpayService
from services.ticket_purchase.services.registration_store import RegistrationStore, normalize_email

logger = logging.getLogger(__name__)


class PurchaseService:
    """Servicio para crear órdenes de pago y guardar pre-registros"""

    def __init__(self, razorpay_service: Optional[RazorpayService] = None):
        self._razorpay_service = razorpay_service

    @property
    def razorpay_service(self) -> RazorpayService:
        """RazorpayService perezoso, solo se construye al crear una orden"""
        if self._razorpay_service is None:
            self._razorpay_service = RazorpayService()
        return self._razorpay_service

    async def create_order(
        self,
        db: AsyncSession,
        request: CreateOrderRequest
    ) -> Dict:
        """
        Crear una orden en Razorpay y guardar una copia local para auditoría

        Returns:
            dict con order_id, amount, currency, receipt, key_id
        """
        currency = (request.currency or settings.DEFAULT_CURRENCY).upper()
        receipt = f"rcpt_{uuid.uuid4().hex[:16]}"
        notes = {
            "name": request.name.strip(),
            "email": normalize_email(request.email),
            "event_title": request.event_title.strip(),
        }

        # El SDK de Razorpay es síncrono; se ejecuta fuera del event loop
        loop = asyncio.get_running_loop()
        gateway_order = await loop.run_in_executor(
            None,
            partial(
                self.razorpay_service.create_order,
                amount=request.amount,
                currency=currency,
                receipt=receipt,
                notes=notes,
            ),
        )

        order = Order(
            gateway_order_id=gateway_order["id"],
            receipt=receipt,
            amount=request.amount,
            currency=currency,
            notes=notes,
            created_at=utcnow(),
        )
        async with db.begin():
            db.add(order)

        logger.info(f"Orden {order.id} guardada para la orden del gateway {order.gateway_order_id}")

        return {
            "order_id": gateway_order["id"],
            "amount": request.amount,
            "currency": currency,
            "receipt": receipt,
            "key_id": self.razorpay_service.key_id,
        }

    @staticmethod
    async def get_order(db: AsyncSession, gateway_order_id: str) -> Optional[Order]:
        """Obtener la orden local por su order id de Razorpay"""
        stmt = select(Order).where(Order.gateway_order_id == gateway_order_id)
        async with db.begin():
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

    @staticmethod
    async def create_pre_registration(
        db: AsyncSession,
        request: PreRegistrationRequest
    ) -> PendingRegistration:
        return await RegistrationStore.create(
            db,
            event_title=request.event_title,
            name=request.name,
            email=request.email,
            form_data=request.form_data,
        )
