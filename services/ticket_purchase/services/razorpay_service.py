"""Servicio de integración con Razorpay"""
from typing import Dict, Optional
import logging
import razorpay
from app.core.config import settings

logger = logging.getLogger(__name__)


class RazorpayService:
    """Servicio para crear órdenes de pago con Razorpay"""

    def __init__(self, key_id: Optional[str] = None, key_secret: Optional[str] = None):
        key_id = key_id or settings.RAZORPAY_KEY_ID
        key_secret = key_secret or settings.RAZORPAY_KEY_SECRET
        if not key_id or not key_secret:
            raise ValueError(
                "RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET no configurados. "
                "Configura ambos en tu archivo .env."
            )

        self.key_id = key_id
        self.client = razorpay.Client(auth=(key_id, key_secret))

        if key_id.startswith("rzp_test_") and settings.APP_ENV == "production":
            logger.warning("[Razorpay] Key de prueba (rzp_test_) configurada con APP_ENV=production")

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, str]] = None,
    ) -> Dict:
        """
        Crear una orden de pago

        Args:
            amount: Monto en unidades menores (paise)
            currency: Código de moneda ISO
            receipt: Recibo del comercio, único por orden
            notes: Datos del comprador que se copian a la orden (name, email, event_title)

        Returns:
            Dict de la orden de Razorpay (id, amount, currency, receipt, status, ...)
        """
        order = self.client.order.create({
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
            "payment_capture": 1,
        })

        if not isinstance(order, dict) or not order.get("id"):
            raise Exception(f"Respuesta inesperada de Razorpay: {type(order)}")

        logger.info(f"[Razorpay] Orden {order['id']} creada (receipt={receipt}, amount={amount} {currency})")
        return order
