"""Verificación de firmas de Razorpay

Dos esquemas HMAC-SHA256 independientes para las dos formas en que se
reporta un pago completado:

* confirmación del cliente: el navegador devuelve ``razorpay_signature``, el
  hex digest de ``"<order_id>|<payment_id>"`` con el key secret de la API;
* notificación del gateway: Razorpay firma los bytes exactos del body del
  webhook con el webhook secret y envía el hex digest en ``X-Razorpay-Signature``.

Cada esquema tiene su propio secret; uno no sirve para validar el otro.
"""
import hashlib
import hmac
from typing import Optional, Union


def _hmac_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _digests_match(expected: str, received: str) -> bool:
    # compare_digest solo acepta str ASCII, así que se comparan los bytes
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


def sign_client_confirmation(order_id: str, payment_id: str, secret: str) -> str:
    """Firma esperada para una confirmación del cliente"""
    return _hmac_hex(secret, f"{order_id}|{payment_id}".encode("utf-8"))


def sign_gateway_notification(raw_body: bytes, secret: str) -> str:
    """Firma esperada para el body de un webhook"""
    return _hmac_hex(secret, raw_body)


def verify_client_confirmation(
    order_id: Optional[str],
    payment_id: Optional[str],
    signature: Optional[str],
    secret: Optional[str],
) -> bool:
    """
    Verificar la firma que reporta el navegador después del checkout

    Args:
        order_id: razorpay_order_id
        payment_id: razorpay_payment_id
        signature: razorpay_signature enviada por el cliente
        secret: RAZORPAY_KEY_SECRET

    Returns:
        True solo si la firma coincide; False ante cualquier input mal formado
    """
    for value in (order_id, payment_id, signature, secret):
        if not isinstance(value, str) or not value:
            return False

    expected = sign_client_confirmation(order_id, payment_id, secret)
    return _digests_match(expected, signature)


def verify_gateway_notification(
    raw_body: Union[bytes, bytearray, None],
    header_signature: Optional[str],
    secret: Optional[str],
) -> bool:
    """
    Verificar un webhook de Razorpay

    El digest cubre el body literal del request, por eso se valida sobre los
    bytes crudos antes de parsear el JSON.
    """
    if not isinstance(raw_body, (bytes, bytearray)):
        return False
    if not isinstance(header_signature, str) or not header_signature:
        return False
    if not isinstance(secret, str) or not secret:
        return False

    expected = sign_gateway_notification(bytes(raw_body), secret)
    return _digests_match(expected, header_signature)
