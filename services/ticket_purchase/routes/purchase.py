"""Rutas de checkout: órdenes, confirmación de pago, webhook y pre-registro"""
from fastapi import APIRouter, Depends, Header, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging
from shared.database.connection import get_db
from shared.utils.rate_limiter import limiter, RATE_LIMITS
from services.ticket_purchase.models.purchase import (
    CreateOrderRequest,
    CreateOrderResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
    WebhookResponse,
    PreRegistrationRequest,
    PreRegistrationResponse,
)
from services.ticket_purchase.services.purchase_service import PurchaseService
from services.ticket_purchase.services.ticket_issuer import TicketIssuer

logger = logging.getLogger(__name__)

router = APIRouter()


def get_purchase_service(request: Request) -> PurchaseService:
    return request.app.state.purchase_service


def get_ticket_issuer(request: Request) -> TicketIssuer:
    return request.app.state.ticket_issuer


@router.post("/orders", response_model=CreateOrderResponse)
@limiter.limit(RATE_LIMITS["purchase"])
async def create_order(
    request: Request,  # Requerido por el rate limiter
    order_request: CreateOrderRequest,
    db: AsyncSession = Depends(get_db),
    service: PurchaseService = Depends(get_purchase_service),
):
    """Crear una orden de Razorpay para checkout.js"""
    order = await service.create_order(db, order_request)
    return CreateOrderResponse(**order)


@router.post("/verify-payment", response_model=VerifyPaymentResponse)
async def verify_payment(
    payload: VerifyPaymentRequest,
    db: AsyncSession = Depends(get_db),
    issuer: TicketIssuer = Depends(get_ticket_issuer),
):
    """
    Confirmación del cliente después del checkout

    Se puede repetir: el mismo pago siempre devuelve el mismo ticket id.
    """
    result = await issuer.issue_from_client_path(
        db,
        order_id=payload.razorpay_order_id,
        payment_id=payload.razorpay_payment_id,
        signature=payload.razorpay_signature,
        event_title=payload.event_title,
        name=payload.name,
        email=str(payload.email) if payload.email else None,
        form_data=payload.form_data,
    )
    return VerifyPaymentResponse(success=True, ticket_id=result.ticket.id)


@router.post("/webhook", response_model=WebhookResponse)
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(None, alias="X-Razorpay-Signature"),
    db: AsyncSession = Depends(get_db),
    issuer: TicketIssuer = Depends(get_ticket_issuer),
):
    """
    Notificación del gateway de Razorpay

    El body se lee crudo porque la firma cubre los bytes exactos enviados.
    """
    raw_body = await request.body()
    result = await issuer.issue_from_gateway_path(db, raw_body, x_razorpay_signature)

    if result is None:
        return WebhookResponse(status="ignored")

    return WebhookResponse(status="ok", ticket_id=result.ticket.id, created=result.created)


@router.post(
    "/pre-registrations",
    response_model=PreRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(RATE_LIMITS["registration"])
async def create_pre_registration(
    request: Request,  # Requerido por el rate limiter
    registration_request: PreRegistrationRequest,
    db: AsyncSession = Depends(get_db),
):
    """Guardar el formulario de registro antes de intentar el pago"""
    registration = await PurchaseService.create_pre_registration(db, registration_request)
    return PreRegistrationResponse(
        registration_id=registration.id,
        status=registration.status,
    )
