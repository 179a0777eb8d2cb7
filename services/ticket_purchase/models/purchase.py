"""Modelos Pydantic para órdenes, confirmación de pago y pre-registro"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Any, Dict, Optional


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: int = Field(..., gt=0)  # Unidades menores (paise)
    currency: Optional[str] = None
    name: str = Field(..., min_length=1)
    email: EmailStr
    event_title: str = Field(..., min_length=1, alias="eventTitle")


class CreateOrderResponse(BaseModel):
    order_id: str  # Order id de Razorpay, se entrega a checkout.js
    amount: int
    currency: str
    receipt: str
    key_id: str


class VerifyPaymentRequest(BaseModel):
    """
    Confirmación del cliente después del checkout

    Los campos son opcionales para que la falta de uno se reporte como
    MISSING_REQUIRED_FIELD y no como un 422 genérico.
    """
    model_config = ConfigDict(populate_by_name=True)

    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    event_title: Optional[str] = Field(None, alias="eventTitle")
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    form_data: Optional[Dict[str, Any]] = Field(None, alias="formData")


class VerifyPaymentResponse(BaseModel):
    success: bool
    ticket_id: str


class WebhookResponse(BaseModel):
    status: str  # ok, ignored
    ticket_id: Optional[str] = None
    created: Optional[bool] = None


class PreRegistrationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_title: str = Field(..., min_length=1, alias="eventTitle")
    name: str = Field(..., min_length=1)
    email: EmailStr
    form_data: Dict[str, Any] = Field(default_factory=dict, alias="formData")


class PreRegistrationResponse(BaseModel):
    registration_id: str
    status: str
