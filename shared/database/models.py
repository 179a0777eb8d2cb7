"""Modelos SQLAlchemy para órdenes, pre-registros y tickets"""
from sqlalchemy import Column, String, Integer, DateTime, JSON, Index
from sqlalchemy.sql import func
import uuid
from datetime import datetime, timezone
from shared.database.connection import Base


DAY_PENDING = "pending"
DAY_CHECKED_IN = "checked-in"

REGISTRATION_PENDING = "pending_payment"
REGISTRATION_COMPLETED = "completed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid_str() -> str:
    return str(uuid.uuid4())


class Order(Base):
    """Intención de pago creada en el checkout; se guarda para auditoría y no se modifica"""
    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=_uuid_str)
    gateway_order_id = Column(String, unique=True, nullable=False, index=True)  # Razorpay order_xxx
    receipt = Column(String, unique=True, nullable=False)
    amount = Column(Integer, nullable=False)  # Unidades menores (paise)
    currency = Column(String, nullable=False, default="INR", server_default="INR")
    notes = Column(JSON, nullable=False, default=dict)  # name, email, event_title
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class PendingRegistration(Base):
    """Formulario enviado antes del pago, pendiente de enlazar con un ticket"""
    __tablename__ = "pending_registrations"

    id = Column(String, primary_key=True, default=_uuid_str)
    event_title = Column(String, nullable=False)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)  # Normalizado: minúsculas y sin espacios
    form_data = Column(JSON, nullable=False, default=dict)
    status = Column(String, nullable=False, default=REGISTRATION_PENDING, server_default=REGISTRATION_PENDING)  # pending_payment, completed
    ticket_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_pending_registrations_lookup", "email", "event_title", "status"),
    )


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(String, primary_key=True)
    event = Column(String, nullable=False)
    primary_name = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    form_data = Column(JSON, nullable=False, default=dict)
    # Un ticket por pago: este índice único es la garantía de idempotencia
    payment_id = Column(String, unique=True, nullable=False)
    order_id = Column(String, nullable=True)  # Order id de Razorpay, si se conoce
    source = Column(String, nullable=False)  # client, gateway
    status_day_1 = Column(String, nullable=False, default=DAY_PENDING, server_default=DAY_PENDING)
    status_day_2 = Column(String, nullable=False, default=DAY_PENDING, server_default=DAY_PENDING)
    checked_in_day_1_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_day_2_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
