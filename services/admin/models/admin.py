"""Modelos Pydantic para el servicio de administración"""
from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from datetime import datetime


class AdminRegistrationResponse(BaseModel):
    """Un ticket emitido visto por un administrador"""
    ticket_id: str
    event: str
    name: str
    email: str
    form_data: Dict[str, Any]
    payment_id: str
    order_id: Optional[str] = None
    source: str
    status_day_1: str
    status_day_2: str
    created_at: Optional[datetime] = None


class RegistrationsSummary(BaseModel):
    total: int
    checked_in_day_1: int
    checked_in_day_2: int


class AdminRegistrationsListResponse(BaseModel):
    """Todos los registros, del más reciente al más antiguo"""
    registrations: List[AdminRegistrationResponse]
    summary: RegistrationsSummary
