"""Códigos de error de dominio compartidos por los servicios de compra y validación"""
from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Códigos de error de dominio"""

    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    INVALID_DAY_SELECTOR = "INVALID_DAY_SELECTOR"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


class DomainError(Exception):
    """Error de dominio base con código, status HTTP y mensaje seguro para el usuario"""

    status_code = 400

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_detail(self) -> dict:
        return {"code": self.code.value, "message": self.message}


class InvalidSignatureError(DomainError):
    """Firma inválida en una confirmación del cliente o una notificación del gateway"""

    def __init__(self, path: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_SIGNATURE,
            message="Invalid payment signature",
        )
        self.path = path


class MissingRequiredFieldError(DomainError):
    """Falta un campo necesario para emitir el ticket"""

    def __init__(self, field: str) -> None:
        super().__init__(
            code=ErrorCode.MISSING_REQUIRED_FIELD,
            message=f"Missing required field: {field}",
        )
        self.field = field


class TicketNotFoundError(DomainError):
    """El ticket id no existe"""

    status_code = 404

    def __init__(self, ticket_id: Optional[str] = None) -> None:
        super().__init__(
            code=ErrorCode.TICKET_NOT_FOUND,
            message="Invalid Ticket",
        )
        self.ticket_id = ticket_id


class InvalidDaySelectorError(DomainError):
    """El día de check-in no es 1 ni 2"""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_DAY_SELECTOR,
            message="day must be 1 or 2",
        )


class StoreUnavailableError(DomainError):
    """La base de datos no puede atender la solicitud"""

    status_code = 500

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.STORE_UNAVAILABLE,
            message="Service temporarily unavailable",
        )
