"""
Rate limiting con slowapi

Storage en Redis en producción para que todas las instancias de la API
compartan los contadores; ``memory://`` para desarrollo local y tests.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request, Response
from starlette.responses import JSONResponse
import hashlib
import logging
from app.core.config import settings

logger = logging.getLogger(__name__)


def get_real_client_ip(request: Request) -> str:
    """
    Obtener la IP real del cliente detrás de proxies/load balancers (nginx, cloudflare)
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For: client, proxy1, proxy2 (el primero es el cliente)
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    cf_connecting_ip = request.headers.get("CF-Connecting-IP")
    if cf_connecting_ip:
        return cf_connecting_ip

    return get_remote_address(request)


def get_user_identifier(request: Request) -> str:
    """
    Clave de rate limit: IP del cliente más un hash del token para el staff
    autenticado, así los scanners que comparten la IP del recinto tienen
    contadores separados.
    """
    ip = get_real_client_ip(request)

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token_hash = hashlib.md5(auth_header.encode()).hexdigest()[:8]
        return f"{ip}:{token_hash}"

    return ip


STORAGE_URI = settings.RATE_LIMIT_STORAGE_URI

limiter = Limiter(
    key_func=get_user_identifier,
    storage_uri=STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
    headers_enabled=False,  # Incompatible con los response_model de FastAPI
)
logger.info(
    f"Rate limiter initialized (storage: {STORAGE_URI.split('@')[-1]}, "
    f"enabled: {settings.RATE_LIMIT_ENABLED})"
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Respuesta JSON 429 con header Retry-After"""
    logger.warning(
        f"Rate limit exceeded - IP: {get_real_client_ip(request)}, "
        f"Path: {request.url.path}, "
        f"Limit: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "detail": "Too many requests. Please wait before trying again.",
        },
        headers={"Retry-After": "60"},
    )


# verify-payment y el webhook nunca se limitan
RATE_LIMITS = {
    "purchase": "10/minute",
    "registration": "20/minute",
    "validation": "60/minute",
    "admin": "120/minute",
}
