"""API Gateway principal - Punto de entrada de la aplicación"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
import logging
from contextlib import asynccontextmanager

from app.core.config import settings
from shared.database.connection import Database
from shared.utils.errors import DomainError, StoreUnavailableError
from shared.utils.rate_limiter import limiter, rate_limit_exceeded_handler
from services.notifications.services.dispatcher import NotificationDispatcher
from services.ticket_purchase.services.purchase_service import PurchaseService
from services.ticket_purchase.services.ticket_issuer import TicketIssuer

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def configure_state(
    app: FastAPI,
    database: Database,
    dispatcher,
    purchase_service: Optional[PurchaseService] = None,
) -> None:
    """Asociar el cliente de la base de datos y los servicios que lo usan"""
    app.state.database = database
    app.state.dispatcher = dispatcher
    app.state.ticket_issuer = TicketIssuer(dispatcher)
    app.state.purchase_service = purchase_service or PurchaseService()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Iniciando aplicación...")
    owns_database = getattr(app.state, "database", None) is None
    if owns_database:
        database = Database(
            settings.DATABASE_URL,
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            echo=settings.APP_DEBUG,
        )
        configure_state(app, database, NotificationDispatcher())
    await app.state.database.create_all()
    logger.info("Aplicación iniciada")
    yield
    logger.info("Cerrando aplicación...")
    if owns_database:
        await app.state.database.dispose()
    logger.info("Aplicación cerrada")


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} -> {exc}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"Error de base de datos en {request.method} {request.url.path}: {exc}", exc_info=True)
    error = StoreUnavailableError()
    return JSONResponse(status_code=error.status_code, content={"detail": error.to_detail()})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Ticket Reconciliation API",
        description="Payment-to-ticket reconciliation and gate check-in",
        version="1.0.0",
        lifespan=lifespan
    )

    # Configurar CORS PRIMERO (antes de rate limiting)
    if settings.APP_ENV == "development":
        logger.info("Modo desarrollo: CORS configurado para permitir todos los orígenes")
        allow_origins = ["*"]
        allow_credentials = False  # No se puede usar credentials con allow_origins=["*"]
    else:
        allow_origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]
        allow_credentials = True
        logger.info(f"CORS origins configurados: {allow_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=allow_credentials,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    from services.ticket_purchase.routes.purchase import router as purchase_router
    from services.ticket_validation.routes.validation import router as validation_router
    from services.admin.routes.admin import router as admin_router

    app.include_router(purchase_router, prefix="/api/v1/purchases", tags=["purchases"])
    app.include_router(validation_router, prefix="/api/v1/tickets", tags=["tickets"])
    app.include_router(admin_router, prefix="/api/v1/admin", tags=["admin"])

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        return {"status": "ok", "service": "ticket-reconciler"}

    @app.get("/ready")
    async def ready(request: Request):
        """Ready check endpoint - verifica la base de datos"""
        try:
            await request.app.state.database.ping()
        except Exception as e:
            logger.error(f"Ready check failed: {e}")
            return JSONResponse(status_code=503, content={"status": "not ready"})
        return {"status": "ready", "database": "connected"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.APP_DEBUG
    )
