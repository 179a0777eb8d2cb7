"""Conexión a la base de datos: engine y session factory en un objeto explícito"""
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import event, text
from fastapi import Request
from typing import AsyncGenerator, Optional
import logging

logger = logging.getLogger(__name__)

# Base para modelos SQLAlchemy
Base = declarative_base()


def normalize_async_url(database_url: str) -> str:
    """Convertir URLs de drivers síncronos a su driver async"""
    # Limpiar parámetros de la URL (SSL se configura en connect_args)
    if database_url.startswith("postgres") and "?" in database_url:
        database_url = database_url.split("?")[0]

    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgresql+psycopg://"):
        return database_url.replace("postgresql+psycopg://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    return database_url


class Database:
    """
    Cliente de la base de datos: un engine y su session factory

    Se crea una vez en el lifespan de la aplicación y se guarda en ``app.state``;
    los handlers reciben sesiones a través de ``get_db``.
    """

    def __init__(
        self,
        database_url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
    ):
        self.url = normalize_async_url(database_url)
        is_sqlite = self.url.startswith("sqlite+aiosqlite://")

        engine_kwargs = {"echo": echo, "pool_pre_ping": True}
        if not is_sqlite:
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=30,
                pool_recycle=300,
                pool_use_lifo=True,
            )

        self.engine: AsyncEngine = create_async_engine(self.url, **engine_kwargs)

        if is_sqlite:
            @event.listens_for(self.engine.sync_engine, "connect")
            def _sqlite_pragmas(dbapi_connection, _):
                cur = dbapi_connection.cursor()
                cur.execute("PRAGMA busy_timeout=5000;")
                cur.close()

        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        logger.info(f"Database engine initialized ({self.url.split(':')[0]})")

    async def create_all(self) -> None:
        """Crear las tablas que aún no existen"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> None:
        async with self.session_maker() as session:
            await session.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        logger.info("Closing database connections...")
        await self.engine.dispose()
        logger.info("Database connections closed")


def get_database(request: Request) -> Database:
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        logger.error("Database not initialized! Check application startup.")
        raise RuntimeError("Database not initialized. Please check application startup.")
    return database


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency para obtener una sesión del cliente de base de datos de la app"""
    database = get_database(request)
    async with database.session_maker() as session:
        yield session
