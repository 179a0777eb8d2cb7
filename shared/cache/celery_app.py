"""
Configuración de Celery para tareas en segundo plano

Los e-mails de tickets se envían aquí, fuera del request, con un pool acotado.
"""
from celery import Celery
from kombu import Queue, Exchange
import logging
from app.core.config import settings

logger = logging.getLogger(__name__)

REDIS_URL = settings.REDIS_URL

celery_app = Celery(
    "ticket_reconciler",
    broker=REDIS_URL,
    backend=REDIS_URL,
    include=[
        "services.ticket_purchase.tasks.email_tasks",
    ]
)

default_exchange = Exchange("default", type="direct")

celery_app.conf.task_queues = (
    Queue("default", default_exchange, routing_key="default"),
)

celery_app.conf.task_routes = {
    "send_ticket_email": {"queue": "default"},
}

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    timezone="UTC",
    enable_utc=True,

    task_track_started=True,

    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,

    # Cola acotada: una tarea por proceso a la vez y concurrencia fija
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    worker_max_tasks_per_child=1000,

    broker_connection_retry_on_startup=True,

    task_acks_late=True,
    task_reject_on_worker_lost=True,

    result_expires=3600,

    task_default_queue="default",
    task_default_exchange="default",
    task_default_routing_key="default",

    task_annotations={
        "send_ticket_email": {"rate_limit": "30/m"},
    },

    # Sin broker (desarrollo local) las tareas se ejecutan inline
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
)

logger.info(
    "Celery configured - Broker: %s, Concurrency: %d",
    REDIS_URL.split("@")[-1] if "@" in REDIS_URL else REDIS_URL,
    celery_app.conf.worker_concurrency
)
