"""
Celery application: broker and result backend from settings.
Hosts the premium access workflow (paygate.workflow.tasks); the broker message
carries the serialized WorkflowRun, so a run survives worker restarts.
"""
from celery import Celery
from celery.signals import setup_logging, worker_process_init

from paygate.core.config import settings
from paygate.core.logging import configure_logging

celery_app = Celery(
    "paygate",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "paygate.workflow.tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_track_started=True,
    task_time_limit=300,
    result_expires=86400,
)

celery_app.conf.task_routes = {
    "paygate.workflow.tasks.advance_workflow": {"queue": "premium_access"},
}


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    configure_logging()


@worker_process_init.connect
def _init_worker_db(**kwargs) -> None:
    from paygate.db.session import init_db

    init_db()
