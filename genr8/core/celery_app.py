"""
Celery application: broker and result backend from settings.
Tasks are in genr8.workers.tasks (buybacks, refunds, payment tracking).
"""
from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from genr8.core.config import settings
from genr8.core.logging import configure_logging

celery_app = Celery(
    "genr8",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "genr8.workers.tasks.buybacks",
        "genr8.workers.tasks.refunds",
        "genr8.workers.tasks.payment_tracking",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_track_started=True,
    task_time_limit=600,
    result_expires=86400,
    beat_schedule={
        "execute-buyback-batch": {
            "task": "genr8.workers.tasks.buybacks.execute_buyback_batch",
            "schedule": crontab(minute=f"*/{settings.buyback_schedule_minutes}"),
        },
        "process-refund-outbox": {
            "task": "genr8.workers.tasks.refunds.process_refund_outbox",
            "schedule": crontab(minute="*"),
        },
        "sweep-payment-tracking": {
            "task": "genr8.workers.tasks.payment_tracking.sweep_payment_tracking",
            "schedule": crontab(minute=0),
        },
    },
)

celery_app.conf.task_routes = {
    "genr8.workers.tasks.buybacks.execute_buyback_batch": {"queue": "settlement"},
    "genr8.workers.tasks.refunds.process_refund_outbox": {"queue": "settlement"},
}


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    # JSON lines, same as the API
    configure_logging()
