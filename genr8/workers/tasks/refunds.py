"""
Celery beat task: execute refunds queued in the refunds outbox.
"""
import logging

from genr8.core.celery_app import celery_app
from genr8.db.session import SessionLocal
from genr8.services.refunds.service import RefundService

logger = logging.getLogger(__name__)


@celery_app.task(
    name="genr8.workers.tasks.refunds.process_refund_outbox",
    time_limit=300,
    soft_time_limit=280,
)
def process_refund_outbox() -> dict:
    db = SessionLocal()
    try:
        counts = RefundService(db).process_queued()
        if counts["succeeded"] or counts["failed"]:
            logger.info("refund_outbox_processed", extra={"count": counts["succeeded"] + counts["failed"]})
        return {"ok": True, **counts}
    except Exception:
        db.rollback()
        logger.exception("refund_outbox_crashed")
        raise
    finally:
        db.close()
