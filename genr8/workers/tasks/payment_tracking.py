"""
Celery beat task: delete payment-tracking rows past their expiry.
"""
import logging

from genr8.core.celery_app import celery_app
from genr8.db.session import SessionLocal
from genr8.services.payments.service import PaymentService

logger = logging.getLogger(__name__)


@celery_app.task(name="genr8.workers.tasks.payment_tracking.sweep_payment_tracking")
def sweep_payment_tracking() -> dict:
    db = SessionLocal()
    try:
        deleted = PaymentService(db).sweep_expired_tracking()
        db.commit()
        if deleted:
            logger.info("payment_tracking_swept", extra={"count": deleted})
        return {"ok": True, "deleted": deleted}
    except Exception:
        db.rollback()
        logger.exception("payment_tracking_sweep_failed")
        raise
    finally:
        db.close()
