"""
Celery beat task: settle pending buyback contributions with one swap.
"""
import logging

from genr8.core.celery_app import celery_app
from genr8.db.session import SessionLocal
from genr8.services.buyback.executor import BuybackExecutor
from genr8.services.errors import BatchExecutionFailure, ConfigurationError

logger = logging.getLogger(__name__)


@celery_app.task(
    name="genr8.workers.tasks.buybacks.execute_buyback_batch",
    time_limit=300,
    soft_time_limit=280,
)
def execute_buyback_batch() -> dict:
    """Claims make concurrent runs safe; a failed run leaves rows pending for the next one."""
    db = SessionLocal()
    try:
        result = BuybackExecutor(db).execute()
        return {
            "ok": True,
            "outcome": result.outcome,
            "total_usd": str(result.total_usd),
            "total_native": result.total_native,
            "tx_signature": result.tx_signature,
            "count": len(result.contribution_ids),
        }
    except (BatchExecutionFailure, ConfigurationError) as e:
        logger.error("buyback_task_failed", extra={"error": str(e)})
        return {"ok": False, "error": str(e)}
    except Exception:
        db.rollback()
        logger.exception("buyback_task_crashed")
        raise
    finally:
        db.close()
