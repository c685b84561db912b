"""
GenerationStatusService - answers "where is task X" for the poller.

Queries the provider, normalizes the payload, re-hosts image results and
writes the terminal annotation onto the GenerationTask. Terminal answers are
served from that annotation afterwards.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from sqlalchemy.orm import Session

from genr8.core.config import settings
from genr8.models.generation import GenerationTask
from genr8.services.catalog import find_model
from genr8.services.errors import UnknownModel
from genr8.services.payments.service import PaymentService
from genr8.services.providers.base import COMPLETED, FAILED, ProviderAdapter, TaskStatus
from genr8.services.providers.normalizer import MODEL_FAMILIES, normalize
from genr8.services.providers.rehost import MediaRehoster
from genr8.services.refunds.service import RefundRequest, RefundService
from genr8.utils.metrics import generations_finished_total

logger = logging.getLogger(__name__)


@dataclass
class StatusResult:
    task_id: str
    model: str
    media_type: str
    status: TaskStatus
    refund_queued: bool = False


class GenerationStatusService:
    def __init__(
        self,
        db: Session,
        adapter_factory: Callable[[str], ProviderAdapter],
        rehoster: MediaRehoster,
        refunds: RefundService | None = None,
    ):
        self.db = db
        self.adapter_factory = adapter_factory
        self.rehoster = rehoster
        self.payments = PaymentService(db)
        self.refunds = refunds or RefundService(db)

    def _task(self, task_id: str) -> GenerationTask | None:
        return (
            self.db.query(GenerationTask)
            .filter(GenerationTask.external_task_id == task_id)
            .one_or_none()
        )

    def get_status(self, task_id: str, model: str | None = None) -> StatusResult:
        task = self._task(task_id)
        model_id = task.provider if task is not None else model
        info = find_model(model_id) if model_id else None
        if info is None or model_id not in MODEL_FAMILIES:
            raise UnknownModel(model_id or "")

        if task is not None and task.state in (COMPLETED, FAILED):
            return StatusResult(task_id, model_id, info.media_type, self._cached(task))

        raw = self.adapter_factory(model_id).query_task(task_id)
        status = normalize(model_id, raw)

        refund_queued = False
        if status.state == COMPLETED and info.media_type == "image":
            status.result_urls = self.rehoster.rehost_all(status.result_urls)
        if status.is_terminal:
            refund_queued = self._finish(task_id, model_id, task, status)

        return StatusResult(task_id, model_id, info.media_type, status, refund_queued)

    def _cached(self, task: GenerationTask) -> TaskStatus:
        return TaskStatus(
            state=task.state,
            result_urls=list(task.result_urls or []),
            error=task.error,
            error_code=task.error_code,
            content_policy=bool(task.content_policy),
        )

    def _finish(self, task_id: str, model_id: str, task: GenerationTask | None, status: TaskStatus) -> bool:
        if task is not None:
            task.state = status.state
            task.result_urls = status.result_urls or None
            task.error = status.error
            task.error_code = status.error_code
            task.content_policy = status.content_policy
            task.completed_at = datetime.now(timezone.utc)
        generations_finished_total.labels(model=model_id, state=status.state).inc()
        logger.info(
            "generation_finished",
            extra={"task_id": task_id, "model": model_id, "state": status.state, "error": status.error},
        )

        refund_queued = False
        if status.state == FAILED:
            refund_queued = self._queue_refund(task_id, status)
        self.payments.clear_tracking(task_id)
        self.db.commit()
        return refund_queued

    def _queue_refund(self, task_id: str, status: TaskStatus) -> bool:
        if not settings.refund_auto_enqueue:
            return False
        tracking = self.payments.get_tracking(task_id)
        if tracking is None or not tracking.user_wallet:
            return False
        _, created = self.refunds.enqueue(
            RefundRequest(
                user_wallet=tracking.user_wallet,
                amount_usd=Decimal(str(tracking.amount_usd)),
                payment_method=tracking.payment_method,
                reason=f"Generation failed: {status.error}",
                original_signature=tracking.payment_signature,
                task_id=task_id,
            )
        )
        return created
