"""
PaymentService - payment records (one per signature) and in-flight payment tracking.
"""
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from genr8.core.config import settings
from genr8.models.payment import PaymentRecord
from genr8.models.payment_tracking import PaymentTracking

logger = logging.getLogger(__name__)


class PaymentService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_signature(self, signature: str) -> PaymentRecord | None:
        return (
            self.db.query(PaymentRecord)
            .filter(PaymentRecord.signature == signature)
            .one_or_none()
        )

    def record(
        self,
        signature: str,
        amount_usd: Decimal,
        payment_method: str,
        generation_id: str | None = None,
        model: str | None = None,
        user_wallet: str | None = None,
    ) -> tuple[PaymentRecord, bool]:
        """Get or create the record for a signature. Returns (record, created). Does not commit."""
        existing = self.get_by_signature(signature)
        if existing is not None:
            return existing, False
        record = PaymentRecord(
            signature=signature,
            generation_id=generation_id,
            model=model,
            user_wallet=user_wallet,
            amount_usd=amount_usd,
            payment_method=payment_method,
        )
        try:
            with self.db.begin_nested():
                self.db.add(record)
                self.db.flush()
        except IntegrityError:
            existing = self.get_by_signature(signature)
            if existing is None:
                raise
            return existing, False
        logger.info(
            "payment_recorded",
            extra={"signature": signature, "amount_usd": str(amount_usd), "payment_method": payment_method},
        )
        return record, True

    # ------------------------------------------------------------------
    # Tracking (who paid for which in-flight task)
    # ------------------------------------------------------------------

    def track(self, task_id: str, record: PaymentRecord, model: str) -> PaymentTracking:
        now = datetime.now(timezone.utc)
        entry = PaymentTracking(
            task_id=task_id,
            user_wallet=record.user_wallet,
            amount_usd=record.amount_usd,
            payment_method=record.payment_method,
            payment_signature=record.signature,
            model=model,
            created_at=now,
            expires_at=now + timedelta(hours=settings.payment_tracking_ttl_hours),
        )
        self.db.merge(entry)
        return entry

    def get_tracking(self, task_id: str) -> PaymentTracking | None:
        now = datetime.now(timezone.utc)
        return (
            self.db.query(PaymentTracking)
            .filter(PaymentTracking.task_id == task_id, PaymentTracking.expires_at > now)
            .one_or_none()
        )

    def clear_tracking(self, task_id: str) -> None:
        self.db.query(PaymentTracking).filter(PaymentTracking.task_id == task_id).delete(
            synchronize_session=False
        )

    def sweep_expired_tracking(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        return (
            self.db.query(PaymentTracking)
            .filter(PaymentTracking.expires_at <= now)
            .delete(synchronize_session=False)
        )
