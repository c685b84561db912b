"""
BuybackQueue - durable queue of fee shares awaiting batch settlement.

Row lifecycle: pending -> claimed -> processed, or claimed -> pending again
when a run stops short of a confirmed swap.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from genr8.models.buyback import BuybackBatch, BuybackContribution
from genr8.services.errors import QueueWriteFailure

logger = logging.getLogger(__name__)


class BuybackQueue:
    def __init__(self, db: Session):
        self.db = db

    def get_by_signature(self, payment_signature: str) -> BuybackContribution | None:
        return (
            self.db.query(BuybackContribution)
            .filter(BuybackContribution.payment_signature == payment_signature)
            .one_or_none()
        )

    def enqueue(
        self,
        payment_signature: str,
        generation_id: str | None,
        amount_usd: Decimal,
        model_name: str,
    ) -> BuybackContribution:
        """Insert a pending contribution; one per payment signature. Does not commit."""
        existing = self.get_by_signature(payment_signature)
        if existing is not None:
            return existing
        contribution = BuybackContribution(
            payment_signature=payment_signature,
            generation_id=generation_id,
            amount_usd=amount_usd,
            model_name=model_name,
            status="pending",
        )
        try:
            with self.db.begin_nested():
                self.db.add(contribution)
                self.db.flush()
        except IntegrityError:
            # Concurrent insert for the same signature won
            existing = self.get_by_signature(payment_signature)
            if existing is not None:
                return existing
            raise QueueWriteFailure(f"Could not queue contribution for {payment_signature}")
        except SQLAlchemyError as e:
            raise QueueWriteFailure(str(e)) from e
        logger.info(
            "buyback_contribution_queued",
            extra={"signature": payment_signature, "amount_usd": str(amount_usd), "model": model_name},
        )
        return contribution

    def pending(self) -> list[BuybackContribution]:
        return (
            self.db.query(BuybackContribution)
            .filter(BuybackContribution.status == "pending")
            .order_by(BuybackContribution.created_at)
            .all()
        )

    def pending_total(self) -> Decimal:
        total = (
            self.db.query(func.coalesce(func.sum(BuybackContribution.amount_usd), 0))
            .filter(BuybackContribution.status == "pending")
            .scalar()
        )
        return Decimal(str(total))

    def claim_pending(self) -> tuple[str, list[BuybackContribution]]:
        """Atomically move every pending row to claimed under a fresh claim id and commit."""
        claim_id = str(uuid4())
        self.db.execute(
            update(BuybackContribution)
            .where(BuybackContribution.status == "pending")
            .values(status="claimed", claim_id=claim_id, claimed_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        rows = (
            self.db.query(BuybackContribution)
            .filter(BuybackContribution.claim_id == claim_id)
            .order_by(BuybackContribution.created_at)
            .all()
        )
        return claim_id, rows

    def release(self, claim_id: str, error: str | None = None) -> int:
        """Return claimed rows to pending and commit."""
        result = self.db.execute(
            update(BuybackContribution)
            .where(
                BuybackContribution.claim_id == claim_id,
                BuybackContribution.status == "claimed",
            )
            .values(status="pending", claim_id=None, claimed_at=None, error=error)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.expire_all()
        return result.rowcount

    def mark_processed(self, claim_id: str, batch_signature: str, batch: BuybackBatch) -> int:
        """Mark the whole claim processed and store the batch row in one commit."""
        now = datetime.now(timezone.utc)
        try:
            result = self.db.execute(
                update(BuybackContribution)
                .where(
                    BuybackContribution.claim_id == claim_id,
                    BuybackContribution.status == "claimed",
                )
                .values(status="processed", batch_signature=batch_signature, processed_at=now, error=None)
                .execution_options(synchronize_session=False)
            )
            self.db.add(batch)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.expire_all()
        return result.rowcount

    def record_failed_batch(self, batch: BuybackBatch) -> None:
        try:
            self.db.add(batch)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("buyback_failed_batch_not_recorded", extra={"claim_id": batch.reference_id})
