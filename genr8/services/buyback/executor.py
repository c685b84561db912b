"""
Buyback batch executor: settle every pending contribution with one on-chain swap.

A run claims all pending rows first, so two concurrent runs never act on the
same rows. The claimed set is either marked processed as a whole, together with
the batch audit row, or released back to pending.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from genr8.models.buyback import BuybackBatch
from genr8.services.buyback.config import get_min_native
from genr8.services.buyback.queue import BuybackQueue
from genr8.services.buyback.swap import PumpPortalSwap
from genr8.services.errors import (
    BatchExecutionFailure,
    ConfigurationError,
    SolanaRpcError,
    SwapError,
)
from genr8.services.pricing import PriceService
from genr8.services.solana.rpc import SolanaRpcClient
from genr8.services.solana.transactions import WalletMismatch
from genr8.utils.metrics import buyback_batches_total

logger = logging.getLogger(__name__)

NOOP = "noop"
BELOW_FLOOR = "below_floor"
EXECUTED = "executed"


@dataclass
class BuybackResult:
    outcome: str
    message: str
    total_usd: Decimal = Decimal("0")
    total_native: float = 0.0
    tx_signature: str | None = None
    contribution_ids: list[str] = field(default_factory=list)


class BuybackExecutor:
    def __init__(
        self,
        db: Session,
        prices: PriceService | None = None,
        swap: PumpPortalSwap | None = None,
        rpc: SolanaRpcClient | None = None,
        min_native: float | None = None,
    ):
        self.db = db
        self.queue = BuybackQueue(db)
        self.prices = prices or PriceService()
        self.rpc = rpc or SolanaRpcClient()
        self.swap = swap or PumpPortalSwap(rpc=self.rpc)
        self.min_native = min_native if min_native is not None else get_min_native()

    def execute(self) -> BuybackResult:
        claim_id, rows = self.queue.claim_pending()
        if not rows:
            buyback_batches_total.labels(outcome=NOOP).inc()
            return BuybackResult(outcome=NOOP, message="No pending buybacks")

        ids = [row.id for row in rows]
        total_usd = sum((Decimal(str(row.amount_usd)) for row in rows), Decimal("0"))
        if total_usd <= 0:
            self.queue.release(claim_id)
            buyback_batches_total.labels(outcome=NOOP).inc()
            return BuybackResult(outcome=NOOP, message="Pending buybacks total zero", contribution_ids=ids)

        try:
            total_native = float(total_usd) / self.prices.get_sol_price()
        except Exception:
            # Claimed rows go back to pending on any failure before the swap
            self.queue.release(claim_id, error="price lookup failed")
            logger.exception("buyback_price_lookup_failed", extra={"claim_id": claim_id})
            raise
        if total_native < self.min_native:
            self.queue.release(claim_id)
            buyback_batches_total.labels(outcome=BELOW_FLOOR).inc()
            logger.info(
                "buyback_below_dust_floor",
                extra={"claim_id": claim_id, "total_usd": str(total_usd), "total_native": total_native},
            )
            return BuybackResult(
                outcome=BELOW_FLOOR,
                message=f"Total {total_native:.6f} SOL is below the minimum of {self.min_native} SOL",
                total_usd=total_usd,
                total_native=total_native,
                contribution_ids=ids,
            )

        reference_id = f"batch-{datetime.now(timezone.utc).isoformat()}"
        try:
            tx_signature = self.swap.buy(total_native)
            if not self.rpc.confirm_transaction(tx_signature):
                raise BatchExecutionFailure(f"Swap {tx_signature} was not confirmed in time", claim_id=claim_id)
        except (SwapError, SolanaRpcError, ConfigurationError, WalletMismatch, BatchExecutionFailure) as e:
            self.queue.release(claim_id, error=str(e))
            self.queue.record_failed_batch(
                BuybackBatch(
                    signature=None,
                    amount_native=total_native,
                    amount_usd=total_usd,
                    reference_id=reference_id,
                    contribution_count=len(ids),
                    status="failed",
                    error=str(e),
                )
            )
            buyback_batches_total.labels(outcome="failed").inc()
            logger.error(
                "buyback_batch_failed",
                extra={"claim_id": claim_id, "total_usd": str(total_usd), "error": str(e)},
            )
            if isinstance(e, BatchExecutionFailure):
                raise
            raise BatchExecutionFailure(str(e), claim_id=claim_id) from e
        except Exception:
            self.queue.release(claim_id, error="unexpected error")
            logger.exception("buyback_batch_crashed", extra={"claim_id": claim_id})
            raise

        batch = BuybackBatch(
            signature=tx_signature,
            amount_native=total_native,
            amount_usd=total_usd,
            reference_id=reference_id,
            contribution_count=len(ids),
            status="success",
        )
        self.queue.mark_processed(claim_id, tx_signature, batch)
        buyback_batches_total.labels(outcome=EXECUTED).inc()
        logger.info(
            "buyback_batch_executed",
            extra={
                "claim_id": claim_id,
                "tx_signature": tx_signature,
                "total_usd": str(total_usd),
                "total_native": total_native,
                "contribution_count": len(ids),
            },
        )
        return BuybackResult(
            outcome=EXECUTED,
            message=f"Bought back with {total_native:.6f} SOL",
            total_usd=total_usd,
            total_native=total_native,
            tx_signature=tx_signature,
            contribution_ids=ids,
        )
