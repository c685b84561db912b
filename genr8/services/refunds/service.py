"""
RefundService - refund outbox plus the transfer engine.

A refund is first written as a queued RefundRecord (one per original payment
signature). The worker or an administrator then executes it: resolve the refund
wallet, price the amount, check both token accounts, send one SPL transfer,
wait for confirmation and record the outcome. There is no automatic retry of a
failed refund.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from solders.pubkey import Pubkey
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from genr8.core.config import settings
from genr8.models.refund import RefundRecord
from genr8.services.errors import ConfigurationError, RefundFailure, SolanaRpcError
from genr8.services.pricing import PriceService
from genr8.services.solana.rpc import SolanaRpcClient
from genr8.services.solana.transactions import (
    WalletMismatch,
    associated_token_address,
    build_signed_transfer,
    resolve_wallet,
    to_base_units,
    transfer_instruction,
)
from genr8.utils.metrics import refunds_total

logger = logging.getLogger(__name__)

QUEUED = "queued"
PROCESSING = "processing"
SUCCESS = "success"
FAILED = "failed"


@dataclass
class RefundRequest:
    user_wallet: str
    amount_usd: Decimal
    payment_method: str  # gen / usdc
    reason: str
    original_signature: str
    task_id: str | None = None


def token_for(payment_method: str) -> str:
    return "USDC" if payment_method == "usdc" else "GEN"


class RefundService:
    def __init__(
        self,
        db: Session,
        rpc: SolanaRpcClient | None = None,
        prices: PriceService | None = None,
    ):
        self.db = db
        self.rpc = rpc or SolanaRpcClient()
        self.prices = prices or PriceService()

    # ------------------------------------------------------------------
    # Outbox
    # ------------------------------------------------------------------

    def get_by_original(self, original_signature: str) -> RefundRecord | None:
        return (
            self.db.query(RefundRecord)
            .filter(RefundRecord.original_signature == original_signature)
            .one_or_none()
        )

    def enqueue(self, request: RefundRequest) -> tuple[RefundRecord, bool]:
        """Create a queued refund unless one exists for the payment. Returns (record, created). Does not commit."""
        existing = self.get_by_original(request.original_signature)
        if existing is not None:
            return existing, False
        record = RefundRecord(
            original_signature=request.original_signature,
            user_wallet=request.user_wallet,
            amount_usd=request.amount_usd,
            token=token_for(request.payment_method),
            payment_method=request.payment_method,
            reason=request.reason,
            task_id=request.task_id,
            status=QUEUED,
        )
        try:
            with self.db.begin_nested():
                self.db.add(record)
                self.db.flush()
        except IntegrityError:
            existing = self.get_by_original(request.original_signature)
            if existing is None:
                raise
            return existing, False
        logger.info(
            "refund_queued",
            extra={
                "refund_id": record.id,
                "signature": request.original_signature,
                "amount_usd": str(request.amount_usd),
                "reason": request.reason,
            },
        )
        return record, True

    def claim(self, record: RefundRecord) -> bool:
        """Move a queued or failed record to processing; False if someone else holds it."""
        updated = (
            self.db.query(RefundRecord)
            .filter(RefundRecord.id == record.id, RefundRecord.status.in_((QUEUED, FAILED)))
            .update({"status": PROCESSING, "error": None}, synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(record)
        return updated == 1

    def queued(self, limit: int) -> list[RefundRecord]:
        return (
            self.db.query(RefundRecord)
            .filter(RefundRecord.status == QUEUED)
            .order_by(RefundRecord.created_at)
            .limit(limit)
            .all()
        )

    def process_queued(self, limit: int | None = None) -> dict:
        """Execute queued refunds. Failures are recorded on the row and counted, not raised."""
        succeeded = failed = 0
        for record in self.queued(limit or settings.refund_batch_size):
            if not self.claim(record):
                continue
            try:
                self.execute(record)
                succeeded += 1
            except (RefundFailure, ConfigurationError):
                failed += 1
        return {"succeeded": succeeded, "failed": failed}

    # ------------------------------------------------------------------
    # Engine
    # ------------------------------------------------------------------

    def send_refund(self, request: RefundRequest) -> RefundRecord:
        """Administrative entry point: enqueue (or reuse) the record and execute it now."""
        record, _ = self.enqueue(request)
        self.db.commit()
        if record.status == SUCCESS:
            raise RefundFailure(f"Payment {request.original_signature} was already refunded ({record.signature})")
        if not self.claim(record):
            raise RefundFailure(f"Refund for {request.original_signature} is already being processed")
        return self.execute(record)

    def retry(self, original_signature: str) -> RefundRecord:
        record = self.get_by_original(original_signature)
        if record is None:
            raise RefundFailure(f"No refund recorded for {original_signature}")
        if record.status == SUCCESS:
            raise RefundFailure(f"Payment {original_signature} was already refunded ({record.signature})")
        if not self.claim(record):
            raise RefundFailure(f"Refund for {original_signature} is already being processed")
        return self.execute(record)

    def execute(self, record: RefundRecord) -> RefundRecord:
        """Run the transfer for a claimed record; marks success or failure and commits."""
        try:
            keypair = resolve_wallet(
                settings.refund_wallet_public_key,
                settings.refund_wallet_private_key,
                "Refund",
            )
        except ConfigurationError as e:
            self._fail(record, str(e))
            raise
        except WalletMismatch as e:
            self._fail(record, str(e))
            raise RefundFailure(str(e)) from e

        try:
            signature, amount = self._transfer(record, keypair)
        except (SolanaRpcError, ValueError) as e:
            self._fail(record, str(e))
            raise RefundFailure(str(e)) from e
        except RefundFailure as e:
            self._fail(record, str(e))
            raise
        except Exception as e:
            # A row left in processing can never be claimed again
            self.db.rollback()
            self._fail(record, f"unexpected error: {type(e).__name__}: {e}")
            raise

        record.status = SUCCESS
        record.signature = signature
        record.amount = float(amount)
        record.error = None
        self.db.commit()
        refunds_total.labels(token=record.token, status=SUCCESS).inc()
        logger.info(
            "refund_sent",
            extra={
                "refund_id": record.id,
                "signature": signature,
                "user_wallet": record.user_wallet,
                "amount_usd": str(record.amount_usd),
            },
        )
        return record

    def _amount_for(self, record: RefundRecord) -> tuple[Decimal, str, int]:
        """(token amount, mint, decimals)"""
        amount_usd = Decimal(str(record.amount_usd))
        if record.payment_method == "usdc":
            return amount_usd, settings.usdc_mint, settings.usdc_decimals
        return self.prices.token_amount_for_usd(amount_usd), settings.payment_token_mint, settings.token_decimals

    def _transfer(self, record: RefundRecord, keypair) -> tuple[str, Decimal]:
        amount, mint_address, decimals = self._amount_for(record)
        raw_amount = to_base_units(amount, decimals)
        if raw_amount <= 0:
            raise RefundFailure(f"Refund amount for {record.original_signature} rounds to zero")

        mint = Pubkey.from_string(mint_address)
        recipient = Pubkey.from_string(record.user_wallet)
        source = associated_token_address(keypair.pubkey(), mint)
        destination = associated_token_address(recipient, mint)

        if self.rpc.get_account_info(str(source)) is None:
            raise RefundFailure(f"Refund wallet has no {record.token} token account")
        balance = self.rpc.get_token_account_balance(str(source))
        if balance < raw_amount:
            raise RefundFailure(f"Insufficient {record.token} in refund wallet: {balance} < {raw_amount}")
        if self.rpc.get_account_info(str(destination)) is None:
            raise RefundFailure(f"Recipient {record.user_wallet} has no {record.token} token account")

        blockhash = self.rpc.get_latest_blockhash()
        tx_bytes, signature = build_signed_transfer(
            keypair,
            transfer_instruction(source, destination, keypair.pubkey(), raw_amount),
            blockhash,
        )
        sent = self.rpc.send_raw_transaction(tx_bytes) or signature
        if not self.rpc.confirm_transaction(sent):
            raise RefundFailure(f"Refund transaction {sent} was not confirmed in time")
        return sent, amount

    def _fail(self, record: RefundRecord, error: str) -> None:
        record.status = FAILED
        record.error = error
        self.db.commit()
        refunds_total.labels(token=record.token, status=FAILED).inc()
        logger.error(
            "refund_failed",
            extra={"refund_id": record.id, "signature": record.original_signature, "error": error},
        )
