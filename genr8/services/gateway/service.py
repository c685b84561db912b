"""
GenerationGateway - payment-gated dispatch.

A request without a payment signature gets a 402 quote. A request with one is
verified on-chain, recorded once per signature, charged a buyback contribution,
and only then handed to the provider adapter. Replaying a dispatched signature
returns the original task instead of paying the provider twice.
"""
import logging
import secrets
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable

from sqlalchemy.orm import Session

from genr8.core.config import settings
from genr8.models.generation import GenerationTask
from genr8.models.payment import PaymentRecord
from genr8.services.buyback.config import contribution_amount
from genr8.services.buyback.queue import BuybackQueue
from genr8.services.catalog import ModelInfo, get_model
from genr8.services.errors import (
    ConfigurationError,
    Genr8Error,
    PaymentRequired,
    PaymentVerificationFailure,
    QueueWriteFailure,
    UpstreamProviderError,
)
from genr8.services.gateway.states import GenerationFlow, GenerationState
from genr8.services.idempotency import IdempotencyStore
from genr8.services.payments.service import PaymentService
from genr8.services.payments.verifier import PaymentVerifier
from genr8.services.providers.base import PROCESSING, ProviderAdapter
from genr8.services.refunds.service import RefundRequest, RefundService
from genr8.utils.metrics import (
    buyback_contributions_total,
    generations_dispatched_total,
    payment_required_total,
)

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[str], ProviderAdapter]


class RequestInProgress(Genr8Error):
    """Another request with the same payment signature is being dispatched."""


@dataclass
class GenerationRequest:
    model: str
    prompt: str
    type: str = "image"
    options: dict = field(default_factory=dict)
    payment_signature: str | None = None
    user_wallet: str | None = None
    payment_method: str = "gen"
    amount_paid_usd: Decimal | None = None
    generation_id: str | None = None


@dataclass
class DispatchResult:
    task_id: str
    model: str
    duplicate: bool = False


def new_generation_id() -> str:
    return f"gen_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def payment_method_of(value: str | None) -> str:
    return "usdc" if (value or "").lower() == "usdc" else "gen"


class GenerationGateway:
    def __init__(
        self,
        db: Session,
        verifier: PaymentVerifier,
        adapter_factory: AdapterFactory,
        idempotency: IdempotencyStore | None = None,
        refunds: RefundService | None = None,
    ):
        self.db = db
        self.verifier = verifier
        self.adapter_factory = adapter_factory
        self.idempotency = idempotency
        self.payments = PaymentService(db)
        self.queue = BuybackQueue(db)
        self.refunds = refunds or RefundService(db)

    def quote(self, info: ModelInfo) -> dict:
        return {
            "generationId": new_generation_id(),
            "paymentRequired": True,
            "amount": float(info.price_usd),
            "currency": settings.payment_currency,
            "network": settings.payment_network,
            "model": info.model_id,
        }

    def minimum_paid(self, info: ModelInfo) -> Decimal:
        """Lowest recorded payment that still covers the model."""
        return info.price_usd * (Decimal(1) - Decimal(str(settings.payment_amount_tolerance)))

    def amount_for(self, info: ModelInfo, claimed: Decimal | None) -> Decimal:
        """Client-reported amount is accepted only between the minimum and the model price."""
        if claimed is not None and self.minimum_paid(info) <= Decimal(str(claimed)) <= info.price_usd:
            return Decimal(str(claimed))
        return info.price_usd

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    def record_payment(
        self,
        signature: str,
        amount_usd: Decimal,
        payment_method: str,
        model: str,
        generation_id: str | None = None,
        user_wallet: str | None = None,
    ) -> PaymentRecord:
        """Store a verified payment and its buyback share. Contribution errors are logged, never raised."""
        record, created = self.payments.record(
            signature,
            amount_usd,
            payment_method,
            generation_id=generation_id,
            model=model,
            user_wallet=user_wallet,
        )
        if created:
            try:
                self.queue.enqueue(signature, generation_id, contribution_amount(amount_usd), model)
                buyback_contributions_total.labels(result="queued").inc()
            except QueueWriteFailure as e:
                buyback_contributions_total.labels(result="failed").inc()
                logger.error(
                    "buyback_contribution_write_failed",
                    extra={"signature": signature, "model": model, "error": str(e)},
                )
        return record

    def verify_payment(
        self,
        signature: str,
        amount_usd: Decimal,
        payment_method: str = "gen",
        model: str = "unknown",
        generation_id: str | None = None,
        user_wallet: str | None = None,
    ) -> bool:
        """Standalone verification: a known signature stays verified, a new one is checked and recorded."""
        if amount_usd is None:
            return False
        if self.payments.get_by_signature(signature) is not None:
            return True
        if not self.verifier.verify(signature, amount_usd, payment_method):
            return False
        self.record_payment(signature, amount_usd, payment_method, model, generation_id, user_wallet)
        self.db.commit()
        return True

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def submit(self, request: GenerationRequest) -> DispatchResult:
        info = get_model(request.model)
        flow = GenerationFlow()

        if not request.payment_signature:
            payment_required_total.labels(model=info.model_id).inc()
            raise PaymentRequired(self.quote(info))
        flow.advance(GenerationState.PAID)

        signature = request.payment_signature
        existing = self.payments.get_by_signature(signature)
        if existing is not None and existing.task_id:
            return self._replay(existing, info)
        # No read transaction held while waiting on the lock
        self.db.commit()

        lock_key = f"dispatch:{signature}"
        if self.idempotency is not None and not self.idempotency.check_and_set(lock_key):
            raise RequestInProgress(f"Payment {signature} is already being dispatched")
        try:
            # Another request may have dispatched between the first read and the lock
            existing = self.payments.get_by_signature(signature)
            if existing is not None and existing.task_id:
                return self._replay(existing, info)
            return self._verify_and_dispatch(request, info, flow, existing)
        finally:
            if self.idempotency is not None:
                self.idempotency.release(lock_key)

    def _replay(self, record: PaymentRecord, info: ModelInfo) -> DispatchResult:
        logger.info("generation_replayed", extra={"signature": record.signature, "task_id": record.task_id})
        return DispatchResult(task_id=record.task_id, model=record.model or info.model_id, duplicate=True)

    def _verify_and_dispatch(
        self,
        request: GenerationRequest,
        info: ModelInfo,
        flow: GenerationFlow,
        existing: PaymentRecord | None,
    ) -> DispatchResult:
        signature = request.payment_signature
        payment_method = payment_method_of(request.payment_method)
        amount_usd = self.amount_for(info, request.amount_paid_usd)

        if existing is None:
            if not self.verifier.verify(signature, info.price_usd, payment_method):
                raise PaymentVerificationFailure(signature)
            record = self.record_payment(
                signature,
                amount_usd,
                payment_method,
                info.model_id,
                generation_id=request.generation_id,
                user_wallet=request.user_wallet,
            )
            self.db.commit()
        else:
            # Verified earlier (standalone verify or a dispatch that failed)
            refund = self.refunds.get_by_original(signature)
            if refund is not None:
                raise PaymentVerificationFailure(signature, "Payment has already been refunded")
            if Decimal(str(existing.amount_usd)) < self.minimum_paid(info):
                raise PaymentVerificationFailure(signature, f"Payment does not cover {info.model_id}")
            record = existing
            if request.user_wallet and not record.user_wallet:
                record.user_wallet = request.user_wallet
        flow.advance(GenerationState.VERIFIED)

        adapter = self.adapter_factory(info.model_id)
        try:
            task_id = adapter.create_task(request.prompt, request.options or {})
        except (UpstreamProviderError, ConfigurationError) as e:
            logger.error(
                "generation_dispatch_failed",
                extra={"model": info.model_id, "signature": signature, "error": str(e)},
            )
            self._queue_refund(record, f"Dispatch failed: {e}")
            raise
        flow.advance(GenerationState.DISPATCHED)

        self.db.add(
            GenerationTask(
                provider=info.model_id,
                external_task_id=task_id,
                prompt=request.prompt,
                options=request.options or {},
                type=info.media_type,
                payment_signature=signature,
                user_wallet=record.user_wallet,
                amount_usd=record.amount_usd,
                state=PROCESSING,
            )
        )
        record.task_id = task_id
        record.model = info.model_id
        self.payments.track(task_id, record, info.model_id)
        self.db.commit()

        generations_dispatched_total.labels(model=info.model_id).inc()
        logger.info(
            "generation_dispatched",
            extra={"task_id": task_id, "model": info.model_id, "signature": signature},
        )
        return DispatchResult(task_id=task_id, model=info.model_id)

    def _queue_refund(self, record: PaymentRecord, reason: str) -> None:
        if not settings.refund_auto_enqueue or not record.user_wallet:
            return
        self.refunds.enqueue(
            RefundRequest(
                user_wallet=record.user_wallet,
                amount_usd=Decimal(str(record.amount_usd)),
                payment_method=record.payment_method,
                reason=reason,
                original_signature=record.signature,
            )
        )
        self.db.commit()
