from genr8.models.buyback import BuybackBatch, BuybackContribution
from genr8.models.generation import GenerationTask
from genr8.models.payment import PaymentRecord
from genr8.models.payment_tracking import PaymentTracking
from genr8.models.refund import RefundRecord

__all__ = [
    "BuybackBatch",
    "BuybackContribution",
    "GenerationTask",
    "PaymentRecord",
    "PaymentTracking",
    "RefundRecord",
]
