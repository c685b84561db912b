"""
PaymentRecord - one row per verified on-chain payment signature.
The unique signature is what makes dispatch idempotent.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Numeric, String

from genr8.db.base import Base


class PaymentRecord(Base):
    __tablename__ = "payments"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    signature = Column(String, unique=True, nullable=False)
    generation_id = Column(String, nullable=True)            # quote id from the 402 response
    task_id = Column(String, nullable=True, index=True)      # external task id once dispatched
    model = Column(String, nullable=True)
    user_wallet = Column(String, nullable=True, index=True)
    amount_usd = Column(Numeric(18, 6), nullable=False)
    payment_method = Column(String, nullable=False, default="gen")  # gen / usdc
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
