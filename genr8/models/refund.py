"""
RefundRecord - refund outbox and audit log.
At most one row per original payment signature.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Float, Numeric, String, Text

from genr8.db.base import Base


class RefundRecord(Base):
    __tablename__ = "refunds"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    original_signature = Column(String, unique=True, nullable=False)
    signature = Column(String, nullable=True)       # refund transfer signature
    user_wallet = Column(String, nullable=False, index=True)
    amount_usd = Column(Numeric(18, 6), nullable=False)
    amount = Column(Float, nullable=True)           # token units sent (GEN or USDC)
    token = Column(String, nullable=False)          # GEN / USDC
    payment_method = Column(String, nullable=False)
    reason = Column(Text, nullable=False)
    task_id = Column(String, nullable=True)
    status = Column(String, nullable=False, default="queued", index=True)  # queued / processing / success / failed
    error = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
