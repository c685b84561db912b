from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Float, Integer, Numeric, String, Text

from genr8.db.base import Base


class BuybackContribution(Base):
    """Fee share of one payment, waiting to be settled by a batch swap."""

    __tablename__ = "buyback_contributions"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    payment_signature = Column(String, unique=True, nullable=False)
    generation_id = Column(String, nullable=True)
    amount_usd = Column(Numeric(18, 6), nullable=False)
    model_name = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending", index=True)  # pending / claimed / processed / failed
    claim_id = Column(String, nullable=True, index=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    batch_signature = Column(String, nullable=True, index=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )


class BuybackBatch(Base):
    """Audit row for one executor run that reached the chain."""

    __tablename__ = "buybacks"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    signature = Column(String, nullable=True, unique=True)
    amount_native = Column(Float, nullable=False)
    amount_usd = Column(Numeric(18, 6), nullable=False)
    reference_id = Column(String, nullable=False)
    contribution_count = Column(Integer, nullable=False, default=0)
    status = Column(String, nullable=False)  # success / failed
    error = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
