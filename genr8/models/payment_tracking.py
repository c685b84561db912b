"""
PaymentTracking - who paid for an in-flight task, kept so a failed task can be refunded.
Rows expire after settings.payment_tracking_ttl_hours and are swept by a beat task.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Numeric, String

from genr8.db.base import Base


class PaymentTracking(Base):
    __tablename__ = "payment_tracking"

    task_id = Column(String, primary_key=True)
    user_wallet = Column(String, nullable=True)
    amount_usd = Column(Numeric(18, 6), nullable=False)
    payment_method = Column(String, nullable=False)
    payment_signature = Column(String, nullable=False)
    model = Column(String, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
