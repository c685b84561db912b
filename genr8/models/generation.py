"""
GenerationTask - one row per dispatched provider task.
Immutable after dispatch except for the terminal-state annotation
(state / result_urls / error / error_code / content_policy / completed_at).
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import JSON, Boolean, Column, DateTime, Numeric, String, Text

from genr8.db.base import Base


class GenerationTask(Base):
    __tablename__ = "generations"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    provider = Column(String, nullable=False, index=True)  # model id, e.g. "sora-2"
    external_task_id = Column(String, nullable=False, unique=True)
    prompt = Column(Text, nullable=False)
    options = Column(JSON, nullable=False, default=dict)
    type = Column(String, nullable=False, default="image")  # image / video
    payment_signature = Column(String, nullable=False, unique=True)
    user_wallet = Column(String, nullable=True, index=True)
    amount_usd = Column(Numeric(18, 6), nullable=False)
    state = Column(String, nullable=False, default="processing")
    result_urls = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
    error_code = Column(String, nullable=True)
    content_policy = Column(Boolean, nullable=False, default=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    completed_at = Column(DateTime(timezone=True), nullable=True)
