from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class RefundCreate(BaseModel):
    """Manual refund. With only original_signature set, retries the recorded refund."""
    model_config = ConfigDict(populate_by_name=True)

    original_signature: str = Field(alias="originalSignature")
    user_wallet: str | None = Field(default=None, alias="userWallet")
    amount_usd: Decimal | None = Field(default=None, alias="amountUSD", gt=0)
    payment_method: str | None = Field(default=None, alias="paymentMethod")
    reason: str = "Manual refund"


class RefundOut(BaseModel):
    id: str
    original_signature: str
    signature: str | None
    user_wallet: str
    amount_usd: float
    amount: float | None
    token: str
    reason: str
    status: str
    error: str | None
    created_at: datetime
