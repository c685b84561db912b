from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GenerateRequest(BaseModel):
    """Body of POST /generate (camelCase on the wire)."""
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    model: str
    prompt: str = Field(min_length=1)
    type: str = "image"
    options: dict[str, Any] = Field(default_factory=dict)
    payment_signature: str | None = Field(default=None, alias="paymentSignature")
    user_wallet: str | None = Field(default=None, alias="userWallet")
    payment_method: str | None = Field(default=None, alias="paymentMethod")
    amount_paid_usd: Decimal | None = Field(default=None, alias="amountPaidUSD")
    generation_id: str | None = Field(default=None, alias="generationId")


class GenerateResponse(BaseModel):
    success: bool = True
    taskId: str
    message: str
    status: str = "processing"
    model: str


class PaymentRequiredOut(BaseModel):
    error: str = "Payment Required"
    generationId: str
    paymentRequired: bool = True
    amount: float
    currency: str
    network: str
    model: str


class GenerationStatusOut(BaseModel):
    success: bool = True
    taskId: str
    state: str
    type: str
    model: str
    result: str | None = None
    resultUrls: list[str] | None = None
    progress: float | None = None
    error: str | None = None
    errorCode: str | None = None
    contentPolicy: bool | None = None
    refundQueued: bool | None = None


class ModelOut(BaseModel):
    id: str
    name: str
    type: str
    price: float
    comingSoon: bool
