from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class PaymentVerifyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    signature: str | None = None
    generation_id: str | None = Field(default=None, alias="generationId")
    amount: Decimal | None = None
    user_wallet: str | None = Field(default=None, alias="userWallet")
    payment_method: str | None = Field(default=None, alias="paymentMethod")
    model: str | None = None


class PaymentVerifyResponse(BaseModel):
    success: bool
    paid: bool
    generationId: str
    signature: str
