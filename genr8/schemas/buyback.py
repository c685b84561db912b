from pydantic import BaseModel


class BuybackExecuteResponse(BaseModel):
    success: bool = True
    message: str
    totalUSD: float | None = None
    totalSOL: float | None = None
    txSignature: str | None = None
    contributionCount: int | None = None
