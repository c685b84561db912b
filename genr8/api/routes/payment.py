from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from genr8.api.deps import get_gateway
from genr8.schemas.payment import PaymentVerifyRequest, PaymentVerifyResponse
from genr8.services.catalog import find_model
from genr8.services.gateway.service import GenerationGateway, payment_method_of


router = APIRouter(prefix="/payment", tags=["payment"])


@router.post("/verify", response_model=PaymentVerifyResponse)
def verify_payment(body: PaymentVerifyRequest, gateway: GenerationGateway = Depends(get_gateway)):
    if not body.signature or not body.generation_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing signature or generationId")

    amount = body.amount
    if amount is None and body.model:
        info = find_model(body.model)
        amount = info.price_usd if info else None
    if amount is None:
        # Nothing to check the transfer against
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing amount or a known model")

    paid = gateway.verify_payment(
        body.signature,
        Decimal(str(amount)),
        payment_method=payment_method_of(body.payment_method),
        model=body.model or "unknown",
        generation_id=body.generation_id,
        user_wallet=body.user_wallet,
    )
    content = {"success": paid, "paid": paid, "generationId": body.generation_id, "signature": body.signature}
    if not paid:
        return JSONResponse(status_code=status.HTTP_402_PAYMENT_REQUIRED, content=content)
    return PaymentVerifyResponse(**content)
