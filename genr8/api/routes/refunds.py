"""
Admin refund API: trigger or retry a refund by original payment signature.
"""
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from genr8.api.deps import get_refund_service, require_admin
from genr8.db.session import get_db
from genr8.models.refund import RefundRecord
from genr8.schemas.refund import RefundCreate, RefundOut
from genr8.services.errors import ConfigurationError, RefundFailure
from genr8.services.gateway.service import payment_method_of
from genr8.services.refunds.service import RefundRequest, RefundService


router = APIRouter(prefix="/admin/refunds", tags=["admin"], dependencies=[Depends(require_admin)])


def _out(record: RefundRecord) -> RefundOut:
    return RefundOut(
        id=record.id,
        original_signature=record.original_signature,
        signature=record.signature,
        user_wallet=record.user_wallet,
        amount_usd=float(record.amount_usd),
        amount=record.amount,
        token=record.token,
        reason=record.reason,
        status=record.status,
        error=record.error,
        created_at=record.created_at,
    )


@router.get("", response_model=list[RefundOut])
def list_refunds(
    status_filter: str | None = Query(default=None, alias="status"),
    limit: int = 50,
    db: Session = Depends(get_db),
) -> list[RefundOut]:
    query = db.query(RefundRecord)
    if status_filter:
        query = query.filter(RefundRecord.status == status_filter)
    return [_out(r) for r in query.order_by(RefundRecord.created_at.desc()).limit(min(limit, 200)).all()]


@router.post("", response_model=RefundOut)
def create_refund(body: RefundCreate, service: RefundService = Depends(get_refund_service)) -> RefundOut:
    try:
        if body.user_wallet and body.amount_usd is not None:
            record = service.send_refund(
                RefundRequest(
                    user_wallet=body.user_wallet,
                    amount_usd=Decimal(str(body.amount_usd)),
                    payment_method=payment_method_of(body.payment_method),
                    reason=body.reason,
                    original_signature=body.original_signature,
                )
            )
        else:
            record = service.retry(body.original_signature)
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except RefundFailure as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return _out(record)
