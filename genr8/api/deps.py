"""
FastAPI dependency providers. Tests override these via app.dependency_overrides.
"""
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from genr8.core.config import settings
from genr8.db.session import get_db
from genr8.services.buyback.executor import BuybackExecutor
from genr8.services.gateway.service import GenerationGateway
from genr8.services.gateway.status import GenerationStatusService
from genr8.services.idempotency import IdempotencyStore
from genr8.services.payments.verifier import PaymentVerifier
from genr8.services.providers.factory import AdapterFactory
from genr8.services.providers.rehost import MediaRehoster
from genr8.services.refunds.service import RefundService
from genr8.storage.local import LocalStorage


def get_adapter_factory():
    return lambda model_id: AdapterFactory.create_from_settings(model_id, settings)


def get_verifier() -> PaymentVerifier:
    return PaymentVerifier()


def get_idempotency_store() -> IdempotencyStore | None:
    return IdempotencyStore()


def get_rehoster() -> MediaRehoster:
    return MediaRehoster(LocalStorage(), timeout=settings.rehost_timeout)


def get_gateway(
    db: Session = Depends(get_db),
    verifier: PaymentVerifier = Depends(get_verifier),
    adapter_factory=Depends(get_adapter_factory),
    idempotency: IdempotencyStore | None = Depends(get_idempotency_store),
) -> GenerationGateway:
    return GenerationGateway(db, verifier, adapter_factory, idempotency=idempotency)


def get_status_service(
    db: Session = Depends(get_db),
    adapter_factory=Depends(get_adapter_factory),
    rehoster: MediaRehoster = Depends(get_rehoster),
) -> GenerationStatusService:
    return GenerationStatusService(db, adapter_factory, rehoster)


def get_buyback_executor(db: Session = Depends(get_db)) -> BuybackExecutor:
    return BuybackExecutor(db)


def get_refund_service(db: Session = Depends(get_db)) -> RefundService:
    return RefundService(db)


def _bearer(authorization: str | None) -> str | None:
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:]
    return None


def require_buyback_key(authorization: str | None = Header(default=None)) -> None:
    """Guard is active only when BUYBACK_EXECUTION_KEY is set."""
    key = settings.buyback_execution_key
    if key and _bearer(authorization) != key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def require_admin(authorization: str | None = Header(default=None)) -> None:
    if not settings.admin_api_key:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Admin API is disabled")
    if _bearer(authorization) != settings.admin_api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
