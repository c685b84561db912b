import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from genr8.api.deps import get_gateway, get_status_service
from genr8.core.config import settings
from genr8.schemas.generation import GenerateRequest, GenerateResponse, GenerationStatusOut
from genr8.services.errors import (
    ConfigurationError,
    ModelUnavailable,
    PaymentRequired,
    PaymentVerificationFailure,
    UnknownModel,
    UpstreamProviderError,
)
from genr8.services.gateway.service import GenerationGateway, GenerationRequest, RequestInProgress
from genr8.services.gateway.status import GenerationStatusService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["generate"])


def payment_required_response(quote: dict) -> JSONResponse:
    header = (
        f'Bearer realm="{settings.payment_realm}", amount="{quote["amount"]}", '
        f'currency="{quote["currency"]}", network="{quote["network"]}"'
    )
    return JSONResponse(
        status_code=status.HTTP_402_PAYMENT_REQUIRED,
        content={"error": "Payment Required", **quote},
        headers={"WWW-Authenticate": header},
    )


@router.post("/generate", response_model=GenerateResponse)
def create_generation(body: GenerateRequest, gateway: GenerationGateway = Depends(get_gateway)):
    request = GenerationRequest(
        model=body.model,
        prompt=body.prompt,
        type=body.type,
        options=body.options,
        payment_signature=body.payment_signature,
        user_wallet=body.user_wallet,
        payment_method=body.payment_method or "gen",
        amount_paid_usd=body.amount_paid_usd,
        generation_id=body.generation_id,
    )
    try:
        result = gateway.submit(request)
    except UnknownModel as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ModelUnavailable as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except PaymentRequired as e:
        return payment_required_response(e.quote)
    except PaymentVerificationFailure as e:
        return JSONResponse(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            content={"error": "Payment verification failed", "message": e.reason, "signature": e.signature},
        )
    except RequestInProgress as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except (UpstreamProviderError, ConfigurationError) as e:
        content = {"error": f"Failed to initiate {body.model} generation", "message": str(e)}
        if isinstance(e, UpstreamProviderError) and e.body is not None:
            content["details"] = e.body
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

    return GenerateResponse(
        taskId=result.task_id,
        message="Generation already started" if result.duplicate else "Generation started",
        model=result.model,
    )


@router.get("/generate/{task_id}", response_model=GenerationStatusOut, response_model_exclude_none=True)
def get_generation(
    task_id: str,
    model: str | None = None,
    service: GenerationStatusService = Depends(get_status_service),
):
    try:
        result = service.get_status(task_id, model)
    except UnknownModel as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ConfigurationError as e:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Provider not configured", "message": str(e)},
        )
    except UpstreamProviderError as e:
        content = {"success": False, "error": "Failed to query generation status", "message": str(e)}
        if e.body is not None:
            content["details"] = e.body
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=content)

    task_status = result.status
    return GenerationStatusOut(
        taskId=result.task_id,
        state=task_status.state,
        type=result.media_type,
        model=result.model,
        result=task_status.result_urls[0] if task_status.result_urls else None,
        resultUrls=task_status.result_urls or None,
        progress=task_status.progress,
        error=task_status.error,
        errorCode=task_status.error_code,
        contentPolicy=task_status.content_policy or None,
        refundQueued=result.refund_queued or None,
    )
