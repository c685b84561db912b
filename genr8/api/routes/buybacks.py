import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from genr8.api.deps import get_buyback_executor, require_buyback_key
from genr8.schemas.buyback import BuybackExecuteResponse
from genr8.services.buyback.executor import EXECUTED, BuybackExecutor
from genr8.services.errors import BatchExecutionFailure, ConfigurationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/buybacks", tags=["buybacks"])


@router.post(
    "/execute",
    response_model=BuybackExecuteResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_buyback_key)],
)
def execute_buybacks(executor: BuybackExecutor = Depends(get_buyback_executor)):
    try:
        result = executor.execute()
    except (BatchExecutionFailure, ConfigurationError) as e:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Buyback execution failed", "message": str(e)},
        )

    if result.outcome != EXECUTED:
        return BuybackExecuteResponse(message=result.message)
    return BuybackExecuteResponse(
        message=result.message,
        totalUSD=float(result.total_usd),
        totalSOL=result.total_native,
        txSignature=result.tx_signature,
        contributionCount=len(result.contribution_ids),
    )
