from fastapi import APIRouter

from genr8.schemas.generation import ModelOut
from genr8.services.catalog import list_models


router = APIRouter(tags=["models"])


@router.get("/models", response_model=list[ModelOut])
def get_models() -> list[ModelOut]:
    return [
        ModelOut(
            id=info.model_id,
            name=info.name,
            type=info.media_type,
            price=float(info.price_usd),
            comingSoon=info.coming_soon,
        )
        for info in list_models()
    ]
