"""
Model catalog: which models exist, what they cost and what they produce.
Prices come from settings so they can be tuned without a deploy.
"""
from dataclasses import dataclass
from decimal import Decimal

from genr8.core.config import settings
from genr8.services.errors import ModelUnavailable, UnknownModel


@dataclass(frozen=True)
class ModelInfo:
    model_id: str
    name: str
    media_type: str  # image / video
    price_usd: Decimal
    coming_soon: bool = False


def _usd(value: float) -> Decimal:
    return Decimal(str(value))


def list_models() -> list[ModelInfo]:
    return [
        ModelInfo("gpt-image-1", "GPT Image 1", "image", _usd(settings.price_gpt_image)),
        ModelInfo("ideogram", "Ideogram V3", "image", _usd(settings.price_ideogram)),
        ModelInfo("qwen", "Qwen Image", "image", _usd(settings.price_qwen)),
        ModelInfo("nano-banan-pro", "Nano Banana Pro", "image", _usd(settings.price_nano_banana)),
        ModelInfo("sora-2", "Sora 2", "video", _usd(settings.price_sora)),
        ModelInfo("veo-3.1", "Veo 3.1", "video", _usd(settings.price_veo)),
        ModelInfo("grok-imagine", "Grok Imagine", "video", _usd(settings.price_grok_imagine)),
        ModelInfo("sora-2-pro", "Sora 2 Pro", "video", _usd(settings.price_sora_pro), coming_soon=True),
    ]


def get_model(model_id: str) -> ModelInfo:
    """Return catalog entry or raise UnknownModel / ModelUnavailable."""
    for info in list_models():
        if info.model_id == model_id:
            if info.coming_soon:
                raise ModelUnavailable(model_id)
            return info
    raise UnknownModel(model_id)


def find_model(model_id: str) -> ModelInfo | None:
    """Lenient lookup (includes coming-soon models)."""
    for info in list_models():
        if info.model_id == model_id:
            return info
    return None
