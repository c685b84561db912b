"""
Factory for creating provider adapters by model id.
"""
import logging

from genr8.services.errors import UnknownModel
from genr8.services.providers.base import ProviderAdapter
from genr8.services.providers.gpt4o_image import Gpt4oImageAdapter
from genr8.services.providers.grok import GrokImagineAdapter
from genr8.services.providers.ideogram import IdeogramAdapter
from genr8.services.providers.nano_banana import NanoBananaAdapter
from genr8.services.providers.qwen import QwenAdapter
from genr8.services.providers.sora import SoraAdapter
from genr8.services.providers.veo import VeoAdapter

logger = logging.getLogger(__name__)


class AdapterFactory:
    """Factory for creating provider adapters."""

    ADAPTERS: dict[str, type[ProviderAdapter]] = {
        "gpt-image-1": Gpt4oImageAdapter,
        "ideogram": IdeogramAdapter,
        "qwen": QwenAdapter,
        "nano-banan-pro": NanoBananaAdapter,
        "sora-2": SoraAdapter,
        "veo-3.1": VeoAdapter,
        "grok-imagine": GrokImagineAdapter,
    }

    @classmethod
    def create(cls, model_id: str, config: dict) -> ProviderAdapter:
        """
        Create adapter instance by model id.

        Raises:
            UnknownModel: If no adapter serves the model
        """
        adapter_class = cls.ADAPTERS.get(model_id)
        if not adapter_class:
            raise UnknownModel(model_id)

        adapter = adapter_class(config)
        if not adapter.is_available():
            logger.warning("provider_not_configured", extra={"model": model_id})
        return adapter

    @classmethod
    def api_key_for(cls, model_id: str, settings) -> str:
        keys = {
            "gpt-image-1": settings.image_4o_api_key,
            "ideogram": settings.ideogram_api_key,
            "qwen": settings.qwen_api_key,
            "veo-3.1": settings.veo_ai_api_key or settings.kie_ai_api_key,
        }
        return keys.get(model_id, settings.kie_ai_api_key)

    @classmethod
    def create_from_settings(cls, model_id: str, settings, use_breaker: bool = True) -> ProviderAdapter:
        """Create adapter from application settings, guarded by a per-model circuit breaker."""
        config = {
            "api_key": cls.api_key_for(model_id, settings),
            "api_url": settings.kie_api_url,
            "timeout": settings.provider_timeout,
            "callback_url": settings.kie_callback_url,
        }
        if use_breaker:
            from genr8.services.circuit_breaker import get_circuit_breaker

            config["breaker"] = get_circuit_breaker(f"provider:{model_id}")
        return cls.create(model_id, config)

    @classmethod
    def get_available_models(cls) -> list[str]:
        return list(cls.ADAPTERS.keys())
