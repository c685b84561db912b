from genr8.services.providers.base import ProviderAdapter


def generation_type_for(image_urls: list[str]) -> str:
    """One or two frames are first/last frames; three or more are references."""
    if not image_urls:
        return "TEXT_2_VIDEO"
    if len(image_urls) <= 2:
        return "FIRST_AND_LAST_FRAMES_2_VIDEO"
    return "REFERENCE_2_VIDEO"


class VeoAdapter(ProviderAdapter):
    model_id = "veo-3.1"
    media_type = "video"
    api_key_name = "VEO_AI_API_KEY"
    family = "veo"

    def create_task(self, prompt: str, options: dict) -> str:
        options = options or {}
        image_urls = list(options.get("imageUrls") or [])
        payload = {
            "prompt": prompt,
            "model": "veo3_fast",
            "aspectRatio": options.get("aspectRatio", "16:9"),
            "enableTranslation": True,
            "generationType": options.get("generationType") or generation_type_for(image_urls),
        }
        if image_urls:
            payload["imageUrls"] = image_urls
        if options.get("seeds"):
            payload["seeds"] = options["seeds"]
        if options.get("watermark"):
            payload["watermark"] = options["watermark"]
        callback = options.get("callBackUrl") or self.callback_url
        if callback:
            payload["callBackUrl"] = callback
        body = self._call("POST", "/veo/generate", json=payload)
        return self._task_id_from(body)

    def query_task(self, external_task_id: str) -> dict:
        return self._call("GET", "/veo/record-info", params={"taskId": external_task_id})
