from genr8.services.providers.base import ProviderAdapter


class Gpt4oImageAdapter(ProviderAdapter):
    """kie.ai 4o image API (model id gpt-image-1)."""

    model_id = "gpt-image-1"
    media_type = "image"
    api_key_name = "IMAGE_4O_API_KEY"
    family = "gpt4o_image"

    def create_task(self, prompt: str, options: dict) -> str:
        options = options or {}
        payload = {
            "prompt": prompt,
            "size": options.get("size", "1:1"),
            "nVariants": options.get("nVariants", 1),
            "isEnhance": options.get("isEnhance", False),
            "uploadCn": False,
            "enableFallback": False,
        }
        if options.get("filesUrl"):
            payload["filesUrl"] = list(options["filesUrl"])
        callback = options.get("callBackUrl") or self.callback_url
        if callback:
            payload["callBackUrl"] = callback
        body = self._call("POST", "/gpt4o-image/generate", json=payload)
        return self._task_id_from(body)

    def query_task(self, external_task_id: str) -> dict:
        return self._call("GET", "/gpt4o-image/record-info", params={"taskId": external_task_id})
