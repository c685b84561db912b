"""
Shared wire format of the kie.ai "jobs" market API
(ideogram, qwen, nano-banan-pro, sora-2, grok-imagine).
"""
from abc import abstractmethod

from genr8.services.providers.base import ProviderAdapter


class KieJobsAdapter(ProviderAdapter):
    """POST /jobs/createTask + GET /jobs/recordInfo."""

    family = "kie_jobs"

    @abstractmethod
    def kie_model(self, options: dict) -> str:
        """Market model name, e.g. "qwen/text-to-image"."""

    @abstractmethod
    def build_input(self, prompt: str, options: dict) -> dict:
        """The "input" object of createTask."""

    def create_task(self, prompt: str, options: dict) -> str:
        options = options or {}
        payload = {
            "model": self.kie_model(options),
            "input": self.build_input(prompt, options),
        }
        callback = options.get("callBackUrl") or self.callback_url
        if callback:
            payload["callBackUrl"] = callback
        body = self._call("POST", "/jobs/createTask", json=payload)
        return self._task_id_from(body)

    def query_task(self, external_task_id: str) -> dict:
        return self._call("GET", "/jobs/recordInfo", params={"taskId": external_task_id})
