"""
Task state normalizer: maps each provider family's raw status payload onto
TaskStatus (pending / processing / completed / failed).

Pure functions only. Provider-specific codes survive solely inside
TaskStatus.error / TaskStatus.error_code.
"""
import json
import logging
from typing import Any, Callable

from genr8.services.providers.base import COMPLETED, FAILED, PROCESSING, TaskStatus


logger = logging.getLogger(__name__)

CONTENT_POLICY_MARKERS = ("content", "policy", "violation", "flagged")

KIE_JOB_STATES = {
    "waiting": PROCESSING,
    "queuing": PROCESSING,
    "generating": PROCESSING,
    "success": COMPLETED,
    "fail": FAILED,
}

GPT4O_FAILED_STATUSES = ("CREATE_TASK_FAILED", "GENERATE_FAILED")


def is_content_policy_error(message: str | None, error_code: str | None = None) -> bool:
    if error_code == "400":
        return True
    if not message:
        return False
    lowered = message.lower()
    return any(marker in lowered for marker in CONTENT_POLICY_MARKERS)


def _data(raw: dict) -> dict:
    if isinstance(raw, dict) and isinstance(raw.get("data"), dict):
        return raw["data"]
    return raw or {}


def _as_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _urls(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(u) for u in value if u]


def _failed(message: str | None, code: str | None) -> TaskStatus:
    return TaskStatus(
        state=FAILED,
        error=message or "Generation failed",
        error_code=code,
        content_policy=is_content_policy_error(message, code),
    )


def parse_result_json(result_json: Any) -> list[str]:
    """resultJson is a JSON-encoded string on the jobs API; tolerate an already-decoded dict."""
    if not result_json:
        return []
    if isinstance(result_json, str):
        try:
            result_json = json.loads(result_json)
        except ValueError:
            logger.warning("result_json_unparseable")
            return []
    if not isinstance(result_json, dict):
        return []
    return _urls(result_json.get("resultUrls"))


def normalize_kie_job(raw: dict) -> TaskStatus:
    data = _data(raw)
    state = KIE_JOB_STATES.get(str(data.get("state") or "").lower(), PROCESSING)
    if state == COMPLETED:
        urls = parse_result_json(data.get("resultJson"))
        if not urls:
            return _failed("Provider reported success without result URLs", None)
        return TaskStatus(state=COMPLETED, result_urls=urls)
    if state == FAILED:
        return _failed(_as_str(data.get("failMsg")), _as_str(data.get("failCode")))
    return TaskStatus(state=state)


def normalize_veo(raw: dict) -> TaskStatus:
    data = _data(raw)
    try:
        flag = int(data.get("successFlag", 0))
    except (TypeError, ValueError):
        flag = 0
    if flag == 1:
        response = data.get("response") or {}
        urls = _urls(response.get("resultUrls"))
        if not urls:
            return _failed("Provider reported success without result URLs", None)
        return TaskStatus(state=COMPLETED, result_urls=urls)
    if flag in (2, 3):
        return _failed(_as_str(data.get("errorMessage")), _as_str(data.get("errorCode")))
    return TaskStatus(state=PROCESSING)


def normalize_gpt4o_image(raw: dict) -> TaskStatus:
    data = _data(raw)
    status = data.get("status")
    if status == "SUCCESS" and data.get("successFlag") == 1:
        response = data.get("response") or {}
        urls = _urls(response.get("resultUrls"))
        if not urls:
            return _failed("Provider reported success without result URLs", None)
        return TaskStatus(state=COMPLETED, result_urls=urls)
    if status in GPT4O_FAILED_STATUSES:
        return _failed(_as_str(data.get("errorMessage")), _as_str(data.get("errorCode")))
    progress = data.get("progress")
    try:
        progress = float(progress) if progress is not None else None
    except (TypeError, ValueError):
        progress = None
    return TaskStatus(state=PROCESSING, progress=progress)


Normalizer = Callable[[dict], TaskStatus]

FAMILY_NORMALIZERS: dict[str, Normalizer] = {
    "kie_jobs": normalize_kie_job,
    "veo": normalize_veo,
    "gpt4o_image": normalize_gpt4o_image,
}

MODEL_FAMILIES: dict[str, str] = {
    "ideogram": "kie_jobs",
    "qwen": "kie_jobs",
    "nano-banan-pro": "kie_jobs",
    "sora-2": "kie_jobs",
    "grok-imagine": "kie_jobs",
    "veo-3.1": "veo",
    "gpt-image-1": "gpt4o_image",
}


def normalize(model_id: str, raw: dict) -> TaskStatus:
    """Map a raw provider payload to TaskStatus. Raises KeyError for unknown models."""
    family = MODEL_FAMILIES[model_id]
    return FAMILY_NORMALIZERS[family](raw)
