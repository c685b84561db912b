"""Tests for the task state normalizer."""
import json

import pytest


def _job(state, **extra):
    return {"code": 200, "msg": "success", "data": {"taskId": "t", "state": state, **extra}}


class TestKieJobs:
    @pytest.mark.parametrize("state", ["waiting", "queuing", "generating"])
    def test_in_flight_states_are_processing(self, state):
        from genr8.services.providers.normalizer import normalize

        assert normalize("sora-2", _job(state)).state == "processing"

    def test_success_parses_result_json_string(self):
        from genr8.services.providers.normalizer import normalize

        raw = _job("success", resultJson=json.dumps({"resultUrls": ["https://cdn/a.png", "https://cdn/b.png"]}))
        status = normalize("ideogram", raw)
        assert status.state == "completed"
        assert status.result_urls == ["https://cdn/a.png", "https://cdn/b.png"]
        assert status.is_terminal

    def test_fail_with_policy_violation(self):
        from genr8.services.providers.normalizer import normalize

        status = normalize("qwen", _job("fail", failMsg="policy violation", failCode="422"))
        assert status.state == "failed"
        assert status.error == "policy violation"
        assert status.error_code == "422"
        assert status.content_policy is True

    def test_fail_without_message_gets_generic_error(self):
        from genr8.services.providers.normalizer import normalize

        status = normalize("grok-imagine", _job("fail"))
        assert status.state == "failed"
        assert status.error == "Generation failed"
        assert status.content_policy is False

    def test_success_without_urls_is_failure(self):
        from genr8.services.providers.normalizer import normalize

        status = normalize("nano-banan-pro", _job("success", resultJson="not json"))
        assert status.state == "failed"


class TestVeo:
    @pytest.mark.parametrize("flag,expected", [(0, "processing"), (2, "failed"), (3, "failed")])
    def test_flags(self, flag, expected):
        from genr8.services.providers.normalizer import normalize

        raw = {"code": 200, "data": {"successFlag": flag, "errorMessage": "boom"}}
        assert normalize("veo-3.1", raw).state == expected

    def test_success_flag_reads_response_urls(self):
        from genr8.services.providers.normalizer import normalize

        raw = {"code": 200, "data": {"successFlag": 1, "response": {"resultUrls": ["https://cdn/v.mp4"]}}}
        status = normalize("veo-3.1", raw)
        assert status.state == "completed"
        assert status.result_urls == ["https://cdn/v.mp4"]


class TestGpt4oImage:
    def test_success(self):
        from genr8.services.providers.normalizer import normalize

        raw = {"code": 200, "data": {"status": "SUCCESS", "successFlag": 1,
                                     "response": {"resultUrls": ["https://cdn/i.png"]}}}
        status = normalize("gpt-image-1", raw)
        assert status.state == "completed"
        assert status.result_urls == ["https://cdn/i.png"]

    @pytest.mark.parametrize("status_name", ["CREATE_TASK_FAILED", "GENERATE_FAILED"])
    def test_failures(self, status_name):
        from genr8.services.providers.normalizer import normalize

        raw = {"code": 200, "data": {"status": status_name, "errorMessage": "Your request was flagged",
                                     "errorCode": "400"}}
        status = normalize("gpt-image-1", raw)
        assert status.state == "failed"
        assert status.content_policy is True

    def test_generating_carries_progress(self):
        from genr8.services.providers.normalizer import normalize

        raw = {"code": 200, "data": {"status": "GENERATING", "successFlag": 0, "progress": "0.45"}}
        status = normalize("gpt-image-1", raw)
        assert status.state == "processing"
        assert status.progress == pytest.approx(0.45)


def test_every_model_has_a_normalizer():
    from genr8.services.providers.factory import AdapterFactory
    from genr8.services.providers.normalizer import MODEL_FAMILIES

    assert set(AdapterFactory.get_available_models()) == set(MODEL_FAMILIES)
