"""Tests for GenerationPoller and GatewayStatusClient."""
import asyncio

import httpx
import pytest


def _scripted(*responses):
    """fetch_status stub that replays responses; exceptions are raised."""
    calls = []

    async def fetch(task_id, model):
        calls.append((task_id, model))
        item = responses[min(len(calls), len(responses)) - 1]
        if isinstance(item, Exception):
            raise item
        return item

    return fetch, calls


def _poll(fetch, interval=0.01, timeout=1.0):
    from genr8.services.polling import GenerationPoller

    return asyncio.run(GenerationPoller(fetch, interval=interval, timeout=timeout).wait("task-1", "qwen"))


class TestOutcomes:
    def test_completes_after_processing(self):
        fetch, calls = _scripted(
            {"state": "processing"},
            {"state": "processing"},
            {"state": "completed", "resultUrls": ["https://media/a.png"]},
        )
        outcome = _poll(fetch)

        assert outcome.state == "completed"
        assert outcome.result_urls == ["https://media/a.png"]
        assert outcome.attempts == 3
        assert calls[0] == ("task-1", "qwen")

    def test_failed_state_stops_polling(self):
        fetch, calls = _scripted({"state": "failed", "error": "Content policy violation"})
        outcome = _poll(fetch)

        assert outcome.state == "failed"
        assert outcome.error == "Content policy violation"
        assert len(calls) == 1

    def test_timeout_after_ceiling(self):
        fetch, calls = _scripted({"state": "processing"})
        outcome = _poll(fetch, interval=0.02, timeout=0.1)

        assert outcome.state == "timeout"
        assert 1 <= len(calls) <= 6

    def test_slow_request_is_cut_at_ceiling(self):
        async def hang(task_id, model):
            await asyncio.sleep(10)

        outcome = _poll(hang, timeout=0.05)
        assert outcome.state == "timeout"


class TestErrors:
    def test_transient_error_keeps_polling(self):
        from genr8.services.polling import StatusQueryError

        fetch, calls = _scripted(
            StatusQueryError("status endpoint returned 502", status_code=502, body={"error": "upstream"}),
            {"state": "completed", "resultUrls": ["u"]},
        )
        outcome = _poll(fetch)
        assert outcome.state == "completed"
        assert len(calls) == 2

    def test_flagged_error_body_is_a_failure(self):
        from genr8.services.polling import StatusQueryError

        fetch, calls = _scripted(
            StatusQueryError("status endpoint returned 500", status_code=500,
                             body={"message": "Your prompt was flagged by moderation"}),
        )
        outcome = _poll(fetch)
        assert outcome.state == "failed"
        assert "flagged" in outcome.error
        assert len(calls) == 1

    @pytest.mark.parametrize("body,expected", [
        ({"state": "failed", "error": "boom"}, "boom"),
        ({"error": "Flagged content"}, "Flagged content"),
        ({"error": "upstream down"}, None),
        ("<html>", None),
    ])
    def test_inferred_failure(self, body, expected):
        from genr8.services.polling import inferred_failure

        assert inferred_failure(body) == expected


def test_cancellation_stops_the_loop():
    from genr8.services.polling import GenerationPoller

    fetch, calls = _scripted({"state": "processing"})

    async def run():
        task = asyncio.create_task(GenerationPoller(fetch, interval=0.05, timeout=10).wait("task-1", "qwen"))
        await asyncio.sleep(0.12)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        seen = len(calls)
        await asyncio.sleep(0.15)
        return seen

    seen = asyncio.run(run())
    assert len(calls) == seen


class TestGatewayStatusClient:
    def test_fetch_and_error_mapping(self):
        from genr8.services.polling import GatewayStatusClient, StatusQueryError

        def handler(request):
            if request.url.path == "/generate/ok":
                assert request.url.params["model"] == "veo-3.1"
                return httpx.Response(200, json={"state": "processing"})
            return httpx.Response(502, json={"error": "upstream"})

        async def run():
            async with GatewayStatusClient("http://gateway", transport=httpx.MockTransport(handler)) as client:
                body = await client.fetch("ok", "veo-3.1")
                with pytest.raises(StatusQueryError) as exc:
                    await client.fetch("bad", "veo-3.1")
                return body, exc.value

        body, error = asyncio.run(run())
        assert body == {"state": "processing"}
        assert error.status_code == 502
        assert error.body == {"error": "upstream"}
