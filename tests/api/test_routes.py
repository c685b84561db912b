"""HTTP tests for the gateway routes with services swapped through dependency overrides."""
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def adapter():
    adapter = MagicMock()
    adapter.create_task.return_value = "task-1"
    adapter.query_task.return_value = {"code": 200, "msg": "success", "data": {"taskId": "task-1", "state": "generating"}}
    return adapter


@pytest.fixture
def verifier():
    verifier = MagicMock()
    verifier.verify.return_value = True
    return verifier


@pytest.fixture
def client(session_factory, adapter, verifier):
    from genr8.api import deps
    from genr8.db.session import get_db
    from genr8.main import app

    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[deps.get_verifier] = lambda: verifier
    app.dependency_overrides[deps.get_adapter_factory] = lambda: (lambda model_id: adapter)
    app.dependency_overrides[deps.get_idempotency_store] = lambda: None
    app.dependency_overrides[deps.get_rehoster] = lambda: MagicMock()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _generate(client, **body):
    payload = {"model": "qwen", "prompt": "a lighthouse at dusk"}
    payload.update(body)
    return client.post("/generate", json=payload)


class TestModels:
    def test_catalog(self, client):
        response = client.get("/models")
        assert response.status_code == 200
        models = {m["id"]: m for m in response.json()}
        assert len(models) == 8
        assert models["qwen"]["price"] == pytest.approx(0.03)
        assert models["sora-2-pro"]["comingSoon"] is True


class TestGenerate:
    def test_unpaid_request_gets_402_with_challenge(self, client, adapter):
        response = _generate(client)

        assert response.status_code == 402
        body = response.json()
        assert body["error"] == "Payment Required"
        assert body["paymentRequired"] is True
        assert body["amount"] == pytest.approx(0.03)
        assert body["generationId"].startswith("gen_")
        assert response.headers["WWW-Authenticate"].startswith('Bearer realm="GENR8"')
        adapter.create_task.assert_not_called()

    def test_paid_request_dispatches(self, client, adapter):
        response = _generate(client, paymentSignature="sig-1", userWallet="WalletA", paymentMethod="usdc")

        assert response.status_code == 200
        assert response.json()["taskId"] == "task-1"
        assert response.json()["status"] == "processing"

        replay = _generate(client, paymentSignature="sig-1", userWallet="WalletA", paymentMethod="usdc")
        assert replay.status_code == 200
        assert replay.json()["taskId"] == "task-1"
        assert adapter.create_task.call_count == 1

    def test_unverified_payment_is_402(self, client, verifier, adapter):
        verifier.verify.return_value = False
        response = _generate(client, paymentSignature="sig-bad")

        assert response.status_code == 402
        assert response.json()["error"] == "Payment verification failed"
        adapter.create_task.assert_not_called()

    def test_unknown_model_is_400(self, client):
        assert _generate(client, model="midjourney", paymentSignature="s").status_code == 400

    def test_coming_soon_model_is_503(self, client):
        assert _generate(client, model="sora-2-pro", paymentSignature="s").status_code == 503

    def test_empty_prompt_is_rejected(self, client):
        assert _generate(client, prompt="").status_code == 422

    def test_provider_error_is_500_with_details(self, client, adapter):
        from genr8.services.errors import UpstreamProviderError

        raw = {"code": 402, "msg": "Credits insufficient"}
        adapter.create_task.side_effect = UpstreamProviderError("Credits insufficient", status_code=200, body=raw)
        response = _generate(client, paymentSignature="sig-2")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to initiate qwen generation"
        assert body["message"] == "Credits insufficient"
        assert body["details"] == raw


class TestGenerationStatus:
    def test_processing(self, client):
        response = client.get("/generate/task-1", params={"model": "qwen"})
        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "processing"
        assert body["type"] == "image"
        assert "resultUrls" not in body

    def test_upstream_error_is_502(self, client, adapter):
        from genr8.services.errors import UpstreamProviderError

        adapter.query_task.side_effect = UpstreamProviderError("timeout")
        response = client.get("/generate/task-1", params={"model": "qwen"})
        assert response.status_code == 502
        assert response.json()["success"] is False

    def test_unknown_model_is_400(self, client):
        assert client.get("/generate/task-1", params={"model": "nope"}).status_code == 400


class TestPaymentVerify:
    def test_missing_fields(self, client):
        assert client.post("/payment/verify", json={"signature": "s"}).status_code == 400

    def test_paid(self, client, verifier):
        response = client.post(
            "/payment/verify",
            json={"signature": "sig-9", "generationId": "gen_1", "model": "veo-3.1", "paymentMethod": "usdc"},
        )
        assert response.status_code == 200
        assert response.json()["paid"] is True
        args = verifier.verify.call_args[0]
        assert args[0] == "sig-9"
        assert float(args[1]) == pytest.approx(0.36)

    def test_not_paid(self, client, verifier):
        verifier.verify.return_value = False
        response = client.post(
            "/payment/verify", json={"signature": "sig-9", "generationId": "gen_1", "amount": 0.03}
        )
        assert response.status_code == 402
        assert response.json()["paid"] is False

    @pytest.mark.parametrize("extra", [{}, {"model": "not-a-model"}])
    def test_without_amount_or_known_model_is_400(self, client, verifier, extra):
        response = client.post("/payment/verify", json={"signature": "sig-9", "generationId": "gen_1", **extra})
        assert response.status_code == 400
        verifier.verify.assert_not_called()


class TestBuybacks:
    def _override(self, executor):
        from genr8.api import deps
        from genr8.main import app

        app.dependency_overrides[deps.get_buyback_executor] = lambda: executor

    def test_noop_run(self, client):
        from genr8.services.buyback.executor import NOOP, BuybackResult

        executor = MagicMock()
        executor.execute.return_value = BuybackResult(outcome=NOOP, message="No pending buybacks")
        self._override(executor)

        response = client.post("/buybacks/execute")
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "No pending buybacks"}

    def test_failure_is_500(self, client):
        from genr8.services.errors import BatchExecutionFailure

        executor = MagicMock()
        executor.execute.side_effect = BatchExecutionFailure("PumpPortal error 500")
        self._override(executor)

        response = client.post("/buybacks/execute")
        assert response.status_code == 500
        assert response.json()["message"] == "PumpPortal error 500"

    def test_execution_key_is_enforced_when_set(self, client):
        executor = MagicMock()
        self._override(executor)

        with patch("genr8.api.deps.settings.buyback_execution_key", "secret"):
            assert client.post("/buybacks/execute").status_code == 401
            wrong = client.post("/buybacks/execute", headers={"Authorization": "Bearer nope"})
            assert wrong.status_code == 401
        executor.execute.assert_not_called()


class TestAdminRefunds:
    def test_disabled_without_admin_key(self, client):
        with patch("genr8.api.deps.settings.admin_api_key", None):
            assert client.get("/admin/refunds").status_code == 503

    def test_list_with_admin_key(self, client):
        with patch("genr8.api.deps.settings.admin_api_key", "adm"):
            assert client.get("/admin/refunds").status_code == 401
            response = client.get("/admin/refunds", headers={"Authorization": "Bearer adm"})
        assert response.status_code == 200
        assert response.json() == []


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
