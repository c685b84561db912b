"""Tests for RefundService."""
import json
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from solders.hash import Hash
from solders.keypair import Keypair


@pytest.fixture
def refund_wallet():
    keypair = Keypair()
    with patch("genr8.services.refunds.service.settings.refund_wallet_public_key", str(keypair.pubkey())), \
            patch("genr8.services.refunds.service.settings.refund_wallet_private_key", json.dumps(list(bytes(keypair)))):
        yield keypair


def _rpc(balance=10**12, source_exists=True, recipient_exists=True, confirmed=True):
    rpc = MagicMock()
    accounts = iter([{"owner": "token"} if source_exists else None, {"owner": "token"} if recipient_exists else None])
    rpc.get_account_info.side_effect = lambda address: next(accounts)
    rpc.get_token_account_balance.return_value = balance
    rpc.get_latest_blockhash.return_value = str(Hash.default())
    rpc.send_raw_transaction.return_value = "refund-sig"
    rpc.confirm_transaction.return_value = confirmed
    return rpc


def _request(method="usdc", amount="0.3", signature="pay-1"):
    from genr8.services.refunds.service import RefundRequest

    return RefundRequest(
        user_wallet=str(Keypair().pubkey()),
        amount_usd=Decimal(amount),
        payment_method=method,
        reason="provider failed",
        original_signature=signature,
        task_id="task-1",
    )


def _service(db, rpc, token_price=0.0001):
    from genr8.services.refunds.service import RefundService

    prices = MagicMock()
    prices.token_amount_for_usd.side_effect = lambda usd: Decimal(str(usd)) / Decimal(str(token_price))
    return RefundService(db, rpc=rpc, prices=prices)


class TestOutbox:
    def test_enqueue_once_per_payment(self, db):
        from genr8.models import RefundRecord

        service = _service(db, _rpc())
        record, created = service.enqueue(_request())
        again, created_again = service.enqueue(_request())
        db.commit()

        assert created and not created_again
        assert again.id == record.id
        assert record.status == "queued"
        assert record.token == "USDC"
        assert db.query(RefundRecord).count() == 1

    def test_gen_payments_refund_in_gen(self, db):
        service = _service(db, _rpc())
        record, _ = service.enqueue(_request(method="gen"))
        assert record.token == "GEN"

    def test_process_queued_counts_outcomes(self, db, refund_wallet):
        service = _service(db, _rpc())
        service.enqueue(_request(signature="ok"))
        db.commit()

        assert service.process_queued() == {"succeeded": 1, "failed": 0}
        assert service.get_by_original("ok").status == "success"
        assert service.process_queued() == {"succeeded": 0, "failed": 0}


class TestTransfer:
    def test_usdc_refund_sends_exact_amount(self, db, refund_wallet):
        rpc = _rpc()
        record = _service(db, rpc).send_refund(_request(method="usdc", amount="0.3"))

        assert record.status == "success"
        assert record.signature == "refund-sig"
        assert record.amount == pytest.approx(0.3)
        rpc.send_raw_transaction.assert_called_once()
        rpc.confirm_transaction.assert_called_once_with("refund-sig")

    def test_gen_refund_is_priced_at_token_price(self, db, refund_wallet):
        record = _service(db, _rpc(), token_price=0.0001).send_refund(_request(method="gen", amount="0.03"))
        assert record.amount == pytest.approx(300.0)

    def test_missing_recipient_account(self, db, refund_wallet):
        from genr8.services.errors import RefundFailure

        rpc = _rpc(recipient_exists=False)
        with pytest.raises(RefundFailure, match="has no USDC token account"):
            _service(db, rpc).send_refund(_request())
        rpc.send_raw_transaction.assert_not_called()

    def test_insufficient_balance(self, db, refund_wallet):
        from genr8.services.errors import RefundFailure

        rpc = _rpc(balance=100)
        service = _service(db, rpc)
        with pytest.raises(RefundFailure, match="Insufficient USDC"):
            service.send_refund(_request())

        record = service.get_by_original("pay-1")
        assert record.status == "failed"
        assert "Insufficient" in record.error
        rpc.send_raw_transaction.assert_not_called()

    def test_unconfirmed_transfer_is_failed(self, db, refund_wallet):
        from genr8.services.errors import RefundFailure

        service = _service(db, _rpc(confirmed=False))
        with pytest.raises(RefundFailure, match="not confirmed"):
            service.send_refund(_request())
        assert service.get_by_original("pay-1").status == "failed"


class TestWallet:
    def test_missing_keys_is_configuration_error(self, db):
        from genr8.services.errors import ConfigurationError

        service = _service(db, _rpc())
        with patch("genr8.services.refunds.service.settings.refund_wallet_public_key", ""):
            with pytest.raises(ConfigurationError):
                service.send_refund(_request())
        assert service.get_by_original("pay-1").status == "failed"

    def test_mismatched_keys(self, db, refund_wallet):
        from genr8.services.errors import RefundFailure

        with patch("genr8.services.refunds.service.settings.refund_wallet_public_key", str(Keypair().pubkey())):
            with pytest.raises(RefundFailure, match="does not match"):
                _service(db, _rpc()).send_refund(_request())


class TestRetry:
    def test_already_refunded_is_rejected(self, db, refund_wallet):
        from genr8.services.errors import RefundFailure

        service = _service(db, _rpc())
        service.send_refund(_request())
        with pytest.raises(RefundFailure, match="already refunded"):
            service.retry("pay-1")

    def test_failed_refund_can_be_retried(self, db, refund_wallet):
        from genr8.services.errors import RefundFailure

        service = _service(db, _rpc(balance=0))
        with pytest.raises(RefundFailure):
            service.send_refund(_request())

        service.rpc = _rpc()
        record = service.retry("pay-1")
        assert record.status == "success"

    def test_unknown_refund(self, db):
        from genr8.services.errors import RefundFailure

        with pytest.raises(RefundFailure, match="No refund recorded"):
            _service(db, _rpc()).retry("nope")


def test_unexpected_error_marks_refund_failed(db, refund_wallet):
    rpc = _rpc()
    rpc.get_latest_blockhash.side_effect = TypeError("'NoneType' object is not subscriptable")
    service = _service(db, rpc)

    with pytest.raises(TypeError):
        service.send_refund(_request())

    record = service.get_by_original("pay-1")
    assert record.status == "failed"
    assert "TypeError" in record.error

    service.rpc = _rpc()
    assert service.retry("pay-1").status == "success"
