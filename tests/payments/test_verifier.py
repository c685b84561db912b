"""Tests for PaymentVerifier."""
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

PAYMENT_WALLET = "BXm4a7VzW3GWH2MkUqFTc5uM3XrQDvVbYA3KbXoUvgez"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
GEN = "4BwTM7JvCXnMHPoxfPBoNjxYSbQpVQUMPtK5KNGppump"


def _balance(index, mint, amount, owner=PAYMENT_WALLET):
    return {"accountIndex": index, "mint": mint, "owner": owner,
            "uiTokenAmount": {"amount": str(amount), "decimals": 6}}


def _tx(pre, post, err=None):
    return {"slot": 1, "meta": {"err": err, "preTokenBalances": pre, "postTokenBalances": post}}


def _verifier(tx, verify_transfer=True, token_price=0.0001):
    from genr8.services.payments.verifier import PaymentVerifier

    rpc = MagicMock()
    rpc.get_transaction.return_value = tx
    prices = MagicMock()
    prices.token_amount_for_usd.side_effect = lambda usd: Decimal(str(usd)) / Decimal(str(token_price))
    return PaymentVerifier(rpc=rpc, prices=prices, verify_transfer=verify_transfer), rpc


class TestExistence:
    def test_missing_transaction_is_not_paid(self):
        verifier, _ = _verifier(None)
        assert verifier.verify("sig") is False

    def test_failed_transaction_is_not_paid(self):
        verifier, _ = _verifier(_tx([], [], err={"InstructionError": [0, "Custom"]}), verify_transfer=False)
        assert verifier.verify("sig") is False

    def test_successful_transaction_without_transfer_check(self):
        verifier, rpc = _verifier(_tx([], []), verify_transfer=False)
        assert verifier.verify("sig", Decimal("0.03"), "usdc") is True
        rpc.get_transaction.assert_called_once_with("sig")

    def test_rpc_error_is_not_paid(self):
        from genr8.services.errors import SolanaRpcError

        verifier, rpc = _verifier(None)
        rpc.get_transaction.side_effect = SolanaRpcError("timeout")
        assert verifier.verify("sig") is False

    def test_same_answer_twice(self):
        verifier, _ = _verifier(_tx([], [_balance(1, USDC, 30_000)]))
        assert verifier.verify("sig", Decimal("0.03"), "usdc") is True
        assert verifier.verify("sig", Decimal("0.03"), "usdc") is True


class TestTransferCheck:
    def test_usdc_amount_covers_price(self):
        verifier, _ = _verifier(_tx([_balance(1, USDC, 1_000_000)], [_balance(1, USDC, 1_030_000)]))
        assert verifier.verify("sig", Decimal("0.03"), "usdc") is True

    def test_usdc_amount_too_low(self):
        verifier, _ = _verifier(_tx([_balance(1, USDC, 0)], [_balance(1, USDC, 10_000)]))
        assert verifier.verify("sig", Decimal("0.03"), "usdc") is False

    def test_within_tolerance(self):
        # 0.025 received for 0.03 expected: inside the 20% tolerance
        verifier, _ = _verifier(_tx([], [_balance(1, USDC, 25_000)]))
        assert verifier.verify("sig", Decimal("0.03"), "usdc") is True

    def test_wrong_mint_is_rejected(self):
        verifier, _ = _verifier(_tx([], [_balance(1, GEN, 30_000)]))
        assert verifier.verify("sig", Decimal("0.03"), "usdc") is False

    def test_transfer_to_another_wallet_is_rejected(self):
        verifier, _ = _verifier(_tx([], [_balance(1, USDC, 30_000, owner="SomeoneElse")]))
        assert verifier.verify("sig", Decimal("0.03"), "usdc") is False

    def test_gen_amount_uses_token_price(self):
        # $0.03 at $0.0001 per token = 300 tokens
        tx = _tx([_balance(2, GEN, 0)], [_balance(2, GEN, 300 * 10**6)])
        verifier, _ = _verifier(tx)
        assert verifier.verify("sig", Decimal("0.03"), "gen") is True

        short = _tx([_balance(2, GEN, 0)], [_balance(2, GEN, 100 * 10**6)])
        verifier, _ = _verifier(short)
        assert verifier.verify("sig", Decimal("0.03"), "gen") is False

    def test_without_expected_amount_any_receipt_passes(self):
        verifier, _ = _verifier(_tx([], [_balance(1, GEN, 1)]))
        assert verifier.verify("sig", None, "gen") is True


def test_received_amount_nets_pre_and_post():
    from genr8.services.payments.verifier import received_amount

    meta = {
        "preTokenBalances": [_balance(1, USDC, 5_000_000), _balance(3, USDC, 7, owner="x")],
        "postTokenBalances": [_balance(1, USDC, 5_250_000), _balance(3, USDC, 0, owner="x")],
    }
    assert received_amount(meta, PAYMENT_WALLET, USDC, 6) == Decimal("0.25")


@pytest.mark.parametrize("flag", [True, False])
def test_default_transfer_check_follows_settings(flag):
    from genr8.services.payments.verifier import PaymentVerifier

    with patch("genr8.services.payments.verifier.settings.payment_verify_transfer", flag):
        assert PaymentVerifier(rpc=MagicMock(), prices=MagicMock()).verify_transfer is flag
