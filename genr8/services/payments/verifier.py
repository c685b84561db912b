"""
PaymentVerifier - decides whether a Solana transaction signature is an acceptable payment.

Base rule: the transaction exists at "confirmed" commitment and did not fail.
With payment_verify_transfer enabled, the transaction must also move the accepted
token (reward token or USDC) into an account owned by the payment wallet, for at
least the expected amount minus payment_amount_tolerance.
"""
import logging
from decimal import Decimal

from genr8.core.config import settings
from genr8.services.errors import SolanaRpcError
from genr8.services.pricing import PriceService
from genr8.services.solana.rpc import SolanaRpcClient
from genr8.utils.metrics import payments_verified_total

logger = logging.getLogger(__name__)


def _token_amounts(balances: list[dict], owner: str, mint: str) -> dict[int, int]:
    """accountIndex -> base-unit amount for the owner's accounts of the given mint."""
    result = {}
    for entry in balances or []:
        if entry.get("owner") != owner or entry.get("mint") != mint:
            continue
        amount = (entry.get("uiTokenAmount") or {}).get("amount") or "0"
        result[entry.get("accountIndex")] = int(amount)
    return result


def received_amount(meta: dict, owner: str, mint: str, decimals: int) -> Decimal:
    """Net tokens received by owner in this transaction (token units, not base units)."""
    pre = _token_amounts(meta.get("preTokenBalances"), owner, mint)
    post = _token_amounts(meta.get("postTokenBalances"), owner, mint)
    delta = sum(post.values()) - sum(pre.values())
    return Decimal(delta) / (Decimal(10) ** decimals)


class PaymentVerifier:
    def __init__(
        self,
        rpc: SolanaRpcClient | None = None,
        prices: PriceService | None = None,
        verify_transfer: bool | None = None,
    ) -> None:
        self.rpc = rpc or SolanaRpcClient()
        self.prices = prices or PriceService()
        self.verify_transfer = settings.payment_verify_transfer if verify_transfer is None else verify_transfer

    def verify(self, signature: str, expected_usd: Decimal | None = None, payment_method: str = "gen") -> bool:
        try:
            tx = self.rpc.get_transaction(signature)
        except SolanaRpcError as e:
            logger.warning("payment_lookup_failed", extra={"signature": signature, "error": str(e)})
            payments_verified_total.labels(result="rejected").inc()
            return False

        verified = self._check(signature, tx, expected_usd, payment_method)
        payments_verified_total.labels(result="verified" if verified else "rejected").inc()
        return verified

    def _check(self, signature: str, tx: dict | None, expected_usd: Decimal | None, payment_method: str) -> bool:
        if not tx:
            logger.info("payment_transaction_not_found", extra={"signature": signature})
            return False
        meta = tx.get("meta") or {}
        if meta.get("err") is not None:
            logger.info("payment_transaction_failed", extra={"signature": signature, "error": str(meta.get("err"))})
            return False
        if not self.verify_transfer:
            return True
        return self._transfer_matches(signature, meta, expected_usd, payment_method)

    def _transfer_matches(self, signature: str, meta: dict, expected_usd: Decimal | None, payment_method: str) -> bool:
        if payment_method == "usdc":
            mint, decimals = settings.usdc_mint, settings.usdc_decimals
        else:
            mint, decimals = settings.payment_token_mint, settings.token_decimals

        received = received_amount(meta, settings.payment_wallet_address, mint, decimals)
        if received <= 0:
            logger.info("payment_transfer_missing", extra={"signature": signature, "payment_method": payment_method})
            return False
        if expected_usd is None:
            return True

        if payment_method == "usdc":
            expected = Decimal(str(expected_usd))
        else:
            expected = self.prices.token_amount_for_usd(expected_usd)
        minimum = expected * (Decimal(1) - Decimal(str(settings.payment_amount_tolerance)))
        if received < minimum:
            logger.info(
                "payment_amount_too_low",
                extra={"signature": signature, "amount_usd": str(expected_usd), "error": f"received {received}"},
            )
            return False
        return True
