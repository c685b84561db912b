"""
Minimal Solana JSON-RPC client over httpx.
Only the calls the payment, buyback and refund paths need.
"""
import base64
import logging
import time
from typing import Any, Callable

import httpx

from genr8.core.config import settings
from genr8.services.errors import SolanaRpcError


logger = logging.getLogger(__name__)

CONFIRMED_STATUSES = ("confirmed", "finalized")


class SolanaRpcClient:
    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url or settings.solana_rpc_url
        self.timeout = timeout if timeout is not None else settings.solana_rpc_timeout
        self.transport = transport

    def _rpc(self, method: str, params: list) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.url, json=payload)
                response.raise_for_status()
                body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SolanaRpcError(f"{method} failed: {e}") from e

        if body.get("error"):
            error = body["error"]
            raise SolanaRpcError(
                f"{method} error: {error.get('message')}",
                code=error.get("code"),
                data=error.get("data"),
            )
        return body.get("result")

    def get_transaction(self, signature: str) -> dict | None:
        return self._rpc(
            "getTransaction",
            [
                signature,
                {"encoding": "json", "commitment": "confirmed", "maxSupportedTransactionVersion": 0},
            ],
        )

    def get_account_info(self, address: str) -> dict | None:
        result = self._rpc("getAccountInfo", [address, {"encoding": "base64", "commitment": "confirmed"}])
        return (result or {}).get("value")

    def get_token_account_balance(self, address: str) -> int:
        """Balance in base units."""
        result = self._rpc("getTokenAccountBalance", [address, {"commitment": "confirmed"}])
        return int(((result or {}).get("value") or {}).get("amount") or 0)

    def get_latest_blockhash(self) -> str:
        result = self._rpc("getLatestBlockhash", [{"commitment": "confirmed"}])
        return result["value"]["blockhash"]

    def send_raw_transaction(self, tx_bytes: bytes) -> str:
        encoded = base64.b64encode(tx_bytes).decode("ascii")
        return self._rpc(
            "sendTransaction",
            [encoded, {"encoding": "base64", "preflightCommitment": "confirmed", "maxRetries": 3}],
        )

    def get_signature_status(self, signature: str) -> dict | None:
        result = self._rpc("getSignatureStatuses", [[signature], {"searchTransactionHistory": True}])
        values = (result or {}).get("value") or [None]
        return values[0]

    def confirm_transaction(
        self,
        signature: str,
        timeout: float | None = None,
        poll_interval: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> bool:
        """Wait until the signature is confirmed. False on timeout; SolanaRpcError if it failed on-chain."""
        timeout = timeout if timeout is not None else settings.solana_confirm_timeout
        poll_interval = poll_interval if poll_interval is not None else settings.solana_confirm_poll_interval
        deadline = time.monotonic() + timeout
        while True:
            status = self.get_signature_status(signature)
            if status:
                if status.get("err"):
                    raise SolanaRpcError(f"Transaction {signature} failed on-chain", data=status.get("err"))
                if status.get("confirmationStatus") in CONFIRMED_STATUSES:
                    return True
            if time.monotonic() >= deadline:
                logger.warning("transaction_confirm_timeout", extra={"signature": signature})
                return False
            sleep(poll_interval)
