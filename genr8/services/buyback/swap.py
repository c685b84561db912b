"""
PumpPortal swap client: buys the reward token with SOL from the buyback wallet.
PumpPortal builds the transaction; we sign it locally and submit via our RPC.
"""
import logging

import httpx
from solders.keypair import Keypair

from genr8.core.config import settings
from genr8.services.errors import SwapError
from genr8.services.solana.rpc import SolanaRpcClient
from genr8.services.solana.transactions import resolve_wallet, sign_versioned_transaction

logger = logging.getLogger(__name__)


def load_buyback_wallet() -> Keypair:
    return resolve_wallet(
        settings.buyback_wallet_public_key,
        settings.buyback_wallet_private_key,
        "Buyback",
    )


class PumpPortalSwap:
    def __init__(
        self,
        rpc: SolanaRpcClient | None = None,
        transport: httpx.BaseTransport | None = None,
        wallet_loader=load_buyback_wallet,
    ) -> None:
        self.rpc = rpc or SolanaRpcClient()
        self.transport = transport
        self.wallet_loader = wallet_loader

    def build_order(self, public_key: str, amount_native: float) -> dict:
        return {
            "publicKey": public_key,
            "action": "buy",
            "mint": settings.payment_token_mint,
            "amount": round(amount_native, 9),
            "denominatedInSol": "true",
            "slippage": settings.buyback_slippage,
            "priorityFee": settings.buyback_priority_fee,
            "pool": settings.buyback_pool,
        }

    def buy(self, amount_native: float) -> str:
        """Submit one buy of amount_native SOL; returns the transaction signature (unconfirmed)."""
        keypair = self.wallet_loader()
        order = self.build_order(str(keypair.pubkey()), amount_native)
        try:
            with httpx.Client(timeout=settings.buyback_request_timeout, transport=self.transport) as client:
                response = client.post(settings.pumpportal_api_url, json=order)
        except httpx.HTTPError as e:
            raise SwapError(f"PumpPortal request failed: {e}") from e
        if response.status_code != 200:
            raise SwapError(f"PumpPortal error {response.status_code}: {response.text[:500]}")

        try:
            signed, signature = sign_versioned_transaction(response.content, keypair)
        except ValueError as e:
            raise SwapError(f"PumpPortal returned an unreadable transaction: {e}") from e

        sent = self.rpc.send_raw_transaction(signed)
        logger.info("buyback_swap_submitted", extra={"tx_signature": sent or signature, "total_native": amount_native})
        return sent or signature
