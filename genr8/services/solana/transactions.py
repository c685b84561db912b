"""
Keypair handling and SPL token transfer construction on top of solders.
"""
import json
from decimal import Decimal, ROUND_DOWN

from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction, VersionedTransaction

from genr8.services.errors import ConfigurationError


TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")

# SPL token program instruction index for Transfer
_TRANSFER = 3


class WalletMismatch(ValueError):
    pass


def load_keypair(private_key: str) -> Keypair:
    """Accept a base58 secret key or a JSON byte array (solana-keygen format)."""
    value = private_key.strip()
    try:
        if value.startswith("["):
            return Keypair.from_bytes(bytes(json.loads(value)))
        return Keypair.from_base58_string(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid private key: {e}") from e


def resolve_wallet(public_key: str, private_key: str, label: str) -> Keypair:
    """Load a configured wallet and check the keypair matches its declared public key."""
    if not public_key or not private_key:
        raise ConfigurationError(f"{label} wallet keys are not configured")
    keypair = load_keypair(private_key)
    if str(keypair.pubkey()) != public_key:
        raise WalletMismatch(f"{label} wallet private key does not match its public key")
    return keypair


def associated_token_address(owner: Pubkey, mint: Pubkey) -> Pubkey:
    address, _ = Pubkey.find_program_address(
        [bytes(owner), bytes(TOKEN_PROGRAM_ID), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    return address


def transfer_instruction(source: Pubkey, destination: Pubkey, owner: Pubkey, amount: int) -> Instruction:
    data = bytes([_TRANSFER]) + amount.to_bytes(8, "little")
    accounts = [
        AccountMeta(source, is_signer=False, is_writable=True),
        AccountMeta(destination, is_signer=False, is_writable=True),
        AccountMeta(owner, is_signer=True, is_writable=False),
    ]
    return Instruction(TOKEN_PROGRAM_ID, data, accounts)


def build_signed_transfer(payer: Keypair, instruction: Instruction, blockhash: str) -> tuple[bytes, str]:
    """Returns (wire bytes, signature)."""
    tx = Transaction.new_signed_with_payer([instruction], payer.pubkey(), [payer], Hash.from_string(blockhash))
    return bytes(tx), str(tx.signatures[0])


def sign_versioned_transaction(tx_bytes: bytes, keypair: Keypair) -> tuple[bytes, str]:
    """Sign a serialized versioned transaction built by a third party."""
    unsigned = VersionedTransaction.from_bytes(tx_bytes)
    signed = VersionedTransaction(unsigned.message, [keypair])
    return bytes(signed), str(signed.signatures[0])


def to_base_units(amount: Decimal, decimals: int) -> int:
    """Floor a token amount to integer base units."""
    scaled = (Decimal(str(amount)) * (Decimal(10) ** decimals)).quantize(Decimal("1"), rounding=ROUND_DOWN)
    return int(scaled)
