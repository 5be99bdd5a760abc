"""
Chain-facing helpers: account address normalization and block time.
"""
import time

from web3 import Web3

from talkstake.core.errors import InvalidAddress


def to_account(address: str) -> str:
    """Validate an account address and return its EIP-55 checksum form."""
    if not isinstance(address, str) or not Web3.is_address(address):
        raise InvalidAddress(f"Invalid account address: {address!r}")
    return Web3.to_checksum_address(address)


def block_timestamp() -> int:
    """Current ledger time in unix seconds."""
    return int(time.time())


def get_clock():
    """FastAPI dependency returning the clock used to stamp ledger calls."""
    return block_timestamp
