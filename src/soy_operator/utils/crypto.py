"""
Commit-reveal helpers for the random number generator contract
"""

import secrets

from web3 import Web3

SECRET_SIZE = 32


def generate_secret() -> bytes:
    """Return a fresh 32-byte secret from the OS CSPRNG"""
    return secrets.token_bytes(SECRET_SIZE)


def commit_hash(secret: bytes) -> bytes:
    """keccak256 of the secret, as committed with `commitSecret`"""
    if len(secret) != SECRET_SIZE:
        raise ValueError(f"secret must be {SECRET_SIZE} bytes, got {len(secret)}")
    return bytes(Web3.keccak(secret))


def secret_to_uint(secret: bytes) -> int:
    """Map the secret to the uint256 argument of `revealSecret`.

    Big-endian, so keccak256(abi.encodePacked(uint256)) on-chain matches
    commit_hash(secret).
    """
    return int.from_bytes(secret, "big")
