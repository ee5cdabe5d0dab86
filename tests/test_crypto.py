import pytest
from web3 import Web3

from soy_operator.utils.crypto import SECRET_SIZE, commit_hash, generate_secret, secret_to_uint


def test_generated_secrets_are_32_random_bytes():
    first, second = generate_secret(), generate_secret()

    assert len(first) == SECRET_SIZE
    assert first != second


def test_commit_hash_matches_keccak_of_secret():
    secret = generate_secret()

    assert commit_hash(secret) == bytes(Web3.keccak(secret))
    assert len(commit_hash(secret)) == 32


def test_commit_hash_matches_solidity_packed_uint256():
    secret = bytes.fromhex("00" * 31 + "2a")

    packed = Web3.solidity_keccak(["uint256"], [secret_to_uint(secret)])

    assert secret_to_uint(secret) == 42
    assert bytes(packed) == commit_hash(secret)


def test_commit_hash_rejects_wrong_length():
    with pytest.raises(ValueError):
        commit_hash(b"short")
