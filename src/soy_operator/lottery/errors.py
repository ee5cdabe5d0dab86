"""Exceptions raised by the lottery operator."""

from __future__ import annotations

from typing import Optional


class OperatorError(Exception):
    """Base class for operator failures."""


class ConfigError(OperatorError):
    """Missing or invalid configuration."""


class TransactionFailedError(OperatorError):
    """A transaction was mined but reverted."""

    def __init__(self, function_name: str, tx_hash: str, block_number: Optional[int] = None) -> None:
        self.function_name = function_name
        self.tx_hash = tx_hash
        self.block_number = block_number
        super().__init__(f"Transaction {tx_hash} for {function_name} reverted (block {block_number})")


class RevealTimeoutError(OperatorError):
    """No block was mined after the commit block within the allowed time."""

    def __init__(self, commit_block: int, last_block: Optional[int], timeout: float) -> None:
        self.commit_block = commit_block
        self.last_block = last_block
        self.timeout = timeout
        super().__init__(
            f"Timed out after {timeout:g}s waiting for a block after {commit_block} (last seen {last_block})"
        )
