from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

import pytest

from soy_operator.lottery.models import LotteryConfig, LotteryRound, LotteryStatus, TransactionReceipt
from soy_operator.lottery.state import PendingRevealStore

OPERATOR_ADDRESS = "0x" + "ab" * 20


class FakeBlockchainClient:
    """Records calls in order; blocks advance by one per transaction."""

    def __init__(
        self,
        lottery: LotteryRound,
        block_number: int = 100,
        balance: Decimal = Decimal("10"),
        blocks: Optional[List[int]] = None,
    ) -> None:
        self.lottery = lottery
        self.block_number = block_number
        self.balance = balance
        self.blocks = list(blocks or [])
        self.calls: List[tuple] = []
        self.fail_on: Optional[str] = None
        self.operator_address = OPERATOR_ADDRESS

    def _receipt(self, name: str) -> TransactionReceipt:
        if self.fail_on == name:
            raise RuntimeError(f"{name} reverted: execution reverted")
        self.block_number += 1
        return TransactionReceipt(
            tx_hash=f"0x{name}{len(self.calls)}",
            block_number=self.block_number,
            gas_used=21000,
            status=1,
        )

    @property
    def transactions(self) -> List[str]:
        return [call[0] for call in self.calls if call[0] not in ("get_block_number",)]

    async def get_current_lottery_id(self) -> int:
        return self.lottery.lottery_id

    async def get_lottery(self, lottery_id: int) -> LotteryRound:
        return self.lottery

    async def close_lottery(self, lottery_id: int) -> TransactionReceipt:
        self.calls.append(("close_lottery", lottery_id))
        return self._receipt("close_lottery")

    async def commit_secret(self, secret_hash: bytes) -> TransactionReceipt:
        self.calls.append(("commit_secret", secret_hash))
        return self._receipt("commit_secret")

    async def reveal_secret(self, lottery_id: int, secret: int) -> TransactionReceipt:
        self.calls.append(("reveal_secret", lottery_id, secret, self.block_number))
        return self._receipt("reveal_secret")

    async def draw_final_number(self, lottery_id: int, auto_injection: bool) -> TransactionReceipt:
        self.calls.append(("draw_final_number", lottery_id, auto_injection))
        return self._receipt("draw_final_number")

    async def start_lottery(self, end_time, price_ticket, discount_divisor, rewards_breakdown, treasury_fee):
        self.calls.append(
            ("start_lottery", end_time, price_ticket, discount_divisor, tuple(rewards_breakdown), treasury_fee)
        )
        return self._receipt("start_lottery")

    async def get_block_number(self) -> int:
        self.calls.append(("get_block_number",))
        if self.blocks:
            self.block_number = self.blocks.pop(0)
        return self.block_number

    async def get_balance(self, address: str) -> Decimal:
        return self.balance


def make_round(status: LotteryStatus = LotteryStatus.OPEN, end_time: int = 1_000, lottery_id: int = 7) -> LotteryRound:
    return LotteryRound(lottery_id=lottery_id, status=status, start_time=0, end_time=end_time)


@pytest.fixture
def lottery_config() -> LotteryConfig:
    return LotteryConfig(
        price_ticket_in_soy=25 * 10**18,
        discount_divisor=2000,
        rewards_breakdown=(1111, 2777, 6112, 0, 0, 0),
        treasury_fee=1000,
        align=7200,
        auto_injection=True,
    )


@pytest.fixture
def operator_settings() -> dict:
    return {"operator": {"reveal_poll_interval": 0, "reveal_timeout": 5, "low_balance_threshold": 5}}


@pytest.fixture
def store(tmp_path) -> PendingRevealStore:
    return PendingRevealStore(tmp_path / "pending_reveal.json")
