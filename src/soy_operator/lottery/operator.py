"""
Lottery operator: closes expired rounds, runs the commit-reveal exchange with
the random number generator, draws the final number and starts the next round.

Each step returns an OperationResult instead of raising, so the caller decides
whether to notify and how to exit:
- close_and_commit: Open and expired -> closeLottery + commitSecret
- reveal_and_draw: once a block is mined after the commit -> revealSecret +
  drawFinalNumberAndMakeLotteryClaimable
- start_next_round: startLottery with an aligned end time, then a balance check
"""

from __future__ import annotations

import time
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from soy_operator.lottery.errors import OperatorError
from soy_operator.lottery.models import (
    LotteryConfig,
    LotteryStatus,
    OperationResult,
    Outcome,
    PendingReveal,
    RevealStage,
)
from soy_operator.lottery.scheduler import next_round_end_time, wait_for_block_after
from soy_operator.lottery.state import PendingRevealStore
from soy_operator.utils.crypto import commit_hash, generate_secret, secret_to_uint
from soy_operator.utils.logger import get_logger

logger = get_logger(__name__)

RNG_NOT_COMPLETE = "random number generation is not complete"


class LotteryOperator:
    """Drives one lottery round through close, commit, reveal, draw and restart."""

    def __init__(
        self,
        blockchain_client: Any,
        lottery_config: LotteryConfig,
        config: Dict[str, Any],
        store: Optional[PendingRevealStore] = None,
        clock: Callable[[], float] = time.time,
        secret_factory: Callable[[], bytes] = generate_secret,
    ) -> None:
        self._client = blockchain_client
        self._lottery = lottery_config
        operator_cfg = config.get("operator", {})
        self._poll_interval = float(operator_cfg.get("reveal_poll_interval", 10))
        self._reveal_timeout = float(operator_cfg.get("reveal_timeout", 600))
        self._low_balance_threshold = Decimal(str(operator_cfg.get("low_balance_threshold", 5)))
        self._store = store or PendingRevealStore(operator_cfg.get("state_file", "pending_reveal.json"))
        self._clock = clock
        self._secret_factory = secret_factory

    def _now(self) -> int:
        return int(self._clock())

    async def close_and_commit(self, now: Optional[int] = None) -> OperationResult:
        """Close the current round if it has expired and commit a fresh secret."""
        now = self._now() if now is None else int(now)
        lottery_id: Optional[int] = None
        tx_hashes: List[str] = []
        closed = False
        pending: Optional[PendingReveal] = None

        try:
            lottery_id = await self._client.get_current_lottery_id()
            lottery = await self._client.get_lottery(lottery_id)
            logger.info(
                f"Lottery {lottery_id}: status={lottery.status.name}, end_time={lottery.end_time}, now={now}"
            )

            if lottery.status == LotteryStatus.OPEN:
                if not lottery.is_expired(now):
                    return OperationResult(
                        action="close_and_commit",
                        outcome=Outcome.IDLE,
                        message=f"Lottery {lottery_id} open for another {lottery.end_time - now}s",
                        lottery_id=lottery_id,
                        round_status=lottery.status,
                    )

                logger.info(f"Lottery {lottery_id}: expired, closing")
                receipt = await self._client.close_lottery(lottery_id)
                tx_hashes.append(receipt.tx_hash)
                closed = True

                secret = self._secret_factory()
                receipt = await self._client.commit_secret(commit_hash(secret))
                tx_hashes.append(receipt.tx_hash)
                pending = PendingReveal(lottery_id=lottery_id, commit_block=receipt.block_number, secret=secret)
                logger.info(f"Lottery {lottery_id}: secret committed in block {receipt.block_number}")

                alerts: List[str] = []
                message = f"Lottery {lottery_id} closed, secret committed in block {receipt.block_number}"
                try:
                    self._store.save(pending)
                except OSError as exc:
                    # the secret only lives in memory now; reveal it in this run
                    message = (
                        f"Lottery {lottery_id} secret committed in block {receipt.block_number} "
                        f"but pending state not saved: {exc}"
                    )
                    logger.error(message)
                    alerts.append(message)

                return OperationResult(
                    action="close_and_commit",
                    outcome=Outcome.COMPLETED,
                    message=message,
                    lottery_id=lottery_id,
                    round_status=LotteryStatus.CLOSE,
                    tx_hashes=tx_hashes,
                    pending=pending,
                    alerts=alerts,
                )

            if lottery.status == LotteryStatus.CLOSE:
                pending = self._store.load_for(lottery_id)
                if pending is not None:
                    logger.info(f"Lottery {lottery_id}: resuming pending reveal ({pending.stage.value})")
                    return OperationResult(
                        action="close_and_commit",
                        outcome=Outcome.COMPLETED,
                        message=f"Lottery {lottery_id} closed earlier, resuming from stage {pending.stage.value}",
                        lottery_id=lottery_id,
                        round_status=lottery.status,
                        pending=pending,
                    )
                logger.warning(f"Lottery {lottery_id}: closed without a pending reveal in {self._store.path}")
                return OperationResult(
                    action="close_and_commit",
                    outcome=Outcome.NOTICE,
                    message=RNG_NOT_COMPLETE,
                    lottery_id=lottery_id,
                    round_status=lottery.status,
                    alerts=[RNG_NOT_COMPLETE],
                )

            return OperationResult(
                action="close_and_commit",
                outcome=Outcome.IDLE,
                message=f"Lottery {lottery_id} is {lottery.status.name}",
                lottery_id=lottery_id,
                round_status=lottery.status,
            )

        except Exception as exc:
            logger.error(f"close_and_commit failed for lottery {lottery_id}: {exc}")
            message = str(exc)
            if pending is not None:
                message = (
                    f"Lottery {lottery_id} secret committed in block {pending.commit_block} "
                    f"but pending state not saved: {exc}"
                )
            elif closed:
                message = f"Lottery {lottery_id} closed but secret not committed: {exc}"
            return OperationResult(
                action="close_and_commit",
                outcome=Outcome.FAILED,
                message=message,
                lottery_id=lottery_id,
                tx_hashes=tx_hashes,
                pending=pending,
                alerts=[message],
            )

    async def reveal_and_draw(self, pending: PendingReveal) -> OperationResult:
        """Reveal the committed secret once the chain is past the commit block, then draw."""
        lottery_id = pending.lottery_id
        tx_hashes: List[str] = []

        try:
            if pending.stage is RevealStage.COMMITTED:
                head = await wait_for_block_after(
                    self._client,
                    pending.commit_block,
                    poll_interval=self._poll_interval,
                    timeout=self._reveal_timeout,
                )
                if head <= pending.commit_block:
                    raise OperatorError(f"Refusing to reveal at block {head} <= commit block {pending.commit_block}")

                receipt = await self._client.reveal_secret(lottery_id, secret_to_uint(pending.secret))
                tx_hashes.append(receipt.tx_hash)
                try:
                    self._store.mark_revealed(pending)
                except OSError as exc:
                    logger.error(f"Lottery {lottery_id}: could not record reveal in {self._store.path}: {exc}")
                logger.info(f"Lottery {lottery_id}: secret revealed in block {receipt.block_number}")
            else:
                logger.info(f"Lottery {lottery_id}: secret already revealed, drawing")

            logger.info(f"Lottery {lottery_id}: drawFinalNumberAndMakeLotteryClaimable")
            receipt = await self._client.draw_final_number(lottery_id, self._lottery.auto_injection)
            tx_hashes.append(receipt.tx_hash)
            self._store.clear()

            return OperationResult(
                action="reveal_and_draw",
                outcome=Outcome.COMPLETED,
                message=f"Lottery {lottery_id} drawn in block {receipt.block_number}",
                lottery_id=lottery_id,
                round_status=LotteryStatus.CLAIMABLE,
                tx_hashes=tx_hashes,
            )

        except Exception as exc:
            logger.error(f"reveal_and_draw failed for lottery {lottery_id} at stage {pending.stage.value}: {exc}")
            message = f"Lottery {lottery_id} {pending.stage.value}, reveal/draw failed: {exc}"
            return OperationResult(
                action="reveal_and_draw",
                outcome=Outcome.FAILED,
                message=message,
                lottery_id=lottery_id,
                round_status=LotteryStatus.CLOSE,
                tx_hashes=tx_hashes,
                pending=pending,
                alerts=[message],
            )

    async def start_next_round(self, now: Optional[int] = None) -> OperationResult:
        """Start a new round ending on the next alignment boundary, then check the balance."""
        now = self._now() if now is None else int(now)

        try:
            end_time = next_round_end_time(now, self._lottery.align, self._lottery.min_lead_seconds)
            logger.info(f"Starting new lottery ending at {end_time} (now={now})")
            receipt = await self._client.start_lottery(
                end_time,
                self._lottery.price_ticket_in_soy,
                self._lottery.discount_divisor,
                self._lottery.rewards_breakdown,
                self._lottery.treasury_fee,
            )

            alerts: List[str] = []
            address = self._client.operator_address
            balance = await self._client.get_balance(address)
            logger.info(f"Operator {address} balance: {balance}")
            if balance < self._low_balance_threshold:
                alerts.append(f"Low balance of Lottery Operator {address}: {balance}")

            return OperationResult(
                action="start_next_round",
                outcome=Outcome.COMPLETED,
                message=f"New lottery started, ends at {end_time}",
                round_status=LotteryStatus.OPEN,
                tx_hashes=[receipt.tx_hash],
                alerts=alerts,
            )

        except Exception as exc:
            logger.error(f"start_next_round failed: {exc}")
            return OperationResult(
                action="start_next_round",
                outcome=Outcome.FAILED,
                message=str(exc),
                alerts=[str(exc)],
            )

    async def run_cycle(self) -> List[OperationResult]:
        """Run every step the current round needs; stops at the first failure or notice."""
        results = [await self.close_and_commit()]
        first = results[0]
        if first.halts_cycle:
            return results

        if first.pending is not None:
            drawn = await self.reveal_and_draw(first.pending)
            results.append(drawn)
            if drawn.halts_cycle:
                return results
            results.append(await self.start_next_round())
        elif first.round_status == LotteryStatus.CLAIMABLE:
            logger.info(f"Lottery {first.lottery_id} is claimable but no new round was started")
            results.append(await self.start_next_round())

        return results


def collect_alerts(results: List[OperationResult]) -> List[str]:
    return [alert for result in results for alert in result.alerts]
