"""
Round timing: end-time alignment and waiting for the reveal block
"""

import asyncio
import time
from typing import Optional, Protocol

from soy_operator.lottery.errors import RevealTimeoutError
from soy_operator.utils.logger import get_logger

logger = get_logger(__name__)

ONE_HOUR = 3600


class BlockSource(Protocol):
    async def get_block_number(self) -> int:
        ...


def next_round_end_time(now: int, align: int, min_lead: int = ONE_HOUR) -> int:
    """Return the end time for a round started at `now`.

    Rounds up to the next multiple of `align`, then pushes whole `align`
    periods until the round lasts at least `min_lead` seconds.
    """
    if align <= 0:
        raise ValueError(f"align must be positive, got {align}")
    now = int(now)
    end_time = (now // align + 1) * align
    while end_time - now < min_lead:
        end_time += align
    return end_time


async def wait_for_block_after(
    client: BlockSource,
    block_number: int,
    poll_interval: float = 10.0,
    timeout: Optional[float] = 600.0,
) -> int:
    """Poll until the chain head is past `block_number` and return the head.

    Raises RevealTimeoutError when `timeout` seconds pass first. Cancelling
    the awaiting task stops the polling.
    """
    last_seen: Optional[int] = None

    async def _poll() -> int:
        nonlocal last_seen
        while True:
            last_seen = await client.get_block_number()
            logger.info("Waiting for block after %s, latest block %s", block_number, last_seen)
            if last_seen > block_number:
                return last_seen
            await asyncio.sleep(poll_interval)

    started = time.monotonic()
    try:
        head = await asyncio.wait_for(_poll(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise RevealTimeoutError(block_number, last_seen, timeout or 0.0) from exc
    logger.info("Block %s is past commit block %s after %.1fs", head, block_number, time.monotonic() - started)
    return head
