import asyncio

import pytest

from conftest import FakeBlockchainClient, make_round
from soy_operator.lottery.errors import RevealTimeoutError
from soy_operator.lottery.scheduler import next_round_end_time, wait_for_block_after


def test_end_time_rounds_up_to_next_boundary():
    assert next_round_end_time(100, 7200) == 7200


def test_end_time_adds_a_period_when_less_than_an_hour_remains():
    # 7200 - 4000 = 3200 < 3600
    assert next_round_end_time(4000, 7200) == 14400


def test_end_time_on_a_boundary_moves_to_the_next_one():
    assert next_round_end_time(7200, 7200) == 14400


@pytest.mark.parametrize("align", [600, 3600, 7200, 86400])
@pytest.mark.parametrize("now", [0, 1, 3599, 3600, 7199, 1_700_000_123])
def test_end_time_is_aligned_and_at_least_an_hour_ahead(now, align):
    end_time = next_round_end_time(now, align)

    assert end_time > now
    assert end_time % align == 0
    assert end_time - now >= 3600
    # the earliest boundary satisfying both
    assert end_time - align - now < 3600 or end_time - align <= now


def test_end_time_rejects_non_positive_alignment():
    with pytest.raises(ValueError):
        next_round_end_time(100, 0)


def test_wait_returns_first_block_past_commit():
    client = FakeBlockchainClient(make_round(), blocks=[10, 10, 11, 12])

    head = asyncio.run(wait_for_block_after(client, 10, poll_interval=0, timeout=1))

    assert head == 11
    assert client.blocks == [12]


def test_wait_times_out_when_chain_stalls():
    client = FakeBlockchainClient(make_round(), block_number=10)

    with pytest.raises(RevealTimeoutError) as excinfo:
        asyncio.run(wait_for_block_after(client, 10, poll_interval=0.01, timeout=0.05))

    assert excinfo.value.commit_block == 10
    assert excinfo.value.last_block == 10


def test_wait_can_be_cancelled():
    client = FakeBlockchainClient(make_round(), block_number=10)

    async def scenario():
        task = asyncio.create_task(wait_for_block_after(client, 10, poll_interval=0.01, timeout=None))
        await asyncio.sleep(0.03)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
