import pytest

from forward_relay.services.chain import ChainError
from forward_relay.services.receipts import ReceiptState, ReceiptWaiter
from tests.fakes import FakeChain


class SteppedClock:
    """Clock that advances only when the waiter sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _waiter(chain: FakeChain, clock: SteppedClock) -> ReceiptWaiter:
    return ReceiptWaiter(chain, poll_interval=2, timeout=120, clock=clock, sleep=clock.sleep)


@pytest.mark.asyncio
async def test_successful_receipt_is_confirmed(fake_chain: FakeChain) -> None:
    fake_chain.mine("0xaa", status=1)

    result = await _waiter(fake_chain, SteppedClock()).wait("0xaa")

    assert result.state is ReceiptState.CONFIRMED
    assert result.block_number == 42
    assert result.gas_used == 85_000


@pytest.mark.asyncio
async def test_failed_receipt_is_reverted(fake_chain: FakeChain) -> None:
    fake_chain.mine("0xaa", status=0)

    result = await _waiter(fake_chain, SteppedClock()).wait("0xaa")

    assert result.state is ReceiptState.REVERTED


@pytest.mark.asyncio
async def test_missing_receipt_times_out(fake_chain: FakeChain) -> None:
    clock = SteppedClock()

    result = await _waiter(fake_chain, clock).wait("0xaa")

    assert result.state is ReceiptState.TIMEOUT
    assert clock.now == 120
    assert len(clock.sleeps) == 60
    assert all(s == 2 for s in clock.sleeps)


@pytest.mark.asyncio
async def test_receipt_found_after_polling(fake_chain: FakeChain, mocker) -> None:
    clock = SteppedClock()
    receipt = {"status": 1, "blockNumber": 7, "gasUsed": 21_000}
    mocker.patch.object(
        fake_chain,
        "get_receipt",
        side_effect=[None, ChainError("eth_getTransactionReceipt failed: timeout"), receipt],
    )

    result = await _waiter(fake_chain, clock).wait("0xaa")

    assert result.state is ReceiptState.CONFIRMED
    assert result.block_number == 7
    assert clock.now == 4
