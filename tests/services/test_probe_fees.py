import pytest

from forward_relay.models import Authorization
from forward_relay.services.chain import ChainError
from forward_relay.services.errors import ErrorKind, RelayError
from forward_relay.services.fees import FeePolicyGuard
from forward_relay.services.probe import StatusProbe
from tests.fakes import GWEI, HUB_ADDRESS, RELAYER_ADDRESS, SENDER, TARGET_CONTRACT, FakeChain


def _authorization(nonce: int = 1, space: int = 0) -> Authorization:
    return Authorization(
        sender=SENDER,
        to=TARGET_CONTRACT,
        value=0,
        space=space,
        nonce=nonce,
        deadline=2**40,
        data_hash=b"\x00" * 32,
        caller=RELAYER_ADDRESS,
    )


def _probe(chain: FakeChain, **kwargs) -> StatusProbe:
    return StatusProbe(chain, target_contract=TARGET_CONTRACT, hub_address=HUB_ADDRESS, **kwargs)


@pytest.mark.asyncio
async def test_probe_passes_fresh_sender(fake_chain: FakeChain) -> None:
    await _probe(fake_chain).check(_authorization())
    assert [to for to, _ in fake_chain.calls] == [TARGET_CONTRACT, HUB_ADDRESS, HUB_ADDRESS]


@pytest.mark.asyncio
async def test_completed_sender_is_rejected(fake_chain: FakeChain) -> None:
    fake_chain.completed.add(SENDER.lower())

    with pytest.raises(RelayError) as exc:
        await _probe(fake_chain).check(_authorization())
    assert exc.value.kind is ErrorKind.ALREADY_COMPLETED


@pytest.mark.asyncio
async def test_hub_caller_allowlist(fake_chain: FakeChain) -> None:
    fake_chain.allowed_callers = set()

    with pytest.raises(RelayError) as exc:
        await _probe(fake_chain).check(_authorization())
    assert exc.value.kind is ErrorKind.INVALID_CALLER

    await _probe(fake_chain, check_caller_allowlist=False).check(_authorization())


@pytest.mark.asyncio
async def test_used_hub_nonce_is_duplicate(fake_chain: FakeChain) -> None:
    fake_chain.used_nonces.add((SENDER.lower(), 2, 9))

    with pytest.raises(RelayError) as exc:
        await _probe(fake_chain).check(_authorization(nonce=9, space=2))
    assert exc.value.kind is ErrorKind.DUPLICATE_REQUEST

    await _probe(fake_chain).check(_authorization(nonce=9, space=3))


@pytest.mark.asyncio
async def test_probe_propagates_rpc_failure(fake_chain: FakeChain) -> None:
    fake_chain.call_error = ChainError("eth_call failed: connection refused")

    with pytest.raises(ChainError):
        await _probe(fake_chain).check(_authorization())


@pytest.mark.asyncio
async def test_fee_at_ceiling_is_allowed(fake_chain: FakeChain) -> None:
    fake_chain.gas_price_wei = 100 * GWEI
    guard = FeePolicyGuard(fake_chain, max_gas_price_wei=100 * GWEI)

    assert await guard.check() == 100 * GWEI


@pytest.mark.asyncio
async def test_fee_above_ceiling_is_rejected(fake_chain: FakeChain) -> None:
    fake_chain.gas_price_wei = 100 * GWEI + 1
    guard = FeePolicyGuard(fake_chain, max_gas_price_wei=100 * GWEI)

    with pytest.raises(RelayError) as exc:
        await guard.check()
    assert exc.value.kind is ErrorKind.FEE_TOO_HIGH
