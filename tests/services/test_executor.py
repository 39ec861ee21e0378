import asyncio

import pytest
from eth_abi import decode
from eth_account import Account

from forward_relay.models import FORWARD_TUPLE_TYPE, RelayRequest
from forward_relay.services.chain import ChainError
from forward_relay.services.errors import SubmissionReason
from forward_relay.services.executor import (
    EXECUTE_SIG,
    Executor,
    SubmissionFailure,
    Submitted,
    encode_execute,
)
from forward_relay.services.validation import AuthorizationValidator
from tests.fakes import HUB_ADDRESS, RELAYER_ADDRESS, TEST_PRIVATE_KEY, FakeChain, make_body


def _request(**kwargs) -> RelayRequest:
    return AuthorizationValidator().parse(make_body(**kwargs))


def _executor(chain: FakeChain) -> Executor:
    return Executor(
        chain,
        Account.from_key(TEST_PRIVATE_KEY),
        hub_address=HUB_ADDRESS,
        chain_id=80002,
        buffer_percent=20,
        default_gas_limit=500_000,
    )


def test_execute_call_encodes_forward_in_order() -> None:
    request = _request(nonce=5, space=2)
    data = encode_execute(request)

    assert EXECUTE_SIG.startswith("execute((address,address,uint256,uint32")
    forward, call_data, signature = decode([FORWARD_TUPLE_TYPE, "bytes", "bytes"], data[4:])
    assert forward[0].lower() == request.authorization.sender.lower()
    assert forward[3:5] == (2, 5)
    assert forward[7].lower() == RELAYER_ADDRESS.lower()
    assert call_data == request.encoded_call.call_data
    assert signature == request.encoded_call.signature


@pytest.mark.asyncio
async def test_gas_limit_adds_margin(fake_chain: FakeChain) -> None:
    fake_chain.estimate = 100_000
    assert await _executor(fake_chain).gas_limit(b"") == 120_000


@pytest.mark.asyncio
async def test_gas_limit_falls_back_to_default(fake_chain: FakeChain) -> None:
    fake_chain.estimate_error = ChainError("execution reverted")
    assert await _executor(fake_chain).gas_limit(b"") == 500_000


@pytest.mark.asyncio
async def test_submit_signs_zero_value_tx_from_relayer(fake_chain: FakeChain, mocker) -> None:
    executor = _executor(fake_chain)
    sign = mocker.spy(executor._account, "sign_transaction")

    result = await executor.submit(_request())

    assert isinstance(result, Submitted)
    assert result.tx_hash.startswith("0x")
    tx = sign.call_args.args[0]
    assert tx["to"] == HUB_ADDRESS
    assert tx["value"] == 0
    assert tx["chainId"] == 80002
    assert tx["gas"] == 120_000
    assert Account.recover_transaction(fake_chain.sent[0]) == RELAYER_ADDRESS


@pytest.mark.asyncio
async def test_concurrent_submissions_use_distinct_nonces(fake_chain: FakeChain, mocker) -> None:
    executor = _executor(fake_chain)
    sign = mocker.spy(executor._account, "sign_transaction")

    results = await asyncio.gather(*(executor.submit(_request(nonce=n)) for n in range(4)))

    assert all(isinstance(r, Submitted) for r in results)
    nonces = sorted(call.args[0]["nonce"] for call in sign.call_args_list)
    assert nonces == [0, 1, 2, 3]


@pytest.mark.asyncio
async def test_send_failure_is_reported_with_reason(fake_chain: FakeChain) -> None:
    fake_chain.send_error = ChainError(
        "eth_sendRawTransaction failed: insufficient funds for gas * price + value",
        reason=SubmissionReason.INSUFFICIENT_FUNDS,
    )

    result = await _executor(fake_chain).submit(_request())

    assert isinstance(result, SubmissionFailure)
    assert result.reason is SubmissionReason.INSUFFICIENT_FUNDS
    assert "insufficient funds" in result.detail
