# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from tests.fakes import HUB_ADDRESS, TARGET_CONTRACT, TEST_PRIVATE_KEY, FakeChain

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("RPC_URL", "http://127.0.0.1:8545")
os.environ.setdefault("RELAYER_PRIVATE_KEY", TEST_PRIVATE_KEY)
os.environ.setdefault("HUB_ADDRESS", HUB_ADDRESS)
os.environ.setdefault("TARGET_CONTRACT", TARGET_CONTRACT)

from forward_relay.core.settings import Settings
from forward_relay.main import app as fastapi_app
from forward_relay.services.pipeline import RelayPipeline, build_pipeline
from forward_relay.services.receipts import ReceiptWaiter


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return Settings()


@pytest.fixture()
def fake_chain() -> FakeChain:
    return FakeChain()


@pytest.fixture()
def make_pipeline(
    test_settings: Settings, fake_chain: FakeChain
) -> Callable[..., RelayPipeline]:
    def _make(**overrides: Any) -> RelayPipeline:
        config = test_settings.model_copy(update=overrides)
        pipeline = build_pipeline(config, chain=fake_chain)
        pipeline.waiter = ReceiptWaiter(fake_chain, poll_interval=0.01, timeout=0.05)
        return pipeline

    return _make


@pytest.fixture()
def pipeline(make_pipeline: Callable[..., RelayPipeline]) -> RelayPipeline:
    return make_pipeline()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest_asyncio.fixture()
async def client(app: FastAPI, pipeline: RelayPipeline) -> AsyncIterator[AsyncClient]:
    app.state.pipeline = pipeline
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.state.pipeline = None
