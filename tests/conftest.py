"""Pytest configuration and shared fixtures."""

from typing import AsyncGenerator

import aiohttp
import pytest

from ecompurchasing.client.rpc import RpcClient
from ecompurchasing.core.artifacts import Artifacts
from ecompurchasing.core.chain import LocalChain
from ecompurchasing.core.rpc_purchasing import RpcPurchasing
from ecompurchasing.core.simulated_purchasing import SimulatedPurchasing
from ecompurchasing.models.product import Product
from ecompurchasing.utils.config import Config
from ecompurchasing.utils.wei_conversion import WeiConverter

GAS_PRICE = 10**9  # 1 gwei


@pytest.fixture
def converter() -> WeiConverter:
    """Create a WeiConverter instance."""
    return WeiConverter()


@pytest.fixture
def chain() -> LocalChain:
    """Create a fresh local chain with a fixed gas price."""
    return LocalChain(gas_price=GAS_PRICE)


@pytest.fixture
def accounts(chain: LocalChain) -> list[str]:
    """Funded accounts of the local chain."""
    return chain.accounts


@pytest.fixture(autouse=True)
def no_default_account(monkeypatch):
    """Keep a DEFAULT_ACCOUNT from the environment out of the tests."""
    monkeypatch.setattr(Config, "DEFAULT_ACCOUNT", "")


@pytest.fixture
async def purchasing(converter: WeiConverter, chain: LocalChain) -> SimulatedPurchasing:
    """Create a migrated SimulatedPurchasing instance (three seeded products)."""
    backend = SimulatedPurchasing(converter, chain)
    backend._simulated_latency = 0
    await backend.migrate()
    return backend


@pytest.fixture
def artifacts(purchasing: SimulatedPurchasing) -> Artifacts:
    """Artifact registry bound to the simulated backend."""
    return Artifacts(purchasing)


@pytest.fixture
def test_product() -> Product:
    """Create a test product."""
    return Product(
        product_id=1,
        name="Wireless Headphones",
        price=10**17,
        stock=10,
    )


@pytest.fixture
async def rpc_client() -> AsyncGenerator[RpcClient, None]:
    """Create an RPC client for the configured node."""
    client = RpcClient()
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
async def live_purchasing(rpc_client: RpcClient, converter: WeiConverter) -> RpcPurchasing:
    """RpcPurchasing bound to a deployed contract; skips without a node."""
    try:
        await rpc_client.net_version()
    except (aiohttp.ClientError, OSError) as e:
        pytest.skip(f"No JSON-RPC node at {Config.RPC_URL}: {e}")

    backend = RpcPurchasing(rpc_client, converter)
    try:
        await backend.deployed(Config.CONTRACT_NAME)
    except Exception as e:
        pytest.skip(f"{Config.CONTRACT_NAME} not deployed: {e}")
    return backend


@pytest.fixture
def sample_product_values() -> list[tuple]:
    """getProducts() output as decoded from the ABI."""
    return [
        (1, "Wireless Headphones", 10**17, 10),
        (2, "Mechanical Keyboard", 2 * 10**17, 5),
        (3, "USB-C Hub", 5 * 10**16, 20),
    ]


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        # Add 'live' marker to tests in integration_live module
        if "integration_live" in item.nodeid:
            item.add_marker(pytest.mark.live)
            item.add_marker(pytest.mark.integration)
