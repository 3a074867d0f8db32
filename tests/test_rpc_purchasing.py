"""Unit tests for RpcPurchasing with a mocked node."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from eth_abi import encode
from eth_utils import encode_hex, function_signature_to_4byte_selector

from ecompurchasing.client.abi import ERROR_SELECTOR, PRODUCT_TUPLE, event_topic
from ecompurchasing.client.rpc import RpcClient
from ecompurchasing.core.rpc_purchasing import RpcPurchasing
from ecompurchasing.exceptions import (
    ArtifactNotDeployed,
    ArtifactNotFound,
    RpcError,
    TransactionReverted,
)
from ecompurchasing.utils.config import Config
from ecompurchasing.utils.wei_conversion import WeiConverter

CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
BUYER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
TX_HASH = "0x" + "ab" * 32


def _word(abi_type: str, value) -> str:
    return encode_hex(encode([abi_type], [value]))


def _receipt(status: str = "0x1", logs: list | None = None) -> dict:
    return {
        "transactionHash": TX_HASH,
        "blockNumber": "0x7",
        "from": BUYER.lower(),
        "to": CONTRACT.lower(),
        "status": status,
        "gasUsed": "0x22ab0",
        "cumulativeGasUsed": "0x22ab0",
        "contractAddress": None,
        "logs": logs or [],
    }


def _order_placed_log(order_id: int, product_id: int, amount: int) -> dict:
    return {
        "address": CONTRACT.lower(),
        "topics": [
            event_topic("OrderPlaced"),
            _word("uint256", order_id),
            _word("uint256", product_id),
            _word("address", BUYER),
        ],
        "data": _word("uint256", amount),
        "logIndex": "0x0",
        "blockNumber": "0x7",
        "transactionHash": TX_HASH,
    }


@pytest.fixture
def mock_rpc() -> AsyncMock:
    """RpcClient double answering like Ganache."""
    client = AsyncMock(spec=RpcClient)
    client.eth_accounts.return_value = [BUYER.lower()]
    client.eth_get_code.return_value = "0x6080604052"
    client.net_version.return_value = "5777"
    client.eth_block_number.return_value = 9
    return client


@pytest.fixture
def rpc_purchasing(mock_rpc: AsyncMock, converter: WeiConverter) -> RpcPurchasing:
    backend = RpcPurchasing(mock_rpc, converter)
    backend.address = CONTRACT
    return backend


class TestRpcPurchasingViews:
    """Test suite for eth_call based views."""

    async def test_get_products(self, rpc_purchasing: RpcPurchasing, mock_rpc, sample_product_values):
        """Test getProducts output is decoded into products."""
        mock_rpc.eth_call.return_value = encode_hex(
            encode([f"{PRODUCT_TUPLE}[]"], [sample_product_values])
        )

        products = await rpc_purchasing.get_products()

        assert len(products) == 3
        assert products[0].name == "Wireless Headphones"
        assert products[0].price == 10**17
        assert products[2].stock == 20

        tx = mock_rpc.eth_call.call_args.args[0]
        assert tx["to"] == CONTRACT
        selector = function_signature_to_4byte_selector("getProducts()")
        assert tx["data"] == encode_hex(selector)

    async def test_call_revert(self, rpc_purchasing: RpcPurchasing, mock_rpc):
        """Test Error(string) revert data becomes TransactionReverted."""
        revert_data = encode_hex(ERROR_SELECTOR + encode(["string"], ["Product does not exist"]))
        mock_rpc.eth_call.side_effect = RpcError(-32000, "execution reverted", revert_data)

        with pytest.raises(TransactionReverted) as exc_info:
            await rpc_purchasing.get_product(99)

        assert exc_info.value.reason == "Product does not exist"

    async def test_call_other_error_propagates(self, rpc_purchasing: RpcPurchasing, mock_rpc):
        """Test non-revert node errors are re-raised untouched."""
        mock_rpc.eth_call.side_effect = RpcError(-32601, "Method not found")

        with pytest.raises(RpcError):
            await rpc_purchasing.get_products()

    async def test_get_order(self, rpc_purchasing: RpcPurchasing, mock_rpc):
        """Test getOrder tuples carry a checksummed buyer."""
        mock_rpc.eth_call.return_value = encode_hex(
            encode(
                ["(uint256,uint256,address,uint256,uint256)"],
                [(1, 2, BUYER, 2 * 10**17, 1700000000)],
            )
        )

        order = await rpc_purchasing.get_order(1)

        assert order.order_id == 1
        assert order.product_id == 2
        assert order.buyer == BUYER
        assert order.block_timestamp == 1700000000


class TestRpcPurchasingTransactions:
    """Test suite for eth_sendTransaction based calls."""

    async def test_place_order(self, rpc_purchasing: RpcPurchasing, mock_rpc):
        """Test a mined order yields status True and a decoded log."""
        mock_rpc.eth_send_transaction.return_value = TX_HASH
        mock_rpc.wait_for_receipt.return_value = _receipt(
            logs=[_order_placed_log(1, 1, 10**17)]
        )

        result = await rpc_purchasing.place_order(1, 10**17)

        assert result.receipt.status is True
        assert result.tx == TX_HASH
        assert result.receipt.block_number == 7
        assert result.logs[0].event == "OrderPlaced"
        assert result.logs[0].args == {
            "orderId": 1,
            "productId": 1,
            "buyer": BUYER,
            "amount": 10**17,
        }

        tx = mock_rpc.eth_send_transaction.call_args.args[0]
        assert tx["from"] == BUYER
        assert tx["to"] == CONTRACT
        assert tx["value"] == hex(10**17)
        assert tx["gas"] == hex(Config.GAS_LIMIT)
        selector = function_signature_to_4byte_selector("placeOrder(uint256)")
        assert tx["data"] == encode_hex(selector + encode(["uint256"], [1]))

        order = rpc_purchasing.get_tracked_order(TX_HASH)
        assert order.status == "placed"
        assert order.order_id == 1

    async def test_place_order_mined_with_failed_status(self, rpc_purchasing: RpcPurchasing, mock_rpc):
        """Test a receipt with status 0x0 gets its reason from an eth_call replay."""
        mock_rpc.eth_send_transaction.return_value = TX_HASH
        mock_rpc.wait_for_receipt.return_value = _receipt(status="0x0")
        mock_rpc.eth_call.return_value = encode_hex(
            ERROR_SELECTOR + encode(["string"], ["Product out of stock"])
        )

        result = await rpc_purchasing.place_order(1, value=10**17, sender=BUYER)

        assert result.receipt.status is False
        assert result.receipt.revert_reason == "Product out of stock"
        assert rpc_purchasing.get_tracked_order(TX_HASH).status == "failed"

        call, block = mock_rpc.eth_call.call_args.args
        assert block == hex(7)
        assert call["value"] == hex(10**17)
        assert "gas" not in call

    async def test_place_order_failed_status_replay_error(self, rpc_purchasing: RpcPurchasing, mock_rpc):
        """Test the replay reason is read from a Geth style revert error."""
        mock_rpc.eth_send_transaction.return_value = TX_HASH
        mock_rpc.wait_for_receipt.return_value = _receipt(status="0x0")
        mock_rpc.eth_call.side_effect = RpcError(3, "execution reverted: Incorrect payment amount")

        result = await rpc_purchasing.place_order(1, 1)

        assert result.receipt.revert_reason == "Incorrect payment amount"

    async def test_place_order_ganache_revert_error(self, rpc_purchasing: RpcPurchasing, mock_rpc):
        """Test Ganache v7 revert errors are turned into a failed receipt."""
        mock_rpc.eth_send_transaction.side_effect = RpcError(
            -32000,
            "VM Exception while processing transaction: revert Incorrect payment amount",
            {"hash": TX_HASH, "reason": "Incorrect payment amount", "message": "revert"},
        )
        mock_rpc.eth_get_transaction_receipt.return_value = _receipt(status="0x0")

        result = await rpc_purchasing.place_order(1, 1)

        assert result.receipt.status is False
        assert result.receipt.revert_reason == "Incorrect payment amount"
        assert result.tx == TX_HASH
        mock_rpc.eth_get_transaction_receipt.assert_awaited_once_with(TX_HASH)

    async def test_place_order_legacy_revert_error(self, rpc_purchasing: RpcPurchasing, mock_rpc):
        """Test ganache-cli v6 errors keyed by transaction hash."""
        mock_rpc.eth_send_transaction.side_effect = RpcError(
            -32000,
            "VM Exception while processing transaction: revert",
            {TX_HASH: {"error": "revert", "reason": "Product out of stock"}, "name": "RuntimeError"},
        )
        mock_rpc.eth_get_transaction_receipt.return_value = _receipt(status="0x0")

        result = await rpc_purchasing.place_order(1, 1)

        assert result.receipt.revert_reason == "Product out of stock"
        assert result.tx == TX_HASH

    async def test_place_order_revert_without_hash(self, rpc_purchasing: RpcPurchasing, mock_rpc):
        """Test a revert detected before mining still yields a receipt."""
        mock_rpc.eth_send_transaction.side_effect = RpcError(
            -32000, "execution reverted: Incorrect payment amount"
        )

        result = await rpc_purchasing.place_order(1, 1)

        assert result.receipt.status is False
        assert result.receipt.revert_reason == "Incorrect payment amount"
        assert result.receipt.block_number == 9
        assert result.tx == ""

        orders = rpc_purchasing.get_tracked_orders()
        assert len(orders) == 1
        assert orders[0].status == "failed"
        assert orders[0].transaction_hash is None
        assert rpc_purchasing.get_tracked_order(orders[0].client_order_id) is orders[0]

    async def test_send_other_error_propagates(self, rpc_purchasing: RpcPurchasing, mock_rpc):
        """Test node errors that are not reverts are raised."""
        mock_rpc.eth_send_transaction.side_effect = RpcError(-32000, "sender account not recognized")

        with pytest.raises(RpcError):
            await rpc_purchasing.place_order(1, 1)


class TestRpcPurchasingDeployment:
    """Test suite for deployed address resolution."""

    async def test_deployed_from_config(self, mock_rpc, converter, monkeypatch):
        """Test CONTRACT_ADDRESS takes precedence."""
        monkeypatch.setattr(Config, "CONTRACT_ADDRESS", CONTRACT.lower())
        backend = RpcPurchasing(mock_rpc, converter)

        address = await backend.deployed("EcommercePurchasing")

        assert address == CONTRACT
        assert backend.address == CONTRACT

    async def test_deployed_without_code(self, mock_rpc, converter, monkeypatch):
        """Test an address with no code is rejected."""
        monkeypatch.setattr(Config, "CONTRACT_ADDRESS", CONTRACT)
        mock_rpc.eth_get_code.return_value = "0x"

        with pytest.raises(ArtifactNotDeployed):
            await RpcPurchasing(mock_rpc, converter).deployed("EcommercePurchasing")

    async def test_deployed_from_artifact(self, mock_rpc, converter, monkeypatch, tmp_path):
        """Test the Truffle build artifact is read for the node's network."""
        monkeypatch.setattr(Config, "CONTRACT_ADDRESS", "")
        monkeypatch.setattr(Config, "ARTIFACTS_DIR", str(tmp_path))
        artifact = {
            "contractName": "EcommercePurchasing",
            "networks": {"5777": {"address": CONTRACT, "transactionHash": TX_HASH}},
        }
        (tmp_path / "EcommercePurchasing.json").write_text(json.dumps(artifact))

        address = await RpcPurchasing(mock_rpc, converter).deployed("EcommercePurchasing")

        assert address == CONTRACT

    async def test_artifact_network_mismatch(self, mock_rpc, converter, monkeypatch, tmp_path):
        """Test an artifact without an entry for the current network."""
        monkeypatch.setattr(Config, "CONTRACT_ADDRESS", "")
        monkeypatch.setattr(Config, "ARTIFACTS_DIR", str(tmp_path))
        (tmp_path / "EcommercePurchasing.json").write_text(json.dumps({"networks": {"1": {}}}))

        with pytest.raises(ArtifactNotDeployed, match="network"):
            await RpcPurchasing(mock_rpc, converter).deployed("EcommercePurchasing")

    async def test_artifact_missing(self, mock_rpc, converter, monkeypatch, tmp_path):
        """Test a missing build artifact."""
        monkeypatch.setattr(Config, "CONTRACT_ADDRESS", "")
        monkeypatch.setattr(Config, "ARTIFACTS_DIR", str(tmp_path))

        with pytest.raises(ArtifactNotFound):
            await RpcPurchasing(mock_rpc, converter).deployed("EcommercePurchasing")


class TestRpcClient:
    """Test suite for RpcClient helpers that need no node."""

    def test_initialization(self):
        """Test RpcClient initialization."""
        client = RpcClient()
        assert client.url == Config.RPC_URL
        assert client.session is None

    async def test_wait_for_receipt_polls(self):
        """Test polling until the receipt appears."""
        client = RpcClient("http://localhost:1")
        with patch.object(
            client, "eth_get_transaction_receipt", new_callable=AsyncMock
        ) as mock_receipt:
            mock_receipt.side_effect = [None, None, _receipt()]

            receipt = await client.wait_for_receipt(TX_HASH, timeout=5, poll_interval=0)

        assert receipt["transactionHash"] == TX_HASH
        assert mock_receipt.await_count == 3

    async def test_wait_for_receipt_timeout(self):
        """Test TimeoutError when the transaction is never mined."""
        client = RpcClient("http://localhost:1")
        with patch.object(
            client, "eth_get_transaction_receipt", new_callable=AsyncMock
        ) as mock_receipt:
            mock_receipt.return_value = None

            with pytest.raises(TimeoutError):
                await client.wait_for_receipt(TX_HASH, timeout=0, poll_interval=0)
