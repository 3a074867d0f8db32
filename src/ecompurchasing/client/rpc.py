"""JSON-RPC client for an Ethereum development node."""

import asyncio
import json
from typing import Any

import aiohttp

from ..exceptions import RpcError
from ..utils.config import Config
from ..utils.logger import logger


class RpcClient:
    """Async JSON-RPC 2.0 client (Ganache, truffle develop, Hardhat)."""

    def __init__(self, url: str | None = None):
        self.url = url or Config.RPC_URL
        self.session: aiohttp.ClientSession | None = None
        self._request_id = 0

    async def __aenter__(self):
        """Context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        await self.close()

    async def connect(self) -> None:
        """Create aiohttp session."""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=Config.RPC_TIMEOUT)
            self.session = aiohttp.ClientSession(timeout=timeout)
            logger.info(f"RPC client connected to {self.url}")

    async def close(self) -> None:
        """Close aiohttp session."""
        if self.session and not self.session.closed:
            await self.session.close()
            logger.info("RPC client closed")

    async def _request(self, method: str, params: list | None = None) -> Any:
        """
        Send a JSON-RPC request.

        Args:
            method: RPC method name
            params: Positional parameters

        Returns:
            The ``result`` member of the response

        Raises:
            RpcError: Node answered with an error object
            aiohttp.ClientError: On transport failure
        """
        if self.session is None:
            await self.connect()

        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        try:
            async with self.session.post(self.url, json=payload) as response:
                logger.debug(f"RPC request -> {method} {params}")

                try:
                    response_data = await response.json()
                except (aiohttp.ContentTypeError, json.JSONDecodeError):
                    response_text = await response.text()
                    logger.error(
                        f"RPC error: {response.status} - Non-JSON response: {response_text}"
                    )
                    raise aiohttp.ClientError(
                        f"RPC error {response.status}: {response_text[:100]}"
                    )

                if response.status >= 400 and "error" not in response_data:
                    raise aiohttp.ClientError(f"RPC error {response.status}")

                error = response_data.get("error")
                if error:
                    logger.debug(f"RPC {method} returned error: {error}")
                    raise RpcError(
                        error.get("code", -32000),
                        error.get("message", "Unknown error"),
                        error.get("data"),
                    )

                return response_data.get("result")

        except RpcError:
            raise
        except aiohttp.ClientError as e:
            logger.error(f"RPC request failed: {method} {self.url} - {e}")
            raise

    # Node info

    async def net_version(self) -> str:
        return await self._request("net_version")

    async def eth_accounts(self) -> list[str]:
        return await self._request("eth_accounts")

    async def eth_block_number(self) -> int:
        return int(await self._request("eth_blockNumber"), 16)

    async def eth_get_balance(self, address: str, block: str = "latest") -> int:
        return int(await self._request("eth_getBalance", [address, block]), 16)

    async def eth_get_code(self, address: str, block: str = "latest") -> str:
        return await self._request("eth_getCode", [address, block])

    # Calls and transactions

    async def eth_call(self, tx: dict[str, Any], block: str = "latest") -> str:
        return await self._request("eth_call", [tx, block])

    async def eth_send_transaction(self, tx: dict[str, Any]) -> str:
        """Send a transaction from an unlocked node account; returns its hash."""
        return await self._request("eth_sendTransaction", [tx])

    async def eth_get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        return await self._request("eth_getTransactionReceipt", [tx_hash])

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float | None = None,
        poll_interval: float | None = None,
    ) -> dict[str, Any]:
        """
        Poll until a transaction is mined.

        Args:
            tx_hash: Transaction hash
            timeout: Seconds to wait (Config.RECEIPT_TIMEOUT if None)
            poll_interval: Seconds between polls (Config.RECEIPT_POLL_INTERVAL if None)

        Returns:
            Raw receipt

        Raises:
            TimeoutError: Not mined within timeout
        """
        timeout = Config.RECEIPT_TIMEOUT if timeout is None else timeout
        poll_interval = (
            Config.RECEIPT_POLL_INTERVAL if poll_interval is None else poll_interval
        )

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            receipt = await self.eth_get_transaction_receipt(tx_hash)
            if receipt is not None:
                return receipt

            if loop.time() >= deadline:
                raise TimeoutError(f"Transaction {tx_hash} not mined after {timeout}s")

            await asyncio.sleep(poll_interval)

    # Ganache test helpers

    async def evm_snapshot(self) -> int:
        return int(await self._request("evm_snapshot"), 16)

    async def evm_revert(self, snapshot_id: int) -> bool:
        return bool(await self._request("evm_revert", [hex(snapshot_id)]))
