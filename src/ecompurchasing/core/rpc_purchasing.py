import json
import os
import re

from eth_utils import to_checksum_address

from ..client.abi import decode_log, decode_result, decode_revert_reason, encode_call
from ..client.rpc import RpcClient
from ..exceptions import ArtifactNotDeployed, ArtifactNotFound, RpcError, TransactionReverted
from ..models.receipt import Receipt, TransactionResult
from ..utils.config import Config
from ..utils.logger import logger
from ..utils.wei_conversion import WeiConverter
from .purchasing import PurchasingBackend

# "VM Exception while processing transaction: revert <reason>" (Ganache)
# "execution reverted: <reason>" (Geth, Hardhat)
REVERT_MESSAGE = re.compile(r"revert(?:ed)?:?\s*(.*)", re.IGNORECASE)


class RpcPurchasing(PurchasingBackend):
    """Contract instance on a node reached over JSON-RPC."""

    def __init__(self, rpc_client: RpcClient, converter: WeiConverter):
        """
        Initialize RpcPurchasing.

        Args:
            rpc_client: JSON-RPC client instance
            converter: Wei converter instance
        """
        super().__init__(converter)
        self.rpc_client = rpc_client
        self._accounts: list[str] | None = None

    async def deployed(self, name: str) -> str:
        """
        Resolve the deployed address.

        CONTRACT_ADDRESS wins; otherwise the Truffle build artifact entry for
        the node's network id is used.
        """
        address = Config.CONTRACT_ADDRESS or await self._address_from_artifact(name)

        code = await self.rpc_client.eth_get_code(address)
        if not code or code == "0x":
            raise ArtifactNotDeployed(f"No contract code at {address} for {name}")

        self.address = to_checksum_address(address)
        logger.info(f"Using {name} at {self.address}")
        return self.address

    async def _address_from_artifact(self, name: str) -> str:
        path = Config.get_artifact_path(name)
        if not os.path.exists(path):
            raise ArtifactNotFound(f"Could not find artifacts for {name} at {path}")

        with open(path) as f:
            artifact = json.load(f)

        network_id = await self.rpc_client.net_version()
        network = artifact.get("networks", {}).get(str(network_id))
        if not network or not network.get("address"):
            raise ArtifactNotDeployed(
                f"{name} has not been deployed to detected network (network/artifact mismatch)"
            )
        return network["address"]

    async def get_accounts(self) -> list[str]:
        if self._accounts is None:
            accounts = await self.rpc_client.eth_accounts()
            self._accounts = [to_checksum_address(a) for a in accounts]
        return self._accounts

    async def get_balance(self, address: str) -> int:
        return await self.rpc_client.eth_get_balance(to_checksum_address(address))

    async def _call(self, method: str, *args):
        tx = {"to": self._require_address(), "data": encode_call(method, *args)}
        try:
            raw = await self.rpc_client.eth_call(tx)
        except RpcError as e:
            _, reason = self._revert_details(e)
            if reason is None:
                raise
            raise TransactionReverted(reason) from e
        return decode_result(method, raw)

    async def _transact(
        self, method: str, *args, value: int = 0, sender: str
    ) -> TransactionResult:
        tx = {
            "from": to_checksum_address(sender),
            "to": self._require_address(),
            "data": encode_call(method, *args),
            "gas": hex(Config.GAS_LIMIT),
            "gasPrice": hex(Config.GAS_PRICE),
        }
        if value:
            tx["value"] = hex(value)

        try:
            tx_hash = await self.rpc_client.eth_send_transaction(tx)
        except RpcError as e:
            # Ganache rejects reverting transactions at the RPC layer by default
            tx_hash, reason = self._revert_details(e)
            if reason is None:
                raise
            logger.error(f"{method} reverted: {reason}")
            return TransactionResult.from_receipt(
                await self._failed_receipt(tx_hash, tx, reason)
            )

        receipt = self._parse_receipt(await self.rpc_client.wait_for_receipt(tx_hash))
        if not receipt.status:
            if receipt.revert_reason is None:
                receipt.revert_reason = await self._replay_revert_reason(tx, receipt.block_number)
            logger.error(f"{method} reverted: {receipt}")
        else:
            logger.debug(f"{method} mined: {receipt}")
        return TransactionResult.from_receipt(receipt)

    async def _failed_receipt(self, tx_hash: str | None, tx: dict, reason: str) -> Receipt:
        if tx_hash:
            raw = await self.rpc_client.eth_get_transaction_receipt(tx_hash)
            if raw is not None:
                receipt = self._parse_receipt(raw)
                receipt.revert_reason = reason
                return receipt

        # Not mined (eth_estimateGas style rejection)
        return Receipt(
            transaction_hash=tx_hash or "",
            block_number=await self.rpc_client.eth_block_number(),
            sender=tx["from"],
            to=tx["to"],
            status=False,
            gas_used=0,
            revert_reason=reason,
        )

    async def _replay_revert_reason(self, tx: dict, block_number: int) -> str:
        """
        Re-run a failed transaction as eth_call to recover its revert reason.

        Mined failures carry no reason in the receipt (Ganache 7 without
        vmErrorsOnRPCResponse, Geth).
        """
        call = {key: tx[key] for key in ("from", "to", "data", "value") if key in tx}
        try:
            raw = await self.rpc_client.eth_call(call, hex(block_number))
        except RpcError as e:
            _, reason = self._revert_details(e)
        else:
            reason = decode_revert_reason(raw)
        return reason or "revert"

    @staticmethod
    def _parse_receipt(raw: dict) -> Receipt:
        logs = [log for log in (decode_log(entry) for entry in raw.get("logs", [])) if log]
        return Receipt.from_rpc(raw, logs=logs)

    @staticmethod
    def _revert_details(error: RpcError) -> tuple[str | None, str | None]:
        """
        Pull transaction hash and revert reason out of a node error.

        Returns:
            (tx_hash, reason); reason is None when the error is not a revert
        """
        data = error.data
        tx_hash = None

        if isinstance(data, dict):
            tx_hash = data.get("hash")
            if tx_hash is None:
                # ganache-cli v6 keys the details by transaction hash
                for key, details in data.items():
                    if key.startswith("0x") and isinstance(details, dict):
                        tx_hash, data = key, details
                        break

        reason = decode_revert_reason(data)
        if reason is None:
            match = REVERT_MESSAGE.search(error.message)
            if match:
                reason = match.group(1).strip() or "revert"
        return tx_hash, reason

    async def snapshot(self) -> int:
        return await self.rpc_client.evm_snapshot()

    async def revert(self, snapshot_id: int) -> bool:
        self._accounts = None
        return await self.rpc_client.evm_revert(snapshot_id)
