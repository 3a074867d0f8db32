import asyncio

from eth_utils import to_checksum_address

from ..exceptions import ArtifactNotDeployed, TransactionReverted
from ..models.receipt import TransactionResult
from ..utils.logger import logger
from ..utils.wei_conversion import WeiConverter
from .chain import LocalChain
from .contract import CONTRACT_NAME, SEED_PRODUCTS, EcommercePurchasingContract
from .purchasing import PurchasingBackend


class SimulatedPurchasing(PurchasingBackend):
    """Contract instance on the in-process chain."""

    def __init__(self, converter: WeiConverter, chain: LocalChain | None = None):
        """
        Initialize SimulatedPurchasing.

        Args:
            converter: Wei converter instance
            chain: Chain to run on (a fresh LocalChain if None)
        """
        super().__init__(converter)
        self.chain = chain or LocalChain()
        self._simulated_latency = 0.01  # 10ms simulated latency
        self._deployments: dict[str, str] = {}

    async def migrate(
        self,
        products: list[tuple[str, int, int]] | None = None,
        deployer: str | None = None,
    ) -> str:
        """
        Deploy the contract and seed its catalogue.

        Args:
            products: (name, price in wei, stock) tuples; the default seeds three
            deployer: Deploying account, becomes owner (accounts[0] if None)

        Returns:
            Contract address
        """
        products = SEED_PRODUCTS if products is None else products
        deployer = deployer or self.chain.accounts[0]

        receipt = self.chain.deploy(EcommercePurchasingContract, deployer, products)
        self._deployments[CONTRACT_NAME] = receipt.contract_address
        self.address = receipt.contract_address

        logger.info(
            f"[SIM] Migrated {CONTRACT_NAME} at {self.address} with {len(products)} products"
        )
        return self.address

    async def deployed(self, name: str) -> str:
        address = self._deployments.get(name)
        if address is None:
            raise ArtifactNotDeployed(f"{name} has not been deployed to the local chain")

        self.address = address
        return address

    async def get_accounts(self) -> list[str]:
        return list(self.chain.accounts)

    async def get_balance(self, address: str) -> int:
        return self.chain.get_balance(address)

    async def _call(self, method: str, *args):
        await asyncio.sleep(self._simulated_latency)
        return self.chain.call(self._require_address(), method, *args)

    async def _transact(
        self, method: str, *args, value: int = 0, sender: str
    ) -> TransactionResult:
        # Simulate network latency
        await asyncio.sleep(self._simulated_latency)

        try:
            receipt = self.chain.transact(
                to_checksum_address(sender),
                self._require_address(),
                method,
                *args,
                value=value,
            )
        except TransactionReverted as e:
            logger.error(f"[SIM] {method} reverted: {e.reason}")
            receipt = e.receipt

        logger.info(f"[SIM] {method} mined: {receipt}")
        return TransactionResult.from_receipt(receipt)

    async def snapshot(self) -> int:
        return self.chain.snapshot()

    async def revert(self, snapshot_id: int) -> bool:
        return self.chain.revert(snapshot_id)
