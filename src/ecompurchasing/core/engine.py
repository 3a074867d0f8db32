"""Engine that wires configuration, backend and artifacts together."""

from ..client.rpc import RpcClient
from ..models.product import Product
from ..models.receipt import TransactionResult
from ..utils.config import Config
from ..utils.logger import logger
from ..utils.wei_conversion import WeiConverter
from .artifacts import Artifacts
from .purchasing import PurchasingBackend
from .rpc_purchasing import RpcPurchasing
from .simulated_purchasing import SimulatedPurchasing


class PurchasingEngine:
    """Resolves the deployed EcommercePurchasing instance for the configured backend."""

    def __init__(self):
        # Validate configuration
        if not Config.validate():
            raise ValueError(
                "Invalid configuration - CHAIN_BACKEND must be 'simulated' or 'rpc' "
                "and RPC_URL is required for 'rpc'"
            )

        self.converter = WeiConverter()
        self.rpc_client: RpcClient | None = None

        # Initialize backend (simulated or rpc)
        if Config.CHAIN_BACKEND == "simulated":
            self.backend: PurchasingBackend = SimulatedPurchasing(self.converter)
            logger.info("Using SimulatedPurchasing on the in-process chain")
        else:
            self.rpc_client = RpcClient()
            self.backend = RpcPurchasing(self.rpc_client, self.converter)
            logger.info(f"Using RpcPurchasing against {Config.RPC_URL}")

        self.artifacts = Artifacts(self.backend)
        self.instance: PurchasingBackend | None = None
        self.products: list[Product] = []

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self) -> PurchasingBackend:
        """
        Connect, migrate when simulated, and resolve the deployed instance.

        Returns:
            Deployed contract instance
        """
        logger.info("Initializing purchasing engine...")

        if self.rpc_client is not None:
            await self.rpc_client.connect()

        if isinstance(self.backend, SimulatedPurchasing):
            await self.backend.migrate()

        self.instance = await self.artifacts.require(Config.CONTRACT_NAME).deployed()
        self.products = await self.instance.get_products()

        logger.info(
            f"Purchasing engine initialized: {Config.CONTRACT_NAME} at "
            f"{self.instance.address} with {len(self.products)} products"
        )
        return self.instance

    async def place_first_product_order(self, sender: str | None = None) -> TransactionResult:
        """Order the first listed product at its price."""
        if self.instance is None:
            await self.initialize()

        products = await self.instance.get_products()
        if not products:
            raise ValueError("No products listed")

        product = products[0]
        logger.info(f"Ordering {product}")
        return await self.instance.place_order(product.product_id, product.price, sender=sender)

    async def close(self) -> None:
        if self.rpc_client is not None:
            await self.rpc_client.close()
        logger.info("Purchasing engine closed")
