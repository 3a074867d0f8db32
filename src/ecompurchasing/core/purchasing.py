"""Contract instance surface shared by the simulated and RPC backends."""

import uuid
from abc import ABC, abstractmethod
from typing import Any

from eth_utils import to_checksum_address

from ..exceptions import ArtifactNotDeployed, TransactionReverted
from ..models.order import Order
from ..models.product import Product
from ..models.receipt import TransactionResult
from ..utils.config import Config
from ..utils.logger import logger
from ..utils.wei_conversion import WeiConverter


class PurchasingBackend(ABC):
    """Abstract base class for an EcommercePurchasing contract instance."""

    def __init__(self, converter: WeiConverter):
        """
        Initialize PurchasingBackend.

        Args:
            converter: Wei converter instance
        """
        self.converter = converter
        self.address: str | None = None
        self._orders: dict[str, Order] = {}  # tx hash (or client order id) -> order
        self._products: dict[int, Product] = {}  # product_id -> last seen

    # Backend specific

    @abstractmethod
    async def deployed(self, name: str) -> str:
        """
        Resolve and bind the deployed address of a contract.

        Args:
            name: Contract name

        Returns:
            Contract address

        Raises:
            ArtifactNotDeployed: No deployment on this network
        """
        pass

    @abstractmethod
    async def get_accounts(self) -> list[str]:
        """
        Get the accounts available for sending transactions.

        Returns:
            Checksummed addresses
        """
        pass

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        """
        Get the wei balance of an address.

        Args:
            address: Account or contract address

        Returns:
            Balance in wei
        """
        pass

    @abstractmethod
    async def _call(self, method: str, *args) -> Any:
        """Run a view method; raises TransactionReverted on revert."""
        pass

    @abstractmethod
    async def _transact(
        self, method: str, *args, value: int = 0, sender: str
    ) -> TransactionResult:
        """Send a transaction; a revert comes back as a failed receipt."""
        pass

    @abstractmethod
    async def snapshot(self) -> int:
        """Save chain state; returns a snapshot id."""
        pass

    @abstractmethod
    async def revert(self, snapshot_id: int) -> bool:
        """Restore chain state saved by snapshot()."""
        pass

    # Views

    async def get_products(self) -> list[Product]:
        """
        Get all listed products.

        Returns:
            Products in id order
        """
        values = await self._call("getProducts")
        products = [Product.from_contract(v) for v in values]
        for product in products:
            self.register_product(product)

        logger.info(f"Fetched {len(products)} products")
        return products

    async def get_product(self, product_id: int) -> Product:
        product = Product.from_contract(await self._call("getProduct", product_id))
        self.register_product(product)
        return product

    async def get_order(self, order_id: int) -> Order:
        values = await self._call("getOrder", order_id)
        order = Order.from_contract(values)
        order.buyer = to_checksum_address(order.buyer)
        return order

    async def get_order_count(self) -> int:
        return int(await self._call("getOrderCount"))

    async def get_orders(self, buyer: str | None = None) -> list[Order]:
        """
        Get on-chain orders.

        Args:
            buyer: Optional buyer address to filter by

        Returns:
            Orders in id order
        """
        if buyer is None:
            order_ids = range(1, await self.get_order_count() + 1)
        else:
            order_ids = await self._call(
                "getOrdersByBuyer", to_checksum_address(buyer)
            )

        return [await self.get_order(int(order_id)) for order_id in order_ids]

    async def get_owner(self) -> str:
        return to_checksum_address(await self._call("owner"))

    # Transactions

    async def place_order(
        self,
        product_id: int,
        price=None,
        *,
        value=None,
        sender: str | None = None,
    ) -> TransactionResult:
        """
        Buy one unit of a product.

        Both calling conventions are accepted:
        ``place_order(product.product_id, product.price)`` and
        ``place_order(product.product_id, value=wei, sender=address)``.

        Args:
            product_id: Product to buy
            price: Payment, positional form (wei or amount with unit)
            value: Payment, options form (wei or amount with unit)
            sender: Buyer account (default account if None)

        Returns:
            Transaction result; ``result.receipt.status`` is False on revert

        Raises:
            ValueError: ``price`` and ``value`` disagree
        """
        sender = await self._resolve_sender(sender)
        amount = await self._payment_for(product_id, price, value)

        order = Order(
            product_id=product_id,
            buyer=sender,
            amount=amount,
            client_order_id=uuid.uuid4().hex,
        )
        result = await self._transact("placeOrder", product_id, value=amount, sender=sender)

        order.transaction_hash = result.tx or None
        order.block_number = result.receipt.block_number

        if result.succeeded:
            placed = [log for log in result.logs if log.event == "OrderPlaced"]
            if placed:
                order.order_id = int(placed[0].args["orderId"])
            order.status = "placed"

            cached = self._products.get(product_id)
            if cached and cached.stock > 0:
                cached.stock -= 1

            logger.info(
                f"Order placed: product {product_id} for "
                f"{self.converter.format(amount)} by {sender} - Order ID: {order.order_id}"
            )
        else:
            order.status = "failed"
            logger.error(
                f"Order failed: product {product_id} by {sender} - "
                f"{result.receipt.revert_reason or 'reverted'}"
            )

        # Rejected before mining: no hash, track under the client order id
        self._orders[result.tx or order.client_order_id] = order
        return result

    async def add_product(
        self, name: str, price, stock: int, sender: str | None = None
    ) -> TransactionResult:
        """
        List a new product (owner only).

        Args:
            name: Product name
            price: Price (wei or amount with unit)
            stock: Units available
            sender: Owner account (default account if None)

        Returns:
            Transaction result
        """
        sender = await self._resolve_sender(sender)
        price_wei = self.converter.to_wei(price)
        result = await self._transact(
            "addProduct", name, price_wei, stock, sender=sender
        )

        if result.succeeded:
            logger.info(f"Product added: {name} @ {self.converter.format(price_wei)}")
        else:
            logger.error(f"Failed to add product {name}: {result.receipt.revert_reason}")
        return result

    async def withdraw(self, sender: str | None = None) -> TransactionResult:
        """
        Move the contract balance to the owner.

        Args:
            sender: Owner account (default account if None)

        Returns:
            Transaction result
        """
        sender = await self._resolve_sender(sender)
        result = await self._transact("withdraw", sender=sender)

        if result.succeeded:
            amount = sum(
                int(log.args["amount"]) for log in result.logs if log.event == "Withdrawal"
            )
            logger.info(f"Withdrew {self.converter.format(amount)} to {sender}")
        else:
            logger.error(f"Withdraw failed: {result.receipt.revert_reason}")
        return result

    # Client-side tracking

    def register_product(self, product: Product) -> None:
        self._products[product.product_id] = product

    def get_cached_product(self, product_id: int) -> Product | None:
        return self._products.get(product_id)

    def get_tracked_order(self, tx_hash: str) -> Order | None:
        """
        Get an order placed through this instance.

        Args:
            tx_hash: Transaction hash of the placeOrder call, or the client
                order id when the node rejected it before mining

        Returns:
            Order or None
        """
        return self._orders.get(tx_hash)

    def get_tracked_orders(self) -> list[Order]:
        return list(self._orders.values())

    async def reconcile_orders(self) -> dict[str, int]:
        """
        Check tracked orders against contract state.

        Orders that no longer exist on chain (e.g. after a snapshot revert)
        are marked failed.

        Returns:
            Dictionary with reconciliation statistics
        """
        stats = {"synced": 0, "missing": 0, "errors": 0}

        for tx_hash, order in list(self._orders.items()):
            if order.status != "placed" or order.order_id is None:
                continue

            try:
                on_chain = await self.get_order(order.order_id)
            except TransactionReverted:
                order.status = "failed"
                stats["missing"] += 1
                logger.info(f"Reconciled order {tx_hash}: no longer on chain")
                continue
            except Exception as e:
                logger.error(f"Error reconciling order {tx_hash}: {e}", exc_info=True)
                stats["errors"] += 1
                continue

            if on_chain.buyer == order.buyer and on_chain.product_id == order.product_id:
                order.block_timestamp = on_chain.block_timestamp
                stats["synced"] += 1
            else:
                order.status = "failed"
                stats["missing"] += 1
                logger.info(f"Reconciled order {tx_hash}: id taken by another order")

        logger.info(
            f"Order reconciliation complete: synced={stats['synced']}, "
            f"missing={stats['missing']}, errors={stats['errors']}"
        )
        return stats

    # Helpers

    def _require_address(self) -> str:
        if self.address is None:
            raise ArtifactNotDeployed("Contract instance is not bound to an address")
        return self.address

    async def _resolve_sender(self, sender: str | None) -> str:
        if sender:
            return to_checksum_address(sender)
        if Config.DEFAULT_ACCOUNT:
            return to_checksum_address(Config.DEFAULT_ACCOUNT)
        accounts = await self.get_accounts()
        return accounts[0]

    async def _payment_for(self, product_id: int, price, value) -> int:
        """Work out msg.value from the positional or options calling form."""
        if price is not None and value is not None:
            price_wei = self.converter.to_wei(price)
            value_wei = self.converter.to_wei(value)
            if price_wei != value_wei:
                raise ValueError(
                    f"Conflicting payment: price={price_wei} wei, value={value_wei} wei"
                )
            return value_wei

        if value is not None:
            return self.converter.to_wei(value)
        if price is not None:
            return self.converter.to_wei(price)

        try:
            product = await self.get_product(product_id)
        except TransactionReverted as e:
            # Let placeOrder revert on chain and report the failed receipt
            logger.warning(f"No price for product {product_id}: {e.reason}")
            return 0
        return product.price
