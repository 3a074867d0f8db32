"""EcommercePurchasing contract logic executed by the local chain."""

from dataclasses import dataclass, field

from ..exceptions import Revert
from ..models.order import Order
from ..models.product import Product
from ..models.receipt import EventLog

CONTRACT_NAME = "EcommercePurchasing"

# Products seeded by the deployment migration: (name, price in wei, stock)
SEED_PRODUCTS: list[tuple[str, int, int]] = [
    ("Wireless Headphones", 10**17, 10),  # 0.1 ether
    ("Mechanical Keyboard", 2 * 10**17, 5),  # 0.2 ether
    ("USB-C Hub", 5 * 10**16, 20),  # 0.05 ether
]


def require(condition: bool, reason: str) -> None:
    """Abort the current call with ``reason`` unless ``condition`` holds."""
    if not condition:
        raise Revert(reason)


@dataclass
class CallContext:
    """Message and block data visible to contract code."""

    sender: str
    value: int
    timestamp: int
    address: str
    balance: int = 0  # Contract balance, msg.value included
    events: list[EventLog] = field(default_factory=list)
    transfers: list[tuple[str, int]] = field(default_factory=list)

    def emit(self, event: str, **args) -> None:
        self.events.append(
            EventLog(
                event=event,
                args=args,
                address=self.address,
                log_index=len(self.events),
            )
        )

    def transfer(self, to: str, amount: int) -> None:
        """Queue a payment out of the contract; applied by the chain on success."""
        require(amount <= self.balance, "Insufficient contract balance")
        self.balance -= amount
        self.transfers.append((to, amount))


class EcommercePurchasingContract:
    """Product catalogue that sells one unit per payable placeOrder call.

    Methods are dispatched by their ABI name through ``ABI_METHODS``. Views
    never modify storage; ``placeOrder`` is the only payable method.
    """

    ABI_METHODS = {
        "owner": "owner_address",
        "getProducts": "get_products",
        "getProduct": "get_product",
        "getOrder": "get_order",
        "getOrderCount": "get_order_count",
        "getOrdersByBuyer": "get_orders_by_buyer",
        "placeOrder": "place_order",
        "addProduct": "add_product",
        "withdraw": "withdraw",
    }
    VIEW_METHODS = frozenset(
        {
            "owner",
            "getProducts",
            "getProduct",
            "getOrder",
            "getOrderCount",
            "getOrdersByBuyer",
        }
    )
    PAYABLE_METHODS = frozenset({"placeOrder"})

    # Gas charged per call, close to what the Solidity build reports
    DEPLOY_GAS = 1_450_000
    GAS_COSTS = {
        "placeOrder": 142_000,
        "addProduct": 98_000,
        "withdraw": 36_000,
    }
    DEFAULT_GAS = 50_000

    def __init__(self, ctx: CallContext, products=()):
        self.owner = ctx.sender
        self.products: list[Product] = []
        self.orders: list[Order] = []
        self.orders_by_buyer: dict[str, list[int]] = {}

        for name, price, stock in products:
            self._add_product(ctx, name, price, stock)

    def dispatch(self, ctx: CallContext, method: str, *args):
        """Run an ABI method by name."""
        require(method in self.ABI_METHODS, f"Unknown method {method}")
        if ctx.value and method not in self.PAYABLE_METHODS:
            raise Revert("Function is not payable")
        return getattr(self, self.ABI_METHODS[method])(ctx, *args)

    def gas_for(self, method: str) -> int:
        return self.GAS_COSTS.get(method, self.DEFAULT_GAS)

    # Views

    def owner_address(self, ctx: CallContext) -> str:
        return self.owner

    def get_products(self, ctx: CallContext) -> list[tuple]:
        return [self._product_tuple(p) for p in self.products]

    def get_product(self, ctx: CallContext, product_id: int) -> tuple:
        return self._product_tuple(self._product(product_id))

    def get_order(self, ctx: CallContext, order_id: int) -> tuple:
        require(1 <= order_id <= len(self.orders), "Order does not exist")
        order = self.orders[order_id - 1]
        return (
            order.order_id,
            order.product_id,
            order.buyer,
            order.amount,
            order.block_timestamp,
        )

    def get_order_count(self, ctx: CallContext) -> int:
        return len(self.orders)

    def get_orders_by_buyer(self, ctx: CallContext, buyer: str) -> list[int]:
        return list(self.orders_by_buyer.get(buyer, []))

    # Transactions

    def place_order(self, ctx: CallContext, product_id: int) -> int:
        product = self._product(product_id)
        require(product.stock > 0, "Product out of stock")
        require(ctx.value == product.price, "Incorrect payment amount")

        product.stock -= 1
        order = Order(
            product_id=product.product_id,
            buyer=ctx.sender,
            amount=ctx.value,
            order_id=len(self.orders) + 1,
            status="placed",
            block_timestamp=ctx.timestamp,
        )
        self.orders.append(order)
        self.orders_by_buyer.setdefault(ctx.sender, []).append(order.order_id)

        ctx.emit(
            "OrderPlaced",
            orderId=order.order_id,
            productId=product.product_id,
            buyer=ctx.sender,
            amount=ctx.value,
        )
        return order.order_id

    def add_product(self, ctx: CallContext, name: str, price: int, stock: int) -> int:
        require(ctx.sender == self.owner, "Only owner")
        return self._add_product(ctx, name, price, stock)

    def withdraw(self, ctx: CallContext) -> int:
        require(ctx.sender == self.owner, "Only owner")
        amount = ctx.balance
        require(amount > 0, "Nothing to withdraw")
        ctx.transfer(self.owner, amount)
        ctx.emit("Withdrawal", owner=self.owner, amount=amount)
        return amount

    # Internals

    def _add_product(self, ctx: CallContext, name: str, price: int, stock: int) -> int:
        require(price > 0, "Price must be positive")
        require(stock >= 0, "Stock must not be negative")
        product = Product(
            product_id=len(self.products) + 1,
            name=name,
            price=price,
            stock=stock,
        )
        self.products.append(product)
        ctx.emit(
            "ProductAdded",
            productId=product.product_id,
            name=name,
            price=price,
        )
        return product.product_id

    def _product(self, product_id: int) -> Product:
        require(1 <= product_id <= len(self.products), "Product does not exist")
        return self.products[product_id - 1]

    @staticmethod
    def _product_tuple(product: Product) -> tuple:
        return (product.product_id, product.name, product.price, product.stock)
