"""Order model."""

from dataclasses import dataclass, field
from typing import Literal

from ..utils.timing import format_timestamp, get_timestamp_us

OrderStatus = Literal["pending", "placed", "failed"]


@dataclass
class Order:
    """Represents a purchase of one product unit."""

    product_id: int
    buyer: str
    amount: int  # Wei paid

    # Tracking
    order_id: int | None = None  # Assigned by the contract
    client_order_id: str | None = None
    status: OrderStatus = "pending"
    transaction_hash: str | None = None
    block_number: int | None = None
    block_timestamp: int | None = None  # Seconds, from the contract
    timestamp: int = field(default_factory=get_timestamp_us)

    @classmethod
    def from_contract(cls, values) -> "Order":
        """Create Order from the ABI tuple (id, productId, buyer, amount, timestamp)."""
        order_id, product_id, buyer, amount, block_timestamp = values
        return cls(
            product_id=int(product_id),
            buyer=buyer,
            amount=int(amount),
            order_id=int(order_id),
            status="placed",
            block_timestamp=int(block_timestamp),
        )

    @classmethod
    def from_event(cls, event) -> "Order":
        """Create Order from a decoded OrderPlaced log."""
        args = event.args
        return cls(
            product_id=int(args["productId"]),
            buyer=args["buyer"],
            amount=int(args["amount"]),
            order_id=int(args["orderId"]),
            status="placed",
        )

    def __str__(self) -> str:
        placed_at = (
            f" at {format_timestamp(self.block_timestamp)}" if self.block_timestamp else ""
        )
        return (
            f"Order[{self.status.upper()}]{placed_at}: "
            f"#{self.order_id or 'N/A'} product={self.product_id} "
            f"buyer={self.buyer} amount={self.amount} "
            f"(tx={self.transaction_hash or 'N/A'}, block={self.block_number or 'N/A'})"
        )
