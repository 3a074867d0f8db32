"""Product model."""

from dataclasses import dataclass

from ..utils.wei_conversion import WeiConverter


@dataclass
class Product:
    """Represents a product listed by the purchasing contract."""

    product_id: int
    name: str
    price: int  # Price in wei
    stock: int = 0  # Units still available

    @property
    def is_available(self) -> bool:
        return self.stock > 0

    @classmethod
    def from_contract(cls, values) -> "Product":
        """Create Product from the ABI tuple (id, name, price, stock)."""
        product_id, name, price, stock = values
        return cls(
            product_id=int(product_id),
            name=str(name),
            price=int(price),
            stock=int(stock),
        )

    @classmethod
    def from_dict(cls, data: dict, converter: WeiConverter | None = None) -> "Product":
        """Create Product from a dict.

        ``price`` may be wei (int or numeric string) or carry a unit,
        e.g. ``"0.1 ether"``.
        """
        converter = converter or WeiConverter()
        return cls(
            product_id=int(data.get("id", data.get("product_id", 0))),
            name=data.get("name", ""),
            price=converter.to_wei(data["price"]),
            stock=int(data.get("stock", 0)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.product_id,
            "name": self.name,
            "price": self.price,
            "stock": self.stock,
        }

    def __str__(self) -> str:
        return f"Product #{self.product_id}: {self.name} @ {self.price} wei (stock={self.stock})"
