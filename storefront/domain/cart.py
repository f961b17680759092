# storefront/domain/cart.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional


def to_decimal(value: Any) -> Decimal:
    return Decimal(str(value if value is not None else 0))


@dataclass
class Product:
    id: str
    name: str
    category: str
    price: Decimal
    stock: int
    images: List[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Product":
        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            category=row.get("category") or "",
            price=to_decimal(row.get("price")),
            stock=int(row.get("stock") or 0),
            images=list(row.get("images") or []),
        )


@dataclass
class CartLine:
    id: str
    user_id: str  # empty for guests
    product_id: str
    quantity: int
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    product: Optional[Product] = None

    @property
    def line_total(self) -> Decimal:
        if self.product is None:
            return Decimal("0.00")
        return self.product.price * self.quantity

    @classmethod
    def guest(cls, product_id: str, quantity: int, product: Product | None = None) -> "CartLine":
        return cls(
            id=guest_line_id(product_id),
            user_id="",
            product_id=product_id,
            quantity=quantity,
            product=product,
        )

    @classmethod
    def from_row(cls, row: Dict[str, Any], product: Product | None = None) -> "CartLine":
        created = row.get("created_at")
        if isinstance(created, str):
            created = datetime.fromisoformat(created.replace("Z", "+00:00"))
        return cls(
            id=str(row["id"]),
            user_id=str(row.get("user_id") or ""),
            product_id=str(row["product_id"]),
            quantity=int(row["quantity"]),
            created_at=created or datetime.now(timezone.utc),
            product=product,
        )


def guest_line_id(product_id: str) -> str:
    return f"guest_{product_id}"
