# storefront/domain/checkout.py
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import ClassVar, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from storefront.domain.cart import CartLine
from storefront.utils.settings import DEFAULT_COUNTRY, TAX_RATE

CENTS = Decimal("0.01")


class Stage(str, Enum):
    IDENTIFY = "identify"
    SHIPPING = "shipping"
    DELIVERY = "delivery"
    PAYMENT = "payment"


@dataclass(frozen=True)
class DeliveryMethod:
    id: str
    name: str
    company: str
    price: Decimal
    description: str


DELIVERY_METHODS: List[DeliveryMethod] = [
    DeliveryMethod("gig", "GIG Logistics", "GIG Logistics", Decimal("8000"), "Standard delivery"),
    DeliveryMethod("guo", "GUO Logistics", "GUO Logistics", Decimal("4000"), "Standard delivery"),
    DeliveryMethod("abuja", "*Locations Within Abuja", "Local Delivery", Decimal("3000"), "Within Abuja"),
    DeliveryMethod("pickup", "Pick-Up (Free)", "Store Pickup", Decimal("0"), "available within Abuja"),
]


def find_delivery_method(method_id: str | None) -> Optional[DeliveryMethod]:
    return next((m for m in DELIVERY_METHODS if m.id == method_id), None)


class ShippingInfo(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = DEFAULT_COUNTRY

    REQUIRED: ClassVar[Tuple[str, ...]] = ("first_name", "last_name", "email", "phone", "address", "city", "state")

    def missing_fields(self) -> List[str]:
        return [name for name in self.REQUIRED if not getattr(self, name).strip()]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def snapshot(self) -> dict:
        """Copy stored on the order so later address edits never touch it."""
        return {
            "name": self.full_name,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "country": self.country,
        }


class CheckoutState(BaseModel):
    stage: Stage = Stage.IDENTIFY
    email: str = ""
    shipping: ShippingInfo = Field(default_factory=ShippingInfo)
    selected_address_id: Optional[str] = None
    delivery_id: str = DELIVERY_METHODS[0].id
    payment_reference: Optional[str] = None
    processing_payment: bool = False

    @property
    def delivery_method(self) -> DeliveryMethod:
        return find_delivery_method(self.delivery_id) or DELIVERY_METHODS[0]


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    delivery: Decimal
    tax: Decimal
    total: Decimal


def priced_lines(lines: Iterable[CartLine]) -> List[CartLine]:
    #lines whose product was deleted stay in the cart but are never charged
    return [line for line in lines if line.product is not None]


def compute_totals(lines: Iterable[CartLine], delivery: DeliveryMethod, tax_rate: Decimal = TAX_RATE) -> Totals:
    subtotal = sum((line.line_total for line in priced_lines(lines)), Decimal("0.00"))
    tax = (subtotal * tax_rate).quantize(CENTS, rounding=ROUND_HALF_UP)
    total = subtotal + delivery.price + tax
    return Totals(
        subtotal=subtotal.quantize(CENTS),
        delivery=delivery.price.quantize(CENTS),
        tax=tax,
        total=total.quantize(CENTS),
    )
