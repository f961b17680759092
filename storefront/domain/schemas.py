# storefront/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.domain.checkout import Stage
from storefront.utils.settings import DEFAULT_COUNTRY


class NoticeOut(BaseModel):
    level: str
    message: str


class ProductOut(BaseModel):
    """Product joined onto a cart line."""

    id: str
    name: str
    category: str
    price: Decimal
    stock: int
    images: List[str] = []

    model_config = ConfigDict(from_attributes=True)


class CartLineOut(BaseModel):
    id: str
    user_id: str
    product_id: str
    quantity: int
    created_at: datetime
    product: Optional[ProductOut] = None

    model_config = ConfigDict(from_attributes=True)


class CartOut(BaseModel):
    """Cart of the calling session."""

    items: List[CartLineOut]
    count: int
    subtotal: Decimal
    notices: List[NoticeOut] = []


class ItemIn(BaseModel):
    product_id: str = Field(..., min_length=1, description="Product id")
    quantity: int = Field(1, gt=0, description="Quantity, must be > 0")


class QuantityIn(BaseModel):
    # 0 or less removes the line
    quantity: int


class SignInIn(BaseModel):
    email: str = ""
    password: str = ""


class SessionOut(BaseModel):
    session_id: str
    user_id: str
    email: Optional[str] = None
    access_token: Optional[str] = None
    notices: List[NoticeOut] = []


class GuestEmailIn(BaseModel):
    email: str = ""


class ShippingIn(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = DEFAULT_COUNTRY


class DeliveryIn(BaseModel):
    method_id: str


class DeliveryMethodOut(BaseModel):
    id: str
    name: str
    company: str
    price: Decimal
    description: str

    model_config = ConfigDict(from_attributes=True)


class CheckoutOut(BaseModel):
    """Where the session is in checkout and what it will cost."""

    stage: Stage
    email: str
    shipping: ShippingIn
    selected_address_id: Optional[str] = None
    delivery_method: DeliveryMethodOut
    delivery_methods: List[DeliveryMethodOut]
    processing_payment: bool
    payment_reference: Optional[str] = None
    subtotal: Decimal
    delivery: Decimal
    tax: Decimal
    total: Decimal
    notices: List[NoticeOut] = []

    model_config = ConfigDict(from_attributes=True)


class AddressOut(BaseModel):
    id: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    address: str
    city: str
    state: str
    zip_code: str
    country: str
    is_default: bool


class PaymentInitOut(BaseModel):
    reference: str
    authorization_url: str
    access_code: str = ""
    email: str
    amount: Decimal
    notices: List[NoticeOut] = []


class PaymentCallbackIn(BaseModel):
    reference: str


class ConfirmationOut(BaseModel):
    order_id: str
    order_number: str
    order_reference: Optional[str] = None
    payment_reference: str
    shipping: ShippingIn
    items: List[Dict[str, Any]]
    total: Decimal
    delivery_method: str


class PaymentOutcomeOut(BaseModel):
    status: str  # success, cancelled
    confirmation: Optional[ConfirmationOut] = None
    notices: List[NoticeOut] = []


class OrderItemOut(BaseModel):
    product_id: str
    quantity: int
    price: Decimal


class OrderOut(BaseModel):
    id: str
    user_id: Optional[str] = None
    order_number: str
    total_amount: Decimal
    status: str
    shipping_address: Dict[str, Any]
    payment_reference: Optional[str] = None
    delivery_method: Optional[str] = None
    created_at: datetime
    items: List[OrderItemOut] = []
