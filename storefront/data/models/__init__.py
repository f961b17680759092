#import all models so SQLAlchemy registers them in Base.metadata

from storefront.data.models.product import ProductModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.shipping_address import ShippingAddressModel
from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.order_number_counter import OrderNumberCounterModel
from storefront.data.models.analytics_event import AnalyticsEventModel

__all__ = [
    "ProductModel",
    "CartItemModel",
    "ShippingAddressModel",
    "OrderModel",
    "OrderItemModel",
    "OrderNumberCounterModel",
    "AnalyticsEventModel",
]
