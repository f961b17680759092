# storefront/services/order_service.py
import time
from datetime import datetime, timezone
from typing import Any, Dict, List

from storefront.domain.checkout import DeliveryMethod, ShippingInfo, compute_totals, priced_lines
from storefront.domain.errors import OrderCreationError
from storefront.repos.gateway import NO_ROWS, DataGateway
from storefront.services.analytics_service import AnalyticsService
from storefront.services.cart_service import CartService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def fallback_order_number(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    millis = str(int(time.time() * 1000))
    return f"ORD-{now.year}-{millis[-6:]}"


class OrderService:
    """
    Orders domain, kept apart from CartService.
    The cart is only read here, and cleared once an order is fully written.
    """

    def __init__(self, gateway: DataGateway, cart: CartService, analytics: AnalyticsService):
        self.gateway = gateway
        self.cart = cart
        self.analytics = analytics

    def allocate_order_number(self) -> str:
        result = self.gateway.rpc("generate_order_number")
        if result.error or not result.data:
            logger.warning(f"generate_order_number unavailable ({result.error}), using local order number")
            return fallback_order_number()
        return str(result.data)

    def create_order(
        self,
        payment_reference: str,
        shipping: ShippingInfo,
        delivery: DeliveryMethod,
        user_id: str | None,
    ) -> Dict[str, Any]:
        """
        Use case: order from the current cart after a successful payment.

        1. builds the items from lines that still have a product
        2. allocates an order number
        3. writes the order, then its items
        4. clears the cart

        The two writes are separate. If the items fail the order row is left
        in place and OrderCreationError tells the caller to go to support.
        """
        lines = priced_lines(self.cart.lines)
        if not lines:
            raise OrderCreationError("No valid items to create order", payment_reference)

        totals = compute_totals(lines, delivery)
        order_number = self.allocate_order_number()

        row = {
            "user_id": user_id,
            "order_number": order_number,
            "total_amount": totals.total,
            "status": "pending",
            "shipping_address": shipping.snapshot(),
            "payment_reference": payment_reference,
            "delivery_method": delivery.name,
        }
        order_result = self.gateway.insert("orders", row, single=True)
        if order_result.error and order_result.error.is_duplicate:
            # number already taken, e.g. by an earlier local fallback
            row["order_number"] = order_number = fallback_order_number()
            logger.warning(f"Order number clashed for payment {payment_reference}, retrying as {order_number}")
            order_result = self.gateway.insert("orders", row, single=True)
        if order_result.error:
            logger.error(f"Error creating order for payment {payment_reference}: {order_result.error}")
            raise OrderCreationError(order_result.error.message, payment_reference)

        order = order_result.data
        items = [
            {
                "order_id": order["id"],
                "product_id": line.product_id,
                "quantity": line.quantity,
                "price": line.product.price,
            }
            for line in lines
        ]

        items_result = self.gateway.insert("order_items", items)
        if items_result.error:
            logger.error(
                f"Order {order['id']} ({order_number}) written but its items failed: {items_result.error}"
            )
            raise OrderCreationError(items_result.error.message, payment_reference, order_id=str(order["id"]))

        logger.info(f"Order {order['id']} ({order_number}) created with {len(items)} items")

        self.cart.clear()
        self.analytics.track(
            "purchase",
            user_id=user_id,
            order_id=str(order["id"]),
            metadata={"order_number": order_number, "total": str(totals.total), "items": len(items)},
        )

        return {**order, "items": items_result.data or items}

    #query
    def list_orders(self, user_id: str) -> List[Dict[str, Any]]:
        result = self.gateway.select("orders", {"user_id": user_id}, order_by=[("created_at", True)])
        if result.error:
            logger.error(f"Error loading orders for user {user_id}: {result.error}")
            raise ValueError("Could not load orders")
        return result.data or []

    def get_order(self, order_id: str, user_id: str) -> Dict[str, Any]:
        result = self.gateway.select("orders", {"id": order_id}, single=True)

        if result.error:
            if result.error.code == NO_ROWS:
                raise LookupError("Order does not exist")
            raise ValueError(result.error.message)

        order = result.data
        if order.get("user_id") != user_id:
            raise PermissionError("No access to this order")

        items = self.gateway.select("order_items", {"order_id": order_id})
        if items.error:
            raise ValueError(items.error.message)

        return {**order, "items": items.data or []}
