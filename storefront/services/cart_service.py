# storefront/services/cart_service.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import List

from redis.exceptions import RedisError

from storefront.domain.cart import CartLine, guest_line_id
from storefront.domain.checkout import priced_lines
from storefront.domain.session import SessionContext
from storefront.repos.gateway import UNDEFINED_COLUMN, DataGateway, GatewayError
from storefront.repos.guest_cart_repo import GuestCartRepo
from storefront.services.analytics_service import AnalyticsService
from storefront.services.notices import NoticeBoard
from storefront.services.product_client import ProductClient
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartGatewayError(Exception):
    def __init__(self, error: GatewayError):
        super().__init__(error.message)
        self.error = error


class CartService:
    """
    Cart of one session, guest or signed in, joined with current products.

    Mutations are two phase: the change is applied to ``lines`` first and
    then written to the store. When the write fails the user gets a notice
    and the cart is re-read from the store instead of keeping the local guess.
    """

    def __init__(
        self,
        session: SessionContext,
        gateway: DataGateway,
        guest_repo: GuestCartRepo,
        analytics: AnalyticsService,
        notices: NoticeBoard | None = None,
    ):
        self.session = session
        self.gateway = gateway
        self.guest_repo = guest_repo
        self.products = ProductClient(gateway)
        self.analytics = analytics
        self.notices = notices or NoticeBoard()
        self.lines: List[CartLine] = []

    #query
    @property
    def count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in priced_lines(self.lines)), Decimal("0.00"))

    def find_line(self, line_id: str) -> CartLine | None:
        return next((line for line in self.lines if line.id == line_id), None)

    def switch_session(self, session: SessionContext, gateway: DataGateway) -> None:
        self.session = session
        self.gateway = gateway
        self.products = ProductClient(gateway)
        self.load()

    def load(self) -> List[CartLine]:
        try:
            if self.session.authenticated:
                self.lines = self._load_server_lines()
            else:
                self.lines = self._load_guest_lines()
        except CartGatewayError as e:
            logger.error(f"Error loading cart for session {self.session.session_id}: {e.error}")
            self.lines = []
        except RedisError as e:
            logger.error(f"Error loading guest cart for session {self.session.session_id}: {e}")
            self.lines = []
        except Exception as e:
            logger.exception(f"Unexpected error loading cart for session {self.session.session_id}: {e}")
            self.lines = []
        return self.lines

    def _load_server_lines(self) -> List[CartLine]:
        result = self.gateway.select(
            "cart_items",
            {"user_id": self.session.user_id},
            order_by=[("created_at", True)],
        )
        if result.error:
            raise CartGatewayError(result.error)

        #one product request per line
        return [
            CartLine.from_row(row, product=self.products.fetch_product(str(row["product_id"])))
            for row in result.data or []
        ]

    def _load_guest_lines(self) -> List[CartLine]:
        return [
            CartLine.guest(
                entry["product_id"],
                entry["quantity"],
                product=self.products.fetch_product(entry["product_id"]),
            )
            for entry in self.guest_repo.read(self.session.session_id)
        ]

    #commands
    def add(self, product_id: str, quantity: int = 1) -> bool:
        if quantity < 1:
            self.notices.error("Quantity must be at least 1")
            return False

        if self.session.authenticated:
            ok = self._add_server(product_id, quantity)
            metadata = {"quantity": quantity}
        else:
            ok = self._add_guest(product_id, quantity)
            metadata = {"quantity": quantity, "guest": True}

        if ok:
            self.notices.success("Added to cart")
            self.analytics.track(
                "add_to_cart",
                user_id=self.session.user_id,
                product_id=product_id,
                metadata=metadata,
            )
        return ok

    def _add_server(self, product_id: str, quantity: int) -> bool:
        product = self.products.fetch_product(product_id)

        # upsert replaces the quantity of an existing line, it does not add to it
        existing = self._line_for_product(product_id)
        if existing:
            existing.quantity = quantity
            existing.product = product
        else:
            placeholder = CartLine(id="", user_id=self.session.user_id, product_id=product_id,
                                   quantity=quantity, product=product)
            self.lines.insert(0, placeholder)

        result = self.gateway.upsert(
            "cart_items",
            {"user_id": self.session.user_id, "product_id": product_id, "quantity": quantity},
            on_conflict=("user_id", "product_id"),
        )
        if result.error:
            return self._reconcile_failure("adding to cart", result.error, "Failed to add item to cart")

        if not existing:
            self.lines[0] = CartLine.from_row(result.data, product=product)
        logger.info(f"Cart line for product {product_id} set to {quantity} for user {self.session.user_id}")
        return True

    def _add_guest(self, product_id: str, quantity: int) -> bool:
        try:
            entries = self.guest_repo.read(self.session.session_id)
            entry = next((e for e in entries if e["product_id"] == product_id), None)
            # guests accumulate quantities, unlike the server upsert
            if entry:
                entry["quantity"] += quantity
            else:
                entry = {"product_id": product_id, "quantity": quantity}
                entries.append(entry)
            self.guest_repo.write(self.session.session_id, entries)
        except RedisError as e:
            return self._reconcile_failure("adding to guest cart", e, "Failed to add item to cart")

        product = self.products.fetch_product(product_id)
        line = self._line_for_product(product_id)
        if line:
            line.quantity = entry["quantity"]
            line.product = product
        else:
            self.lines.insert(0, CartLine.guest(product_id, entry["quantity"], product=product))
        return True

    def remove(self, line_id: str) -> bool:
        line = self.find_line(line_id)
        self.lines = [item for item in self.lines if item.id != line_id]

        if self.session.authenticated:
            result = self.gateway.delete("cart_items", {"id": line_id, "user_id": self.session.user_id})
            if result.error:
                return self._reconcile_failure("removing from cart", result.error, "Failed to remove item from cart")
        else:
            product_id = line.product_id if line else _product_from_guest_id(line_id)
            try:
                entries = self.guest_repo.read(self.session.session_id)
                remaining = [e for e in entries if e["product_id"] != product_id]
                self.guest_repo.write(self.session.session_id, remaining)
            except RedisError as e:
                return self._reconcile_failure("removing from guest cart", e, "Failed to remove item from cart")

        self.notices.success("Removed from cart")
        return True

    def update_quantity(self, line_id: str, quantity: int) -> bool:
        if quantity < 1:
            return self.remove(line_id)

        line = self.find_line(line_id)
        if line:
            line.quantity = quantity

        if self.session.authenticated:
            filters = {"id": line_id, "user_id": self.session.user_id}
            result = self.gateway.update("cart_items", {"quantity": quantity}, filters)
            if result.error and result.error.code == UNDEFINED_COLUMN:
                # stale updated_at trigger, send the column ourselves
                logger.warning(f"Retrying quantity update for {line_id} with explicit updated_at")
                result = self.gateway.update(
                    "cart_items", {"quantity": quantity, "updated_at": datetime.now(timezone.utc)}, filters,
                )
            if result.error:
                return self._reconcile_failure("updating quantity", result.error, "Failed to update quantity")
        else:
            product_id = line.product_id if line else _product_from_guest_id(line_id)
            try:
                entries = self.guest_repo.read(self.session.session_id)
                for entry in entries:
                    if entry["product_id"] == product_id:
                        entry["quantity"] = quantity
                self.guest_repo.write(self.session.session_id, entries)
            except RedisError as e:
                return self._reconcile_failure("updating guest quantity", e, "Failed to update quantity")

        return True

    def clear(self) -> bool:
        self.lines = []

        if self.session.authenticated:
            result = self.gateway.delete("cart_items", {"user_id": self.session.user_id})
            if result.error:
                return self._reconcile_failure("clearing cart", result.error, "Failed to clear cart")
        else:
            try:
                self.guest_repo.clear(self.session.session_id)
            except RedisError as e:
                return self._reconcile_failure("clearing guest cart", e, "Failed to clear cart")

        return True

    #helpers
    def _line_for_product(self, product_id: str) -> CartLine | None:
        return next((line for line in self.lines if line.product_id == product_id), None)

    def _reconcile_failure(self, action: str, error, fallback: str) -> bool:
        logger.error(f"Error {action} for session {self.session.session_id}: {error}")
        message = error.message if isinstance(error, GatewayError) else str(error)
        self.notices.error(message or fallback)
        self.load()
        return False


def _product_from_guest_id(line_id: str) -> str:
    prefix = guest_line_id("")
    return line_id[len(prefix):] if line_id.startswith(prefix) else line_id
