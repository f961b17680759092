# storefront/services/checkout_service.py
from dataclasses import asdict
from typing import Any, Dict, List

from storefront.domain.checkout import (
    DELIVERY_METHODS,
    CheckoutState,
    ShippingInfo,
    Stage,
    compute_totals,
    find_delivery_method,
    priced_lines,
)
from storefront.domain.errors import (
    CheckoutStageError,
    CheckoutValidationError,
    EmptyCartError,
    OrderCreationError,
    PaymentBridgeError,
    PaymentInProgressError,
)
from storefront.domain.session import SessionContext
from storefront.repos.checkout_repo import CheckoutRepo
from storefront.services.address_service import AddressService, address_to_shipping, default_address
from storefront.services.analytics_service import AnalyticsService
from storefront.services.auth_service import AuthService
from storefront.services.cart_service import CartService
from storefront.services.notices import NoticeBoard
from storefront.services.order_service import OrderService
from storefront.services.payment_bridge import PaymentBridge, generate_reference
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ORDER_FAILED_MESSAGE = (
    "Payment successful but failed to create order. "
    "Please contact support with reference: {reference}"
)


class CheckoutService:
    """
    Checkout of one session: identify -> shipping -> delivery -> payment.

    The state lives in Redis between requests. Every command loads it,
    checks the stage it is allowed in, changes it and saves it back.
    """

    def __init__(
        self,
        session: SessionContext,
        repo: CheckoutRepo,
        cart: CartService,
        addresses: AddressService,
        orders: OrderService,
        bridge: PaymentBridge,
        auth: AuthService,
        analytics: AnalyticsService,
        notices: NoticeBoard | None = None,
    ):
        self.session = session
        self.repo = repo
        self.cart = cart
        self.addresses = addresses
        self.orders = orders
        self.bridge = bridge
        self.auth = auth
        self.analytics = analytics
        self.notices = notices or cart.notices

    #state
    def _state(self) -> CheckoutState:
        state = self.repo.load(self.session.session_id)
        if state is None:
            raise CheckoutStageError("Checkout has not been started")
        return state

    def _save(self, state: CheckoutState) -> CheckoutState:
        self.repo.save(self.session.session_id, state)
        return state

    @staticmethod
    def _require(state: CheckoutState, *stages: Stage):
        if state.stage not in stages:
            allowed = ", ".join(s.value for s in stages)
            raise CheckoutStageError(f"Not allowed in the {state.stage.value} step (expected {allowed})")

    @staticmethod
    def _not_paying(state: CheckoutState):
        if state.processing_payment:
            raise PaymentInProgressError()

    def start(self) -> CheckoutState:
        if not priced_lines(self.cart.lines):
            raise EmptyCartError()

        state = CheckoutState()
        if self.session.authenticated:
            #already signed in, nothing to identify
            state.stage = Stage.SHIPPING
            state.email = self.session.email or ""
            state.shipping.email = state.email
            self._preselect_default_address(state)

        self.analytics.track(
            "begin_checkout",
            user_id=self.session.user_id,
            metadata={"items": self.cart.count, "subtotal": str(self.cart.subtotal)},
        )
        logger.info(f"Checkout started for session {self.session.session_id} at {state.stage.value}")
        return self._save(state)

    def current(self) -> CheckoutState:
        return self._state()

    #identify
    def identify_guest(self, email: str) -> CheckoutState:
        state = self._state()
        self._require(state, Stage.IDENTIFY)

        email = (email or "").strip()
        if not email or "@" not in email:
            raise CheckoutValidationError("Please enter a valid email address")

        state.email = email
        state.shipping.email = email
        state.stage = Stage.SHIPPING
        return self._save(state)

    def sign_in(self, email: str, password: str) -> SessionContext:
        state = self._state()
        self._require(state, Stage.IDENTIFY)

        # AuthError leaves the stage where it is
        session, _ = self.auth.sign_in(self.session.session_id, email, password, cart=self.cart)
        self.session = session
        self.notices.success("Successfully signed in!")

        state.email = session.email or email
        state.shipping.email = state.email
        state.stage = Stage.SHIPPING
        self._save(state)
        return session

    #shipping
    def saved_addresses(self) -> List[Dict[str, Any]]:
        if not self.session.authenticated:
            return []
        result = self.addresses.list_addresses(self.session.user_id)
        if result.error:
            self.notices.error("Failed to load saved addresses")
            return []
        return result.data or []

    def _preselect_default_address(self, state: CheckoutState):
        chosen = default_address(self.saved_addresses())
        if chosen:
            state.selected_address_id = str(chosen["id"])
            state.shipping = address_to_shipping(chosen, state.email)

    def select_address(self, address_id: str) -> CheckoutState:
        state = self._state()
        self._require(state, Stage.SHIPPING)
        if not self.session.authenticated:
            raise PermissionError("Sign in to use saved addresses")

        result = self.addresses.get_address(self.session.user_id, address_id)
        if result.error:
            raise CheckoutValidationError("Address not found")

        state.selected_address_id = address_id
        state.shipping = address_to_shipping(result.data, state.email)
        return self._save(state)

    def new_address(self) -> CheckoutState:
        state = self._state()
        self._require(state, Stage.SHIPPING)
        state.selected_address_id = None
        state.shipping = ShippingInfo(email=state.email)
        return self._save(state)

    def submit_shipping(self, info: ShippingInfo) -> CheckoutState:
        state = self._state()
        self._require(state, Stage.SHIPPING, Stage.DELIVERY, Stage.PAYMENT)
        self._not_paying(state)

        info = info.model_copy(update={"email": info.email or state.email})
        if info.missing_fields():
            raise CheckoutValidationError("Please fill in all required shipping fields")

        if state.selected_address_id and info != state.shipping:
            # edited after picking a saved one, treat it as a new address
            state.selected_address_id = None
        state.shipping = info

        if self.session.authenticated and not state.selected_address_id:
            existing = self.saved_addresses()
            result = self.addresses.save_address(self.session.user_id, info, make_default=not existing)
            if result.error and result.error.is_duplicate:
                self.notices.info("This address already exists in your saved addresses")
            elif result.error:
                self.notices.error("Address could not be saved, but checkout will continue")
            else:
                state.selected_address_id = str(result.data["id"])

        state.stage = Stage.DELIVERY
        return self._save(state)

    #delivery
    def choose_delivery(self, method_id: str) -> CheckoutState:
        state = self._state()
        self._require(state, Stage.DELIVERY, Stage.PAYMENT)
        self._not_paying(state)

        if find_delivery_method(method_id) is None:
            raise CheckoutValidationError("Please select a delivery method")
        state.delivery_id = method_id
        return self._save(state)

    def confirm_delivery(self) -> CheckoutState:
        state = self._state()
        self._require(state, Stage.DELIVERY)
        if find_delivery_method(state.delivery_id) is None:
            raise CheckoutValidationError("Please select a delivery method")
        state.stage = Stage.PAYMENT
        return self._save(state)

    #payment
    def totals(self, state: CheckoutState):
        return compute_totals(self.cart.lines, state.delivery_method)

    def payment_email(self, state: CheckoutState) -> str:
        return self.session.email or state.email or state.shipping.email

    def _payment_metadata(self, state: CheckoutState) -> Dict[str, Any]:
        shipping = state.shipping
        return {
            "custom_fields": [
                {
                    "display_name": "Order Items",
                    "variable_name": "order_items",
                    "value": ", ".join(
                        f"{line.product.name or 'Product'} x{line.quantity}"
                        for line in priced_lines(self.cart.lines)
                    ),
                },
                {
                    "display_name": "Shipping Address",
                    "variable_name": "shipping_address",
                    "value": f"{shipping.address}, {shipping.city}, {shipping.state}",
                },
                {
                    "display_name": "Delivery Method",
                    "variable_name": "delivery_method",
                    "value": state.delivery_method.name,
                },
            ]
        }

    def begin_payment(self) -> Dict[str, Any]:
        state = self._state()
        self._require(state, Stage.PAYMENT)
        self._not_paying(state)

        if not priced_lines(self.cart.lines):
            raise EmptyCartError()

        totals = self.totals(state)
        email = self.payment_email(state)
        reference = generate_reference()

        state.processing_payment = True
        state.payment_reference = reference
        self._save(state)

        try:
            init = self.bridge.initialize(email, totals.total, reference, self._payment_metadata(state))
        except PaymentBridgeError:
            state.processing_payment = False
            state.payment_reference = None
            self._save(state)
            self.notices.error("An error occurred while processing payment")
            raise

        logger.info(f"Payment {reference} opened for {totals.total} on session {self.session.session_id}")
        return {
            "reference": init.reference,
            "authorization_url": init.authorization_url,
            "access_code": init.access_code,
            "email": email,
            "amount": totals.total,
        }

    def complete_payment(self, reference: str) -> Dict[str, Any]:
        state = self._state()
        self._require(state, Stage.PAYMENT)
        if not state.payment_reference or state.payment_reference != reference:
            raise CheckoutStageError("Unknown payment reference")

        return self.bridge.settle(
            reference,
            on_success=lambda paid_reference: self._payment_succeeded(state, paid_reference),
            on_cancel=lambda: self._payment_cancelled(state),
        )

    def _payment_succeeded(self, state: CheckoutState, paid_reference: str) -> Dict[str, Any]:
        # snapshot before the order clears the cart
        totals = self.totals(state)
        lines = [
            {"product_id": line.product_id, "name": line.product.name, "quantity": line.quantity,
             "price": line.product.price}
            for line in priced_lines(self.cart.lines)
        ]

        try:
            order = self.orders.create_order(
                payment_reference=paid_reference,
                shipping=state.shipping,
                delivery=state.delivery_method,
                user_id=self.session.user_id,
            )
        except OrderCreationError as e:
            logger.error(f"Order creation failed after payment {paid_reference}: {e}")
            state.processing_payment = False
            if e.order_id:
                # an order row already carries this payment, it must not settle again
                state.payment_reference = None
            self._save(state)
            message = ORDER_FAILED_MESSAGE.format(reference=paid_reference)
            self.notices.error(message)
            raise OrderCreationError(message, paid_reference) from e

        self.notices.success("Payment successful! Order created.")
        self.repo.clear(self.session.session_id)

        return {
            "status": "success",
            "confirmation": {
                "order_id": str(order["id"]),
                "order_number": order["order_number"],
                "order_reference": state.payment_reference,
                "payment_reference": paid_reference,
                "shipping": state.shipping.model_dump(),
                "items": lines,
                "total": totals.total,
                "delivery_method": state.delivery_method.name,
            },
        }

    def _payment_cancelled(self, state: CheckoutState) -> Dict[str, Any]:
        logger.info(f"Payment {state.payment_reference} cancelled on session {self.session.session_id}")
        state.processing_payment = False
        state.payment_reference = None
        self._save(state)
        self.notices.error("Payment was cancelled")
        return {"status": "cancelled", "confirmation": None}

    def summary(self, state: CheckoutState) -> Dict[str, Any]:
        totals = self.totals(state)
        return {
            "stage": state.stage,
            "email": state.email,
            "shipping": state.shipping.model_dump(),
            "selected_address_id": state.selected_address_id,
            "delivery_method": asdict(state.delivery_method),
            "delivery_methods": [asdict(m) for m in DELIVERY_METHODS],
            "processing_payment": state.processing_payment,
            "payment_reference": state.payment_reference,
            "subtotal": totals.subtotal,
            "delivery": totals.delivery,
            "tax": totals.tax,
            "total": totals.total,
        }
