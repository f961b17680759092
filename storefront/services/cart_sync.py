# storefront/services/cart_sync.py
from redis.exceptions import RedisError

from storefront.domain.session import SessionContext
from storefront.repos.gateway import DataGateway
from storefront.repos.guest_cart_repo import GuestCartRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartSynchronizer:
    """
    Moves a guest cart into the server cart when the session signs in.

    Best effort: a line that fails to upsert is logged and skipped, and
    nothing here raises, so signing in never fails because of the cart.
    """

    def __init__(self, gateway: DataGateway, guest_repo: GuestCartRepo):
        self.gateway = gateway
        self.guest_repo = guest_repo

    def sync(self, session: SessionContext, cart=None) -> int:
        if not session.authenticated:
            return 0

        try:
            had_guest_cart = self.guest_repo.exists(session.session_id)
            entries = self.guest_repo.read(session.session_id) if had_guest_cart else []
        except RedisError as e:
            logger.error(f"Error reading guest cart for session {session.session_id}: {e}")
            had_guest_cart, entries = False, []

        synced = 0
        for entry in entries:
            # same conflict policy as add to cart: the guest quantity wins
            result = self.gateway.upsert(
                "cart_items",
                {
                    "user_id": session.user_id,
                    "product_id": entry["product_id"],
                    "quantity": entry["quantity"],
                },
                on_conflict=("user_id", "product_id"),
            )
            if result.error:
                logger.error(f"Error syncing cart item {entry['product_id']}: {result.error}")
                continue
            synced += 1

        if had_guest_cart:
            try:
                self.guest_repo.clear(session.session_id)
            except RedisError as e:
                logger.error(f"Error clearing guest cart for session {session.session_id}: {e}")
            logger.info(f"Synced {synced}/{len(entries)} guest cart lines into user {session.user_id}")

        if cart is not None:
            cart.switch_session(session, self.gateway)
        return synced
