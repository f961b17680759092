# storefront/services/auth_service.py
from typing import Callable, Tuple

from storefront.domain.errors import CheckoutValidationError
from storefront.domain.session import SessionContext
from storefront.repos.gateway import DataGateway
from storefront.repos.guest_cart_repo import GuestCartRepo
from storefront.services.auth_client import SupabaseAuthClient
from storefront.services.cart_sync import CartSynchronizer
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class AuthService:
    def __init__(
        self,
        auth_client: SupabaseAuthClient,
        guest_repo: GuestCartRepo,
        gateway_factory: Callable[[str | None], DataGateway],
    ):
        self.auth_client = auth_client
        self.guest_repo = guest_repo
        self.gateway_factory = gateway_factory

    def sign_in(self, session_id: str, email: str, password: str, cart=None) -> Tuple[SessionContext, DataGateway]:
        """
        Sign in and carry the guest cart over to the user.
        AuthError propagates, the cart sync never does.
        """
        if not email or not password:
            raise CheckoutValidationError("Please enter both email and password")

        user = self.auth_client.sign_in_with_password(email, password)
        session = SessionContext(
            session_id=session_id,
            user_id=user.id,
            email=user.email,
            access_token=user.access_token,
        )
        gateway = self.gateway_factory(user.access_token)

        CartSynchronizer(gateway, self.guest_repo).sync(session, cart=cart)
        logger.info(f"User {user.id} signed in on session {session_id}")
        return session, gateway
