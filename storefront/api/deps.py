# storefront/api/deps.py
from functools import lru_cache

import redis
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.session import SessionContext
from storefront.repos.checkout_repo import CheckoutRepo
from storefront.repos.factory import build_gateway
from storefront.repos.gateway import DataGateway
from storefront.repos.guest_cart_repo import GuestCartRepo
from storefront.services.address_service import AddressService
from storefront.services.analytics_service import AnalyticsService
from storefront.services.auth_client import SupabaseAuthClient
from storefront.services.auth_service import AuthService
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService
from storefront.services.notices import NoticeBoard
from storefront.services.order_service import OrderService
from storefront.services.payment_bridge import PaymentBridge, PaystackBridge
from storefront.services.webhook_service import WebhookService
from storefront.utils.settings import REDIS_URL


@lru_cache
def get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


@lru_cache
def get_auth_client() -> SupabaseAuthClient:
    return SupabaseAuthClient()


@lru_cache
def get_bridge() -> PaymentBridge:
    return PaystackBridge()


def get_session(
    x_session_id: str = Header(..., min_length=1),
    authorization: str | None = Header(None),
    auth_client: SupabaseAuthClient = Depends(get_auth_client),
) -> SessionContext:
    if not authorization:
        return SessionContext(session_id=x_session_id)

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Invalid authorization header")

    user = auth_client.get_user(token)
    if user is None:
        raise HTTPException(status_code=401, detail="Session expired, please sign in again")
    return SessionContext(session_id=x_session_id, user_id=user.id, email=user.email, access_token=token)


def get_gateway(session: SessionContext = Depends(get_session), db: Session = Depends(get_db)) -> DataGateway:
    return build_gateway(db, session.access_token)


def get_analytics(session: SessionContext = Depends(get_session)) -> AnalyticsService:
    return AnalyticsService(session.session_id)


def get_notices() -> NoticeBoard:
    return NoticeBoard()


def get_guest_repo(client: redis.Redis = Depends(get_redis)) -> GuestCartRepo:
    return GuestCartRepo(client)


def get_auth_service(
    db: Session = Depends(get_db),
    auth_client: SupabaseAuthClient = Depends(get_auth_client),
    guest_repo: GuestCartRepo = Depends(get_guest_repo),
) -> AuthService:
    return AuthService(auth_client, guest_repo, lambda token: build_gateway(db, token))


def get_cart_service(
    session: SessionContext = Depends(get_session),
    gateway: DataGateway = Depends(get_gateway),
    guest_repo: GuestCartRepo = Depends(get_guest_repo),
    analytics: AnalyticsService = Depends(get_analytics),
    notices: NoticeBoard = Depends(get_notices),
) -> CartService:
    cart = CartService(session, gateway, guest_repo, analytics, notices)
    cart.load()
    return cart


def get_order_service(
    gateway: DataGateway = Depends(get_gateway),
    cart: CartService = Depends(get_cart_service),
    analytics: AnalyticsService = Depends(get_analytics),
) -> OrderService:
    return OrderService(gateway, cart, analytics)


def get_checkout_service(
    session: SessionContext = Depends(get_session),
    gateway: DataGateway = Depends(get_gateway),
    cart: CartService = Depends(get_cart_service),
    orders: OrderService = Depends(get_order_service),
    bridge: PaymentBridge = Depends(get_bridge),
    auth: AuthService = Depends(get_auth_service),
    analytics: AnalyticsService = Depends(get_analytics),
    client: redis.Redis = Depends(get_redis),
) -> CheckoutService:
    return CheckoutService(
        session=session,
        repo=CheckoutRepo(client),
        cart=cart,
        addresses=AddressService(gateway),
        orders=orders,
        bridge=bridge,
        auth=auth,
        analytics=analytics,
    )


def get_webhook_service(
    db: Session = Depends(get_db),
    auth_client: SupabaseAuthClient = Depends(get_auth_client),
) -> WebhookService:
    return WebhookService(build_gateway(db, service=True), auth_client)
