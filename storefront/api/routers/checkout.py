# storefront/api/routers/checkout.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import get_checkout_service
from storefront.domain.checkout import DELIVERY_METHODS, CheckoutState, ShippingInfo
from storefront.domain.errors import StorefrontError
from storefront.domain.schemas import (
    AddressOut,
    CheckoutOut,
    DeliveryIn,
    DeliveryMethodOut,
    GuestEmailIn,
    PaymentCallbackIn,
    PaymentInitOut,
    PaymentOutcomeOut,
    SessionOut,
    ShippingIn,
    SignInIn,
)
from storefront.services.checkout_service import CheckoutService

router = APIRouter(prefix="/checkout", tags=["checkout"])


def checkout_out(svc: CheckoutService, state: CheckoutState) -> CheckoutOut:
    return CheckoutOut(**svc.summary(state), notices=svc.notices.as_list())


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, PermissionError):
        return HTTPException(status_code=403, detail=str(e))
    return HTTPException(status_code=e.status_code, detail=str(e))


@router.post("", response_model=CheckoutOut, status_code=201)
def start_checkout(svc: CheckoutService = Depends(get_checkout_service)):
    """
    Starts checkout for the cart of this session.
    Signed in sessions skip the identify step.
    """
    try:
        return checkout_out(svc, svc.start())
    except StorefrontError as e:
        raise _http_error(e)


@router.get("", response_model=CheckoutOut)
def get_checkout(svc: CheckoutService = Depends(get_checkout_service)):
    try:
        return checkout_out(svc, svc.current())
    except StorefrontError as e:
        raise _http_error(e)


@router.post("/identify", response_model=CheckoutOut)
def identify_guest(payload: GuestEmailIn, svc: CheckoutService = Depends(get_checkout_service)):
    try:
        return checkout_out(svc, svc.identify_guest(payload.email))
    except StorefrontError as e:
        raise _http_error(e)


@router.post("/sign-in", response_model=SessionOut)
def sign_in(payload: SignInIn, svc: CheckoutService = Depends(get_checkout_service)):
    try:
        session = svc.sign_in(payload.email, payload.password)
    except StorefrontError as e:
        raise _http_error(e)

    return SessionOut(
        session_id=session.session_id,
        user_id=session.user_id,
        email=session.email,
        access_token=session.access_token,
        notices=svc.notices.as_list(),
    )


@router.get("/addresses", response_model=List[AddressOut])
def saved_addresses(svc: CheckoutService = Depends(get_checkout_service)):
    return svc.saved_addresses()


@router.post("/addresses/{address_id}/select", response_model=CheckoutOut)
def select_address(address_id: str, svc: CheckoutService = Depends(get_checkout_service)):
    try:
        return checkout_out(svc, svc.select_address(address_id))
    except (StorefrontError, PermissionError) as e:
        raise _http_error(e)


@router.post("/addresses/new", response_model=CheckoutOut)
def new_address(svc: CheckoutService = Depends(get_checkout_service)):
    try:
        return checkout_out(svc, svc.new_address())
    except StorefrontError as e:
        raise _http_error(e)


@router.post("/shipping", response_model=CheckoutOut)
def submit_shipping(payload: ShippingIn, svc: CheckoutService = Depends(get_checkout_service)):
    try:
        return checkout_out(svc, svc.submit_shipping(ShippingInfo(**payload.model_dump())))
    except StorefrontError as e:
        raise _http_error(e)


@router.get("/delivery-methods", response_model=List[DeliveryMethodOut])
def delivery_methods():
    return [DeliveryMethodOut.model_validate(m, from_attributes=True) for m in DELIVERY_METHODS]


@router.post("/delivery", response_model=CheckoutOut)
def choose_delivery(payload: DeliveryIn, svc: CheckoutService = Depends(get_checkout_service)):
    try:
        return checkout_out(svc, svc.choose_delivery(payload.method_id))
    except StorefrontError as e:
        raise _http_error(e)


@router.post("/delivery/confirm", response_model=CheckoutOut)
def confirm_delivery(svc: CheckoutService = Depends(get_checkout_service)):
    try:
        return checkout_out(svc, svc.confirm_delivery())
    except StorefrontError as e:
        raise _http_error(e)


@router.post("/payment", response_model=PaymentInitOut)
def begin_payment(svc: CheckoutService = Depends(get_checkout_service)):
    """
    Opens the hosted payment page. The client redirects to
    ``authorization_url`` and calls the callback when it closes.
    """
    try:
        return PaymentInitOut(**svc.begin_payment(), notices=svc.notices.as_list())
    except StorefrontError as e:
        raise _http_error(e)


@router.post("/payment/callback", response_model=PaymentOutcomeOut)
def payment_callback(payload: PaymentCallbackIn, svc: CheckoutService = Depends(get_checkout_service)):
    try:
        outcome = svc.complete_payment(payload.reference)
    except StorefrontError as e:
        raise _http_error(e)
    return PaymentOutcomeOut(**outcome, notices=svc.notices.as_list())
