# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends

from storefront.api.deps import get_cart_service
from storefront.domain.schemas import CartLineOut, CartOut, ItemIn, QuantityIn
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def cart_out(svc: CartService) -> CartOut:
    return CartOut(
        items=[CartLineOut.model_validate(line, from_attributes=True) for line in svc.lines],
        count=svc.count,
        subtotal=svc.subtotal,
        notices=svc.notices.as_list(),
    )


@router.get("", response_model=CartOut)
def get_cart(svc: CartService = Depends(get_cart_service)):
    return cart_out(svc)


@router.post("/items", response_model=CartOut)
def add_item(payload: ItemIn, svc: CartService = Depends(get_cart_service)):
    # failures come back as notices, the cart is always returned
    svc.add(payload.product_id, payload.quantity)
    return cart_out(svc)


@router.patch("/items/{line_id}", response_model=CartOut)
def update_item(line_id: str, payload: QuantityIn, svc: CartService = Depends(get_cart_service)):
    svc.update_quantity(line_id, payload.quantity)
    return cart_out(svc)


@router.delete("/items/{line_id}", response_model=CartOut)
def remove_item(line_id: str, svc: CartService = Depends(get_cart_service)):
    svc.remove(line_id)
    return cart_out(svc)


@router.delete("", response_model=CartOut)
def clear_cart(svc: CartService = Depends(get_cart_service)):
    svc.clear()
    return cart_out(svc)
