# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import get_order_service, get_session
from storefront.domain.schemas import OrderOut
from storefront.domain.session import SessionContext
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=List[OrderOut])
def list_orders(
    session: SessionContext = Depends(get_session),
    svc: OrderService = Depends(get_order_service),
):
    """
    Order history of the signed in user, newest first.
    """
    if not session.authenticated:
        raise HTTPException(status_code=401, detail="Sign in to see your orders")
    try:
        return svc.list_orders(session.user_id)
    except ValueError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: str,
    session: SessionContext = Depends(get_session),
    svc: OrderService = Depends(get_order_service),
):
    if not session.authenticated:
        raise HTTPException(status_code=401, detail="Sign in to see your orders")
    try:
        return svc.get_order(order_id, session.user_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=502, detail=str(e))
