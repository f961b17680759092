# storefront/api/routers/auth.py
from fastapi import APIRouter, Depends, HTTPException, Header

from storefront.api.deps import get_auth_service
from storefront.domain.errors import StorefrontError
from storefront.domain.schemas import SessionOut, SignInIn
from storefront.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/sign-in", response_model=SessionOut)
def sign_in(
    payload: SignInIn,
    x_session_id: str = Header(..., min_length=1),
    svc: AuthService = Depends(get_auth_service),
):
    """
    Signs in and moves the guest cart of this session to the user.
    """
    try:
        session, _ = svc.sign_in(x_session_id, payload.email, payload.password)
    except StorefrontError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return SessionOut(
        session_id=session.session_id,
        user_id=session.user_id,
        email=session.email,
        access_token=session.access_token,
    )
