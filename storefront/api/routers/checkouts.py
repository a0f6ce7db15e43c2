# storefront/api/routers/checkouts.py
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import OrderIntakeError
from storefront.domain.schemas import CheckoutSessionIn, RecoveryOut
from storefront.services.checkout_service import CheckoutService

router = APIRouter(tags=["checkouts"])


def get_service(db: Session = Depends(get_db)) -> CheckoutService:
    return CheckoutService(db)


@router.post("/checkout-sessions")
def record_checkout_session(payload: CheckoutSessionIn, svc: CheckoutService = Depends(get_service)):
    try:
        svc.record_checkout(payload)
    except OrderIntakeError as e:
        raise HTTPException(status_code=e.status_code, detail=e.as_detail())
    return {"ok": True}


@router.get("/recover/{checkout_id}", response_model=RecoveryOut)
def recover_checkout(checkout_id: UUID, svc: CheckoutService = Depends(get_service)):
    try:
        return svc.get_recovery(checkout_id)
    except OrderIntakeError as e:
        raise HTTPException(status_code=e.status_code, detail=e.as_detail())
