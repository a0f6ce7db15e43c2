# storefront/api/routers/orders.py
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import OrderIntakeError
from storefront.domain.schemas import PlaceOrderIn, OrderReceiptOut, OrderOut, OrderStatusIn
from storefront.services.order_service import OrderService
from storefront.utils.net import get_client_ip

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)


@router.post("/", response_model=OrderReceiptOut)
def place_order(
    payload: PlaceOrderIn,
    request: Request,
    svc: OrderService = Depends(get_service),
):
    """
    Zamowienie ze storefrontu.
    Ceny liczone od nowa z katalogu, event order.created idzie w tle.
    """
    try:
        return svc.place_order(payload, client_ip=get_client_ip(request))
    except OrderIntakeError as e:
        raise HTTPException(status_code=e.status_code, detail=e.as_detail())


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: UUID, svc: OrderService = Depends(get_service)):
    try:
        return svc.get_order(order_id)
    except OrderIntakeError as e:
        raise HTTPException(status_code=e.status_code, detail=e.as_detail())


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: UUID,
    payload: OrderStatusIn,
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.update_status(order_id, payload.status)
    except OrderIntakeError as e:
        raise HTTPException(status_code=e.status_code, detail=e.as_detail())
