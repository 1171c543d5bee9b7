# zomatify/api/routers/orders.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from zomatify.data.database import get_db
from zomatify.domain.schemas import (
    OrderCreate,
    OrderEnvelope,
    OrderGatewayLink,
    OrderListEnvelope,
    OrderOut,
    OrderPaymentUpdate,
    OrderStatus,
    OrderStatusUpdate,
)
from zomatify.exceptions import OrderNotFoundError, VendorUnavailableError
from zomatify.services.order_service import OrderService

router = APIRouter(prefix="/api/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.post("", response_model=OrderEnvelope, status_code=201)
def create_order(payload: OrderCreate, db: Session = Depends(get_db)):
    """
    Stores a new order with its queue position and bill number.
    The notification goes out asynchronously.
    Returns 503 while the vendor is not taking orders.
    """
    svc = get_service(db)
    try:
        order = svc.create_order(payload)
    except VendorUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.message)
    return OrderEnvelope(data=OrderOut.model_validate(order))


@router.get("", response_model=OrderListEnvelope)
def list_orders(
    user_id: str | None = Query(None),
    vendor_id: str | None = Query(None),
    status: OrderStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    orders = svc.list_orders(user_id, vendor_id, status, limit, offset)
    data = [OrderOut.model_validate(o) for o in orders]
    return OrderListEnvelope(data=data, count=len(data))


@router.get("/{order_id}", response_model=OrderEnvelope)
def get_order(order_id: str, db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return OrderEnvelope(data=OrderOut.model_validate(svc.get_order(order_id)))
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.patch("/{order_id}/payment", response_model=OrderEnvelope)
def update_order_payment(
    order_id: str,
    payload: OrderPaymentUpdate,
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return OrderEnvelope(data=OrderOut.model_validate(svc.update_payment(order_id, payload)))
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/{order_id}/gateway-order", response_model=OrderEnvelope)
def link_gateway_order(
    order_id: str,
    payload: OrderGatewayLink,
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        order = svc.link_gateway_order(order_id, payload.razorpay_order_id)
        return OrderEnvelope(data=OrderOut.model_validate(order))
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/{order_id}/status", response_model=OrderEnvelope)
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return OrderEnvelope(data=OrderOut.model_validate(svc.update_status(order_id, payload)))
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
