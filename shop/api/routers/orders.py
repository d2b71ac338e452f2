# shop/api/routers/orders.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from shop.api.deps import get_lock_service, get_principal
from shop.data.database import get_db
from shop.domain.auth import Principal
from shop.domain.errors import ShopError
from shop.domain.schemas import (
    OrderCreate,
    OrderOut,
    OrderPageOut,
    OrderStatsOut,
    OrderStatusUpdate,
    PaymentStatusUpdate,
)
from shop.services.lock_service import LockService
from shop.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
) -> OrderService:
    return OrderService(db, lock_service)


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_service),
):
    """
    Checkout: turns the caller's cart into an order.
    """
    try:
        return svc.create_order(
            principal.user_id,
            shipping_address=payload.shipping_address,
            billing_address=payload.billing_address,
            notes=payload.notes,
        )
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/", response_model=OrderPageOut)
def list_my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.list_user_orders(principal.user_id, page, limit)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/all", response_model=OrderPageOut)
def list_all_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.list_all_orders(principal, page, limit)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/stats", response_model=OrderStatsOut)
def order_stats(
    user_id: int | None = Query(None, gt=0),
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.get_order_stats(principal, user_id)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.get_order(principal, order_id)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.cancel_order(principal.user_id, order_id)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_status(
    order_id: int,
    payload: OrderStatusUpdate,
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.update_status(principal, order_id, payload.status, payload.notes)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.patch("/{order_id}/payment", response_model=OrderOut)
def update_payment_status(
    order_id: int,
    payload: PaymentStatusUpdate,
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.apply_payment_status(principal, order_id, payload.payment_status)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
