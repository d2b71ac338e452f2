#shop/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from shop.api.deps import get_lock_service, get_principal
from shop.data.database import get_db
from shop.domain.auth import Principal
from shop.domain.errors import ShopError
from shop.domain.schemas import (
    ItemIn,
    ItemUpdateIn,
    CartOut,
    CartValidationOut,
)
from shop.services.cart_service import CartService
from shop.services.lock_service import LockService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
) -> CartService:
    return CartService(db=db, lock_service=lock_service)


@router.get("/", response_model=CartOut)
def get_cart(
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.get_cart(principal.user_id)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/validate", response_model=CartValidationOut)
def validate_cart(
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_service),
):
    return svc.validate_for_checkout(principal.user_id)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: ItemIn,
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.add_item(
            user_id=principal.user_id,
            product_id=payload.product_id,
            quantity=payload.quantity,
        )
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.put("/items/{item_id}", response_model=CartOut)
def update_item(
    item_id: int,
    payload: ItemUpdateIn,
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.update_item(principal.user_id, item_id, payload.quantity)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.delete("/items/{item_id}", response_model=CartOut)
def remove_item(
    item_id: int,
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.remove_item(principal.user_id, item_id)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.delete("/", response_model=CartOut)
def clear_cart(
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.clear_cart(principal.user_id)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
