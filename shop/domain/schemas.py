# shop/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Dict, List
from decimal import Decimal
from datetime import datetime

from shop.domain.enums import OrderStatus, PaymentStatus
from shop.utils.settings import MAX_QUANTITY_PER_PRODUCT


class ItemIn(BaseModel):
    """Schema for adding a product to the cart."""

    product_id: int = Field(..., gt=0, description="Product ID (must be > 0)")
    quantity: int = Field(..., ge=1, le=MAX_QUANTITY_PER_PRODUCT, description="Quantity per product")


class ItemUpdateIn(BaseModel):
    """Schema for changing the quantity of a cart line."""

    quantity: int = Field(..., ge=1, le=MAX_QUANTITY_PER_PRODUCT, description="New quantity")


class CartItemOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    quantity: int
    price: Decimal
    subtotal: Decimal
    in_stock: bool
    stock: int


class CartOut(BaseModel):
    """Schema for the cart (response)."""

    cart_id: int
    user_id: int
    items: List[CartItemOut]
    total: Decimal
    item_count: int
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CartValidationOut(BaseModel):
    valid: bool
    reason: str | None = None
    cart: CartOut | None = None


class OrderCreate(BaseModel):
    """Schema for checkout."""

    model_config = ConfigDict(str_strip_whitespace=True)

    shipping_address: str = Field(..., min_length=5, max_length=500, description="Shipping address")
    billing_address: str | None = Field(None, min_length=5, max_length=500, description="Billing address")
    notes: str | None = Field(None, max_length=1000)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    notes: str | None = Field(None, max_length=1000)


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    quantity: int
    price: Decimal
    total: Decimal


class OrderOut(BaseModel):
    """Schema for an order (response)."""

    id: int
    user_id: int
    status: OrderStatus
    payment_status: PaymentStatus
    total_amount: Decimal
    shipping_address: str
    billing_address: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    items: List[OrderItemOut]

    model_config = ConfigDict(from_attributes=True)


class OrderPageOut(BaseModel):
    items: List[OrderOut]
    current_page: int
    total_pages: int
    total_count: int
    has_next: bool
    has_prev: bool


class OrderStatsOut(BaseModel):
    total_orders: int
    total_revenue: Decimal
    orders_by_status: Dict[str, int]
