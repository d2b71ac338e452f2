from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any

from sqlalchemy.orm import Session

from shop.data.database import transaction
from shop.data.models.cart import CartModel
from shop.data.models.cart_item import CartItemModel
from shop.domain.errors import (
    ConflictError,
    InsufficientStockError,
    InvalidInputError,
    NotFoundError,
    QuantityLimitExceeded,
)
from shop.repos.cart_repo import CartRepo
from shop.repos.product_repo import ProductRepo
from shop.services.lock_service import LockService
from shop.utils.settings import MAX_QUANTITY_PER_PRODUCT
from shop.utils.logging import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def line_total(price: Decimal, quantity: int) -> Decimal:
    return (Decimal(price) * quantity).quantize(CENT, rounding=ROUND_HALF_UP)


class CartService:
    """
    Use cases for the cart domain
    commands (add, update, remove, clear) run under the per-cart lock, in one
    transaction, and always end with a fresh total + version bump
    queries (get, validate_for_checkout) only read
    """

    def __init__(self, db: Session, lock_service: LockService):
        self.db = db
        self.repo = CartRepo(db)
        self.product_repo = ProductRepo(db)
        self.lock_service = lock_service

    #query
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_user(user_id)

        if not cart:
            try:
                with transaction(self.db):
                    self._create_cart(user_id)
            except ConflictError:
                # created in parallel by another request of the same user
                logger.info(f"Cart for user {user_id} created concurrently, re-reading")
            cart = self.repo.get_cart_by_user(user_id)

        return self._to_dict(cart)

    def validate_for_checkout(self, user_id: int) -> Dict[str, Any]:
        """
        Read-only gate before checkout. Checkout repeats the same checks inside
        its own transaction, this result can be stale by the time the order is placed.
        """
        cart = self.repo.get_cart_by_user(user_id)

        if not cart or not cart.items:
            return {"valid": False, "reason": "Cart is empty", "cart": None}

        for item in cart.items:
            product = item.product
            if not product.in_stock or product.stock < item.quantity:
                return {
                    "valid": False,
                    "reason": (
                        f"Insufficient stock for {product.name}. "
                        f"Available: {product.stock}, Required: {item.quantity}"
                    ),
                    "cart": None,
                }

        return {"valid": True, "reason": None, "cart": self._to_dict(cart)}

    #commands
    def add_item(self, user_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        self._check_quantity(quantity)

        with self.lock_service.cart_lock(user_id):
            with transaction(self.db):
                product = self.product_repo.get_product(product_id)
                if not product:
                    raise NotFoundError("Product not found")

                if not product.in_stock or product.stock < quantity:
                    raise InsufficientStockError(product.name, product.stock, quantity)

                cart = self._get_or_create_cart(user_id)
                existing_item = self.repo.get_cart_item_by_product(cart.id, product_id)

                if existing_item:
                    new_quantity = existing_item.quantity + quantity
                    if new_quantity > MAX_QUANTITY_PER_PRODUCT:
                        raise QuantityLimitExceeded(MAX_QUANTITY_PER_PRODUCT)
                    if product.stock < new_quantity:
                        raise InsufficientStockError(product.name, product.stock, new_quantity)

                    logger.info(
                        f"Product {product_id} already in cart {cart.id}, quantity "
                        f"{existing_item.quantity} -> {new_quantity}"
                    )
                    existing_item.quantity = new_quantity
                    existing_item.price = product.price  # re-sync to current price
                else:
                    logger.info(f"Adding product {product_id} x {quantity} to cart {cart.id}")
                    self.repo.add_cart_item(
                        CartItemModel(
                            cart_id=cart.id,
                            product_id=product_id,
                            quantity=quantity,
                            price=product.price,
                        )
                    )

                self._recalculate_total(cart)

        return self.get_cart(user_id)

    def update_item(self, user_id: int, item_id: int, quantity: int) -> Dict[str, Any]:
        self._check_quantity(quantity)

        with self.lock_service.cart_lock(user_id):
            with transaction(self.db):
                cart = self.repo.get_cart_by_user(user_id)
                item = self.repo.get_cart_item(cart.id, item_id) if cart else None
                if not item:
                    raise NotFoundError("Cart item not found")

                product = self.product_repo.get_product(item.product_id)
                if not product.in_stock or product.stock < quantity:
                    raise InsufficientStockError(product.name, product.stock, quantity)

                if quantity > item.quantity:
                    item.price = product.price
                item.quantity = quantity

                logger.info(f"Cart item {item_id} in cart {cart.id} set to quantity {quantity}")
                self._recalculate_total(cart)

        return self.get_cart(user_id)

    def remove_item(self, user_id: int, item_id: int) -> Dict[str, Any]:
        with self.lock_service.cart_lock(user_id):
            with transaction(self.db):
                cart = self.repo.get_cart_by_user(user_id)
                item = self.repo.get_cart_item(cart.id, item_id) if cart else None
                if not item:
                    raise NotFoundError("Cart item not found")

                self.repo.delete_cart_item(item)
                logger.info(f"Cart item {item_id} removed from cart {cart.id}")
                self._recalculate_total(cart)

        return self.get_cart(user_id)

    def clear_cart(self, user_id: int) -> Dict[str, Any]:
        with self.lock_service.cart_lock(user_id):
            with transaction(self.db):
                cart = self._get_or_create_cart(user_id)
                removed = self.repo.delete_all_items(cart.id)
                self._bump_version(cart, ZERO)
                logger.info(f"Cart {cart.id} cleared, {removed} items removed")

        return self.get_cart(user_id)

    #helpers
    @staticmethod
    def _check_quantity(quantity: int) -> None:
        if quantity < 1 or quantity > MAX_QUANTITY_PER_PRODUCT:
            raise InvalidInputError(f"Quantity must be between 1 and {MAX_QUANTITY_PER_PRODUCT}")

    def _create_cart(self, user_id: int) -> CartModel:
        cart = self.repo.create_cart(CartModel(user_id=user_id, total=ZERO, version=1))
        logger.info(f"Created cart {cart.id} for user {user_id}")
        return cart

    def _get_or_create_cart(self, user_id: int) -> CartModel:
        cart = self.repo.get_cart_by_user(user_id)
        return cart or self._create_cart(user_id)

    def _recalculate_total(self, cart: CartModel) -> Decimal:
        self.db.flush()
        items = self.repo.get_cart_items(cart.id)
        total = sum((line_total(i.price, i.quantity) for i in items), ZERO)
        self._bump_version(cart, total)
        return total

    def _bump_version(self, cart: CartModel, total: Decimal) -> None:
        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=cart.version,
            new_data={"total": total},
        )

        # UPDATE carts SET version = 2 WHERE id = 1 AND version = 1 -> 0 rows means we lost
        if rowcount == 0:
            logger.warning(f"Version conflict on cart {cart.id}")
            raise ConflictError("Cart was modified by another request, please retry")

    def _to_dict(self, cart: CartModel) -> Dict[str, Any]:
        items = [
            {
                "id": i.id,
                "product_id": i.product_id,
                "product_name": i.product.name,
                "quantity": i.quantity,
                "price": i.price,
                "subtotal": line_total(i.price, i.quantity),
                "in_stock": i.product.in_stock,
                "stock": i.product.stock,
            }
            for i in cart.items
        ]

        return {
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "items": items,
            "total": cart.total,
            "item_count": sum(i["quantity"] for i in items),
            "updated_at": cart.updated_at,
        }
