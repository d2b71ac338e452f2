# shop/services/order_service.py
import math
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy.orm import Session

from shop.data.database import transaction
from shop.data.models.order import OrderModel
from shop.data.models.order_item import OrderItemModel
from shop.domain import lifecycle
from shop.domain.auth import Principal, require_admin, require_owner_or_admin
from shop.domain.enums import OrderStatus, PaymentStatus
from shop.domain.errors import (
    BusinessRuleViolation,
    ConflictError,
    EmptyCartError,
    ForbiddenError,
    InsufficientStockError,
    InvalidInputError,
    NotFoundError,
)
from shop.repos.cart_repo import CartRepo
from shop.repos.order_repo import OrderRepo
from shop.repos.product_repo import ProductRepo
from shop.services.cart_service import ZERO, line_total
from shop.services.inventory_service import InventoryService
from shop.services.lock_service import LockService
from shop.services.notification_service import NotificationService
from shop.utils.settings import ORDERS_PAGE_LIMIT_MAX
from shop.utils.logging import get_logger

logger = get_logger(__name__)

ADDRESS_MIN, ADDRESS_MAX = 5, 500
NOTES_MAX = 1000


class OrderService:
    """
    Order domain: checkout (cart -> order) and everything that happens to an
    order afterwards. Kept separate from CartService, it only touches cart
    rows to empty the cart during checkout.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService,
        notification_service: NotificationService | None = None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.cart_repo = CartRepo(db)
        self.product_repo = ProductRepo(db)
        self.inventory = InventoryService(db)
        self.lock_service = lock_service
        self.notification_service = notification_service or NotificationService()

    #commands
    def create_order(
        self,
        user_id: int,
        shipping_address: str,
        billing_address: str | None = None,
        notes: str | None = None,
    ) -> Dict[str, Any]:
        """
        Use Case: checkout.

        One transaction, all or nothing:
        1. load the cart with its items, empty cart -> EmptyCartError
        2. re-read every product inside the transaction (FOR UPDATE, ascending product id) and re-check stock
        3. sum the total from the fresh prices
        4. reserve stock for every line
        5. create the order (PENDING / PENDING)
        6. create order items with price/total snapshots from step 3
        7. empty the cart, total = 0
        8. commit
        """
        shipping_address = (shipping_address or "").strip()
        if billing_address is not None:
            billing_address = billing_address.strip()
        self._check_order_input(shipping_address, billing_address, notes)

        with self.lock_service.cart_lock(user_id):
            with transaction(self.db):
                cart = self.cart_repo.get_cart_by_user(user_id)
                if not cart or not cart.items:
                    raise EmptyCartError()

                lines = []
                total_amount = ZERO
                # fixed lock order across concurrent checkouts
                for cart_item in sorted(cart.items, key=lambda i: i.product_id):
                    product = self.product_repo.get_product_for_update(cart_item.product_id)
                    if not product:
                        raise NotFoundError(f"Product with ID {cart_item.product_id} not found")

                    if not product.in_stock or product.stock < cart_item.quantity:
                        raise InsufficientStockError(product.name, product.stock, cart_item.quantity)

                    price = product.price
                    item_total = line_total(price, cart_item.quantity)
                    total_amount += item_total
                    lines.append((product.id, cart_item.quantity, price, item_total))

                for product_id, quantity, _, _ in lines:
                    self.inventory.reserve(product_id, quantity)

                order = self.repo.create_order(
                    OrderModel(
                        user_id=user_id,
                        status=OrderStatus.PENDING.value,
                        payment_status=PaymentStatus.PENDING.value,
                        total_amount=total_amount,
                        shipping_address=shipping_address,
                        billing_address=billing_address,
                        notes=notes,
                    )
                )

                for product_id, quantity, price, item_total in lines:
                    self.repo.add_order_item(
                        OrderItemModel(
                            order_id=order.id,
                            product_id=product_id,
                            quantity=quantity,
                            price=price,
                            total=item_total,
                        )
                    )

                self.cart_repo.delete_all_items(cart.id)
                rowcount = self.cart_repo.update_cart_version(
                    cart_id=cart.id,
                    old_version=cart.version,
                    new_data={"total": ZERO},
                )
                if rowcount == 0:
                    raise ConflictError("Cart was modified by another request, please retry")

                order_id = order.id

        logger.info(f"Order {order_id} created for user {user_id}, total {total_amount}")
        self.notification_service.send_order_notification(user_id, order_id, "created")

        return self._to_dict(self._load_order(order_id))

    def cancel_order(self, user_id: int, order_id: int) -> Dict[str, Any]:
        """
        Use Case: customer cancels own order.
        Stock release and status change commit together.
        """
        with transaction(self.db):
            order = self.repo.get_order_for_update(order_id)

            if not order:
                raise NotFoundError("Order not found")

            if order.user_id != user_id:
                raise ForbiddenError("Access to this order is forbidden")

            if not lifecycle.is_cancellable(order.status):
                raise BusinessRuleViolation("Order cannot be cancelled at this stage")

            self._cancel(order)

        logger.info(f"Order {order_id} cancelled by user {user_id}")
        self.notification_service.send_order_notification(order.user_id, order_id, "cancelled")

        return self._to_dict(self._load_order(order_id))

    def update_status(
        self,
        principal: Principal,
        order_id: int,
        status: str,
        notes: str | None = None,
    ) -> Dict[str, Any]:
        """
        Use Case: administrative status change.
        Only transitions on the documented lifecycle are accepted.
        """
        require_admin(principal)
        new_status = self._parse(OrderStatus, status)
        if notes is not None and len(notes) > NOTES_MAX:
            raise InvalidInputError(f"Notes must not exceed {NOTES_MAX} characters")

        with transaction(self.db):
            order = self.repo.get_order_for_update(order_id)
            if not order:
                raise NotFoundError("Order not found")

            lifecycle.ensure_transition(order.status, new_status)

            old_status = order.status
            if new_status == OrderStatus.CANCELLED:
                self._cancel(order)
            else:
                order.status = new_status.value

            if notes:
                order.notes = notes

            owner_id = order.user_id

        logger.info(f"Order {order_id} status {old_status} -> {new_status.value} by admin {principal.user_id}")
        self.notification_service.send_order_notification(owner_id, order_id, new_status.value.lower())

        return self._to_dict(self._load_order(order_id))

    def apply_payment_status(self, principal: Principal, order_id: int, payment_status: str) -> Dict[str, Any]:
        """
        Use Case: payment result from the payment collaborator.

        COMPLETED on a PENDING order confirms it.
        FAILED cancels the order and gives its stock back, payment stays FAILED.
        """
        require_admin(principal)
        new_payment = self._parse(PaymentStatus, payment_status)

        with transaction(self.db):
            order = self.repo.get_order_for_update(order_id)
            if not order:
                raise NotFoundError("Order not found")

            lifecycle.ensure_payment_transition(order.payment_status, new_payment)

            if new_payment == PaymentStatus.COMPLETED and order.status == OrderStatus.PENDING:
                order.status = OrderStatus.CONFIRMED.value
            elif new_payment == PaymentStatus.FAILED:
                lifecycle.ensure_transition(order.status, OrderStatus.CANCELLED)
                self._release_stock(order)
                order.status = OrderStatus.CANCELLED.value

            order.payment_status = new_payment.value
            owner_id = order.user_id
            status = order.status

        logger.info(f"Order {order_id} payment {new_payment.value}, status {status}")
        self.notification_service.send_order_notification(owner_id, order_id, f"payment_{new_payment.value.lower()}")

        return self._to_dict(self._load_order(order_id))

    #queries
    def get_order(self, principal: Principal, order_id: int) -> Dict[str, Any]:
        order = self.repo.get_order(order_id)

        if not order:
            raise NotFoundError("Order not found")

        require_owner_or_admin(principal, order.user_id)

        return self._to_dict(order)

    def list_user_orders(self, user_id: int, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        return self._paginate(page, limit, user_id=user_id)

    def list_all_orders(self, principal: Principal, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        require_admin(principal)
        return self._paginate(page, limit)

    def get_order_stats(self, principal: Principal, user_id: int | None = None) -> Dict[str, Any]:
        require_admin(principal)
        stats = self.repo.get_stats(user_id)

        by_status = {s.value: 0 for s in OrderStatus}
        by_status.update(stats["orders_by_status"])

        return {
            "total_orders": stats["total_orders"],
            "total_revenue": Decimal(stats["total_revenue"] or ZERO).quantize(ZERO),
            "orders_by_status": by_status,
        }

    #helpers
    def _cancel(self, order: OrderModel) -> None:
        self._release_stock(order)
        order.status = OrderStatus.CANCELLED.value
        order.payment_status = PaymentStatus.REFUNDED.value

    def _release_stock(self, order: OrderModel) -> None:
        for item in order.items:
            self.inventory.release(item.product_id, item.quantity)

    def _load_order(self, order_id: int) -> OrderModel:
        return self.repo.get_order(order_id)

    def _paginate(self, page: int, limit: int, user_id: int | None = None) -> Dict[str, Any]:
        if page < 1:
            raise InvalidInputError("Page must be at least 1")
        if limit < 1 or limit > ORDERS_PAGE_LIMIT_MAX:
            raise InvalidInputError(f"Limit must be between 1 and {ORDERS_PAGE_LIMIT_MAX}")

        orders, total = self.repo.list_orders(offset=(page - 1) * limit, limit=limit, user_id=user_id)
        total_pages = math.ceil(total / limit)

        return {
            "items": [self._to_dict(o) for o in orders],
            "current_page": page,
            "total_pages": total_pages,
            "total_count": total,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        }

    @staticmethod
    def _parse(enum_cls, value):
        try:
            return enum_cls(value)
        except ValueError:
            allowed = ", ".join(s.value for s in enum_cls)
            raise InvalidInputError(f"Status must be one of: {allowed}") from None

    @staticmethod
    def _check_order_input(shipping_address: str, billing_address: str | None, notes: str | None) -> None:
        if not shipping_address or not (ADDRESS_MIN <= len(shipping_address) <= ADDRESS_MAX):
            raise InvalidInputError(
                f"Shipping address must be between {ADDRESS_MIN} and {ADDRESS_MAX} characters long"
            )
        if billing_address is not None and not (ADDRESS_MIN <= len(billing_address) <= ADDRESS_MAX):
            raise InvalidInputError(
                f"Billing address must be between {ADDRESS_MIN} and {ADDRESS_MAX} characters long"
            )
        if notes is not None and len(notes) > NOTES_MAX:
            raise InvalidInputError(f"Notes must not exceed {NOTES_MAX} characters")

    @staticmethod
    def _to_dict(order: OrderModel) -> Dict[str, Any]:
        return {
            "id": order.id,
            "user_id": order.user_id,
            "status": order.status,
            "payment_status": order.payment_status,
            "total_amount": order.total_amount,
            "shipping_address": order.shipping_address,
            "billing_address": order.billing_address,
            "notes": order.notes,
            "created_at": order.created_at,
            "updated_at": order.updated_at,
            "items": [
                {
                    "id": i.id,
                    "product_id": i.product_id,
                    "product_name": i.product.name,
                    "quantity": i.quantity,
                    "price": i.price,
                    "total": i.total,
                }
                for i in order.items
            ],
        }
