"""Order lifecycle rules.

Order status::

    PENDING -> CONFIRMED | CANCELLED
    CONFIRMED -> SHIPPED | CANCELLED
    SHIPPED -> DELIVERED
    DELIVERED, CANCELLED are terminal

Payment status can only leave PENDING (to COMPLETED or FAILED) through a
payment update. REFUNDED is set by cancellation and nothing else.
"""
from shop.domain.enums import OrderStatus, PaymentStatus
from shop.domain.errors import InvalidTransitionError

ORDER_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.COMPLETED: frozenset(),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}

CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})


def can_transition(current: str, new: str) -> bool:
    return OrderStatus(new) in ORDER_TRANSITIONS[OrderStatus(current)]


def ensure_transition(current: str, new: str) -> None:
    if not can_transition(current, new):
        raise InvalidTransitionError("order status", OrderStatus(current).value, OrderStatus(new).value)


def ensure_payment_transition(current: str, new: str) -> None:
    if PaymentStatus(new) not in PAYMENT_TRANSITIONS[PaymentStatus(current)]:
        raise InvalidTransitionError(
            "payment status", PaymentStatus(current).value, PaymentStatus(new).value
        )


def is_cancellable(status: str) -> bool:
    return OrderStatus(status) in CANCELLABLE_STATUSES
