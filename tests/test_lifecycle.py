"""Tests for the order lifecycle rules."""

import pytest

from shop.domain import lifecycle
from shop.domain.enums import OrderStatus, PaymentStatus
from shop.domain.errors import BusinessRuleViolation, InvalidTransitionError


class TestOrderTransitions:
    @pytest.mark.parametrize(
        "current,new",
        [
            (OrderStatus.PENDING, OrderStatus.CONFIRMED),
            (OrderStatus.PENDING, OrderStatus.CANCELLED),
            (OrderStatus.CONFIRMED, OrderStatus.SHIPPED),
            (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
            (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
        ],
    )
    def test_legal_path(self, current, new):
        assert lifecycle.can_transition(current, new)
        lifecycle.ensure_transition(current.value, new.value)

    @pytest.mark.parametrize(
        "current,new",
        [
            (OrderStatus.PENDING, OrderStatus.SHIPPED),
            (OrderStatus.PENDING, OrderStatus.PENDING),
            (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
            (OrderStatus.DELIVERED, OrderStatus.PENDING),
            (OrderStatus.CANCELLED, OrderStatus.CONFIRMED),
        ],
    )
    def test_illegal_transition_rejected(self, current, new):
        assert not lifecycle.can_transition(current, new)
        with pytest.raises(InvalidTransitionError) as exc:
            lifecycle.ensure_transition(current.value, new.value)
        assert current.value in str(exc.value)
        assert new.value in str(exc.value)

    def test_invalid_transition_is_business_rule(self):
        assert issubclass(InvalidTransitionError, BusinessRuleViolation)

    def test_terminal_states(self):
        assert lifecycle.ORDER_TRANSITIONS[OrderStatus.DELIVERED] == frozenset()
        assert lifecycle.ORDER_TRANSITIONS[OrderStatus.CANCELLED] == frozenset()

    def test_cancellable(self):
        assert lifecycle.is_cancellable("PENDING")
        assert lifecycle.is_cancellable("CONFIRMED")
        assert not lifecycle.is_cancellable("SHIPPED")
        assert not lifecycle.is_cancellable("DELIVERED")
        assert not lifecycle.is_cancellable("CANCELLED")


class TestPaymentTransitions:
    def test_pending_can_complete_or_fail(self):
        lifecycle.ensure_payment_transition("PENDING", "COMPLETED")
        lifecycle.ensure_payment_transition("PENDING", "FAILED")

    @pytest.mark.parametrize("new", [PaymentStatus.REFUNDED, PaymentStatus.PENDING])
    def test_pending_cannot_jump(self, new):
        with pytest.raises(InvalidTransitionError):
            lifecycle.ensure_payment_transition(PaymentStatus.PENDING, new)

    def test_refund_only_via_cancellation(self):
        with pytest.raises(InvalidTransitionError):
            lifecycle.ensure_payment_transition("COMPLETED", "REFUNDED")
        with pytest.raises(InvalidTransitionError):
            lifecycle.ensure_payment_transition("FAILED", "REFUNDED")
