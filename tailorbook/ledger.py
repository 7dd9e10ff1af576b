"""Order and payment reconciliation.

Balances are always derived from the item list and the payment ledger; the
stored order never carries its own balance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from .errors import ValidationError
from .records import ItemStatus, OrderRecord, OrderStatus, OutfitItem, PaymentRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderSummary:
    active_total: float
    collected: float
    balance: float
    payment_status: OrderStatus
    refund_due: bool

    def to_dict(self) -> dict:
        return {
            "total": self.active_total,
            "collected": self.collected,
            "balance": self.balance,
            "payment_status": self.payment_status.value,
            "refund_due": self.refund_due,
            "refund_amount": abs(self.balance) if self.refund_due else 0.0,
        }


@dataclass(frozen=True)
class CancellationPreview:
    order: OrderRecord
    item_index: int
    cancelled_amount: float
    previous_total: float
    active_total: float
    collected: float
    balance: float
    all_items_cancelled: bool

    @property
    def refund_due(self) -> bool:
        return self.balance < 0

    @property
    def refund_amount(self) -> float:
        return round(-self.balance, 2) if self.balance < 0 else 0.0

    @property
    def collect_amount(self) -> float:
        return round(self.balance, 2) if self.balance > 0 else 0.0

    def to_dict(self) -> dict:
        return {
            "item_index": self.item_index,
            "cancelled_amount": self.cancelled_amount,
            "previous_total": self.previous_total,
            "total": self.active_total,
            "collected": self.collected,
            "balance": self.balance,
            "refund_due": self.refund_due,
            "refund_amount": self.refund_amount,
            "collect_amount": self.collect_amount,
            "all_items_cancelled": self.all_items_cancelled,
        }


def active_total(items: Iterable[OutfitItem]) -> float:
    return round(sum(item.contribution for item in items if not item.is_cancelled), 2)


def total_collected(payments: Sequence[PaymentRecord], order: OrderRecord) -> float:
    """Sum the payment ledger, adding the legacy ``order.advance`` field only
    when no payment record is tagged ``Advance``.

    The rule assumes at most one ``Advance`` payment exists and that
    ``order.advance`` is never edited after that payment was written.
    """
    advance_records = [payment for payment in payments if payment.is_advance]
    if len(advance_records) > 1:
        logger.warning(
            "Order %s has %d payments tagged Advance; collected total may be off",
            order.id, len(advance_records),
        )
    collected = sum(payment.amount for payment in payments)
    if not advance_records:
        collected += order.advance or 0
    return round(collected, 2)


def balance(order: OrderRecord, payments: Sequence[PaymentRecord]) -> float:
    return round(active_total(order.items) - total_collected(payments, order), 2)


def payment_status(total: float, collected: float) -> OrderStatus:
    if total > 0 and collected >= total:
        return OrderStatus.PAID
    if collected > 0:
        return OrderStatus.PARTIAL
    return OrderStatus.DUE


def summarise(order: OrderRecord, payments: Sequence[PaymentRecord]) -> OrderSummary:
    total = active_total(order.items)
    collected = total_collected(payments, order)
    remaining = round(total - collected, 2)
    return OrderSummary(
        active_total=total,
        collected=collected,
        balance=remaining,
        payment_status=payment_status(total, collected),
        refund_due=remaining < 0,
    )


def cancel_item(order: OrderRecord, item_index: int,
                payments: Sequence[PaymentRecord]) -> CancellationPreview:
    """Work out what cancelling one item does to the order's money.

    Nothing is applied here: the caller shows the preview (refund owed or
    extra collection needed) and persists ``preview.order`` only once the
    user confirms.
    """
    if item_index < 0 or item_index >= len(order.items):
        raise ValidationError("Item not found on this order.")
    target = order.items[item_index]
    if target.is_cancelled:
        raise ValidationError("Item is already cancelled.")

    previous_total = active_total(order.items)
    items = list(order.items)
    items[item_index] = target.with_status(ItemStatus.CANCELLED)
    updated = order.with_items(items)

    new_total = active_total(items)
    collected = total_collected(payments, updated)
    return CancellationPreview(
        order=updated,
        item_index=item_index,
        cancelled_amount=round(target.contribution, 2),
        previous_total=previous_total,
        active_total=new_total,
        collected=collected,
        balance=round(new_total - collected, 2),
        all_items_cancelled=all(item.is_cancelled for item in items),
    )
