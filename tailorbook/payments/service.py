from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Any, List, Mapping, Optional

from .. import ledger
from ..customers.service import adjust_spent
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Order, Payment, User
from ..orders.service import payment_payload
from ..records import ADVANCE_TYPE, PaymentMode, parse_amount, parse_enum
from ..utils.audit import log_event
from ..utils.dates import current_time, parse_date

logger = logging.getLogger(__name__)


def _amount(raw: Any) -> float:
    amount = parse_amount(raw, "amount", default=None)
    if amount is None or amount <= 0:
        raise ValidationError("Please enter a valid payment amount.")
    return round(amount, 2)


def _payment_date(raw: Any) -> date:
    if raw in (None, ""):
        return date.today()
    parsed = parse_date(raw)
    if parsed is None:
        raise ValidationError("Invalid payment date.")
    return parsed


def _is_advance(payment: Payment) -> bool:
    return (payment.type or "") == ADVANCE_TYPE


def _balance_excluding(order: Order, excluded: Optional[Payment] = None) -> float:
    records = [p.to_record() for p in order.payments if p is not excluded]
    record = order.to_record()
    if excluded is not None and _is_advance(excluded):
        # order.advance mirrors the excluded row; leave it out too
        record = replace(record, advance=0.0)
    return ledger.balance(record, records)


def _check_bound(amount: float, balance: float) -> None:
    if amount > round(balance, 2):
        raise ValidationError("Payment cannot be greater than the balance due.")


def get_payment(owner_id: str, payment_id: str) -> Payment:
    payment = db.session.get(Payment, payment_id)
    if payment is None or payment.owner_id != owner_id:
        raise NotFoundError("Payment not found.")
    return payment


def list_payments(owner_id: str, order_id: Optional[str] = None) -> List[Payment]:
    query = Payment.query.filter_by(owner_id=owner_id)
    if order_id:
        query = query.filter_by(order_id=order_id)
    return query.order_by(Payment.date.desc(), Payment.created_at.desc()).all()


def add_payment(owner: User, order: Order, data: Mapping[str, Any]) -> Payment:
    """Record a top-up payment against an order. ``order.advance`` is left alone."""
    amount = _amount(data.get("amount"))
    _check_bound(amount, _balance_excluding(order))
    tag = (data.get("type") or "").strip() or None
    if tag == ADVANCE_TYPE:
        raise ValidationError("Advance payments are only recorded when the order is created.")

    payment = Payment(
        owner_id=owner.id,
        order=order,
        customer_id=order.customer_id,
        bill_no=order.bill_no,
        amount=amount,
        mode=parse_enum(PaymentMode, data.get("mode"), "payment mode", default=PaymentMode.CASH).value,
        type=tag,
        date=_payment_date(data.get("date")),
        time=data.get("time") or current_time(),
        created_at=datetime.utcnow(),
    )
    db.session.add(payment)
    adjust_spent(order.customer, amount)
    db.session.flush()
    log_event("payment.create", "payment", payment.id, after=payment_payload(payment))
    db.session.commit()
    logger.info("Payment of %.2f recorded on %s", amount, order.bill_no)
    return payment


def edit_payment(payment: Payment, data: Mapping[str, Any]) -> Payment:
    order = payment.order
    before = payment_payload(payment)
    previous_amount = float(payment.amount or 0)

    if "amount" in data:
        amount = _amount(data.get("amount"))
        if order is not None:
            _check_bound(amount, _balance_excluding(order, excluded=payment))
        payment.amount = amount
        if order is not None and _is_advance(payment):
            order.advance = amount
    if "mode" in data:
        payment.mode = parse_enum(PaymentMode, data.get("mode"), "payment mode").value
    if "date" in data:
        payment.date = _payment_date(data.get("date"))

    adjust_spent(order.customer if order else None, float(payment.amount) - previous_amount)
    log_event("payment.update", "payment", payment.id, before=before, after=payment_payload(payment))
    db.session.commit()
    return payment


def delete_payment(payment: Payment) -> None:
    order = payment.order
    adjust_spent(order.customer if order else None, -float(payment.amount or 0))
    if order is not None and _is_advance(payment):
        order.advance = 0
    log_event("payment.delete", "payment", payment.id, before=payment_payload(payment))
    db.session.delete(payment)
    db.session.commit()
