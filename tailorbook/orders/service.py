"""Order lifecycle: creation, edits, item cancellation and deletion.

Money figures in every payload come from ``ledger.summarise`` over the
order's items and payment rows; nothing here writes a balance column.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from .. import ledger
from ..customers.service import forget_order, record_order, resolve_order_customer
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..measurements import sorted_measurements, split_measurements
from ..models import Order, Payment, User
from ..records import ADVANCE_TYPE, OrderRecord, OrderStatus, OutfitItem, PaymentMode, parse_enum
from ..utils.audit import log_event
from ..utils.billing import next_bill_number
from ..utils.dates import current_time, format_date, parse_date, to_storage
from ..utils.validation import validate_phone

logger = logging.getLogger(__name__)

URGENCY_LEVELS = ("Normal", "Urgent")


def summary_for(order: Order) -> ledger.OrderSummary:
    return ledger.summarise(order.to_record(), order.payment_records())


def payment_payload(payment: Payment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "orderId": payment.order_id,
        "billNo": payment.bill_no,
        "customerId": payment.customer_id,
        "amount": round(float(payment.amount or 0), 2),
        "mode": payment.mode,
        "type": payment.type,
        "date": format_date(payment.date),
        "time": payment.time,
    }


def order_payload(order: Order, include_payments: bool = False) -> Dict[str, Any]:
    summary = summary_for(order)
    payload = {
        "id": order.id,
        "billNo": order.bill_no,
        "customerId": order.customer_id,
        "customerName": order.customer_name,
        "customerMobile": order.customer_mobile,
        "date": format_date(order.date),
        "time": order.time,
        "items": [item.to_document() for item in order.outfits],
        "advance": round(float(order.advance or 0), 2),
        "status": order.status,
        "notes": order.notes,
        "urgency": order.urgency,
        "deliveryDate": format_date(order.delivery_date),
        "trialDate": format_date(order.trial_date),
        "createdAt": order.created_at.isoformat() if order.created_at else None,
        "summary": summary.to_dict(),
    }
    if include_payments:
        payload["payments"] = [payment_payload(p) for p in order.payments]
    return payload


def _optional_date(raw: Any, label: str) -> Optional[date]:
    if raw in (None, ""):
        return None
    parsed = parse_date(raw)
    if parsed is None:
        raise ValidationError(f"Invalid {label}.")
    return parsed


def get_order(owner_id: str, order_id: str) -> Order:
    order = db.session.get(Order, order_id)
    if order is None or order.owner_id != owner_id:
        raise NotFoundError("Order not found.")
    return order


def list_orders(owner_id: str, status: Optional[str] = None,
                payment_status: Optional[str] = None) -> List[Order]:
    query = Order.query.filter_by(owner_id=owner_id)
    if status:
        query = query.filter_by(status=parse_enum(OrderStatus, status, "order status").value)
    rows = query.order_by(Order.created_at.desc()).all()
    if payment_status:
        wanted = parse_enum(OrderStatus, payment_status, "payment status")
        rows = [order for order in rows if summary_for(order).payment_status is wanted]
    return rows


def create_order(owner: User, payload: Mapping[str, Any]) -> Order:
    """Persist a new order, its customer stats and the opening Advance payment together."""
    record = OrderRecord.from_document(payload)
    if not record.items:
        raise ValidationError("Add at least one outfit to the order.")
    total = ledger.active_total(record.items)
    if total <= 0:
        raise ValidationError("Total order value cannot be zero.")

    advance = record.advance or 0.0
    if advance < 0:
        raise ValidationError("Advance cannot be negative.")
    advance_mode = parse_enum(PaymentMode, payload.get("advanceMode"), "advance mode",
                              default=PaymentMode.CASH)

    name = (payload.get("customerName") or "").strip()
    mobile = str(payload.get("customerMobile") or "").strip()
    customer_id = payload.get("customerId")
    if not customer_id:
        if not name:
            raise ValidationError("Please select a customer.")
        if not validate_phone(mobile):
            raise ValidationError("Please enter a valid 10-digit mobile number.")
    customer = resolve_order_customer(owner, customer_id, name, mobile)

    now = datetime.utcnow()
    order = Order(
        owner_id=owner.id,
        bill_no=next_bill_number(owner.id),
        customer_id=customer.id,
        customer_name=name or customer.name,
        customer_mobile=mobile or customer.mobile,
        date=date.today(),
        time=payload.get("time") or current_time(),
        advance=advance,
        status=OrderStatus.PENDING.value,
        notes=(payload.get("notes") or "").strip() or None,
        urgency=payload.get("urgency") if payload.get("urgency") in URGENCY_LEVELS else "Normal",
        delivery_date=_optional_date(payload.get("deliveryDate"), "delivery date"),
        trial_date=_optional_date(payload.get("trialDate"), "trial date"),
        created_at=now,
    )
    order.set_outfits(record.items)
    db.session.add(order)

    if advance > 0:
        db.session.add(Payment(
            owner_id=owner.id,
            order=order,
            customer_id=customer.id,
            bill_no=order.bill_no,
            amount=advance,
            mode=advance_mode.value,
            type=ADVANCE_TYPE,
            date=order.date,
            time=order.time,
            created_at=now,
        ))

    record_order(customer, advance, now)
    db.session.flush()
    log_event("order.create", "order", order.id, after=order_payload(order))
    db.session.commit()
    logger.info("Order %s created for customer %s", order.bill_no, customer.id)
    return order


def update_order(order: Order, data: Mapping[str, Any]) -> Order:
    before = order_payload(order)
    if "notes" in data:
        order.notes = (data.get("notes") or "").strip() or None
    if "urgency" in data:
        if data["urgency"] not in URGENCY_LEVELS:
            raise ValidationError("Urgency must be Normal or Urgent.")
        order.urgency = data["urgency"]
    if "deliveryDate" in data:
        order.delivery_date = _optional_date(data["deliveryDate"], "delivery date")
    if "trialDate" in data:
        order.trial_date = _optional_date(data["trialDate"], "trial date")
    if "customerName" in data:
        name = (data.get("customerName") or "").strip()
        if not name:
            raise ValidationError("Customer name is required.")
        order.customer_name = name
    if "customerMobile" in data:
        mobile = str(data.get("customerMobile") or "").strip()
        if not validate_phone(mobile):
            raise ValidationError("Please enter a valid 10-digit mobile number.")
        order.customer_mobile = mobile
    log_event("order.update", "order", order.id, before=before, after=order_payload(order))
    db.session.commit()
    return order


def set_status(order: Order, raw_status: Any) -> Order:
    status = parse_enum(OrderStatus, raw_status, "order status")
    previous = order.status
    order.status = status.value
    log_event("order.status", "order", order.id, before={"status": previous},
              after={"status": order.status})
    db.session.commit()
    return order


def delete_order(order: Order) -> None:
    paid = sum(float(p.amount or 0) for p in order.payments)
    if order.customer is not None:
        forget_order(order.customer, paid)
    log_event("order.delete", "order", order.id, before=order_payload(order, include_payments=True))
    db.session.delete(order)
    db.session.commit()


def _item_index(order: Order, index: Any) -> int:
    try:
        position = int(index)
    except (TypeError, ValueError):
        raise ValidationError("Item not found on this order.")
    if position < 0 or position >= len(order.items or []):
        raise ValidationError("Item not found on this order.")
    return position


def add_item(order: Order, doc: Mapping[str, Any]) -> Order:
    item = OutfitItem.from_document(doc)
    if item.is_cancelled:
        raise ValidationError("New items cannot start out cancelled.")
    before = order.items
    order.set_outfits([*order.outfits, item])
    log_event("order.item.add", "order", order.id, before=before, after=order.items)
    db.session.commit()
    return order


def edit_item(order: Order, index: Any, changes: Mapping[str, Any]) -> Order:
    position = _item_index(order, index)
    outfits = order.outfits
    current = outfits[position]
    if current.is_cancelled:
        raise ValidationError("Item is already cancelled.")
    merged = {**current.to_document(), **changes, "id": current.id}
    # "qty" wins over "quantity" in documents, so a client sending "quantity" must replace it
    if "quantity" in changes and "qty" not in changes:
        merged["qty"] = changes["quantity"]
    updated = OutfitItem.from_document(merged)
    if updated.is_cancelled:
        raise ValidationError("Use the cancel action to cancel an item.")

    before = order.items
    outfits[position] = updated
    order.set_outfits(outfits)
    log_event("order.item.edit", "order", order.id, before=before, after=order.items)
    db.session.commit()
    return order


def delete_item(order: Order, index: Any) -> Order:
    position = _item_index(order, index)
    outfits = order.outfits
    if len(outfits) == 1:
        raise ValidationError("An order needs at least one item. Delete the order instead.")
    before = order.items
    del outfits[position]
    order.set_outfits(outfits)
    log_event("order.item.delete", "order", order.id, before=before, after=order.items)
    db.session.commit()
    return order


def preview_cancel(order: Order, index: Any) -> ledger.CancellationPreview:
    return ledger.cancel_item(order.to_record(), _item_index(order, index), order.payment_records())


def confirm_cancel(order: Order, index: Any, cancel_order: bool = False) -> ledger.CancellationPreview:
    """Apply an item cancellation the user has seen the preview for.

    When it was the last active item the caller decides, through
    ``cancel_order``, whether the whole order moves to Cancelled.
    """
    preview = preview_cancel(order, index)
    if cancel_order and not preview.all_items_cancelled:
        raise ValidationError("Only an order with every item cancelled can be cancelled.")

    before = {"items": order.items, "status": order.status}
    order.set_outfits(preview.order.items)
    if cancel_order:
        order.status = OrderStatus.CANCELLED.value
    log_event("order.item.cancel", "order", order.id, before=before,
              after={"items": order.items, "status": order.status, **preview.to_dict()})
    db.session.commit()
    if preview.refund_due:
        logger.info("Order %s owes a refund of %.2f after cancelling item %s",
                    order.bill_no, preview.refund_amount, preview.item_index)
    return preview



def item_detail(order: Order, index: Any) -> Dict[str, Any]:
    """One item with its measurements in tailoring order and options split out."""
    item = order.outfits[_item_index(order, index)]
    numeric, options = split_measurements(item.measurements)
    return {
        **item.to_document(),
        "index": int(index),
        "amount": item.contribution,
        "deliveryDate": to_storage(item.delivery_date) or item.delivery_date,
        "trialDate": to_storage(item.trial_date) or item.trial_date,
        "measurementRows": [
            {"name": name, "value": value} for name, value in sorted_measurements(item.type, numeric)
        ],
        "options": options,
    }
