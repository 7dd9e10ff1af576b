"""Typed shapes for the documents that flow through orders and payments.

Everything read back from storage or posted by a client passes through
``from_document`` so bad statuses and non-numeric amounts are caught at the
boundary instead of deep inside the ledger arithmetic.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

from .errors import ValidationError


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    TRIAL = "Trial"
    COMPLETED = "Completed"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"
    DUE = "Due"
    PARTIAL = "Partial"
    PAID = "Paid"
    ACTIVE = "Active"


class ItemStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    TRIAL = "Trial"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class PaymentMode(str, enum.Enum):
    CASH = "Cash"
    UPI = "UPI"
    GPAY = "GPay"
    CARD = "Card"


ADVANCE_TYPE = "Advance"
CLOSED_ORDER_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


def new_id() -> str:
    return uuid.uuid4().hex


def parse_enum(enum_cls, raw: Any, field_name: str, default=None):
    if raw is None or raw == "":
        if default is None:
            raise ValidationError(f"{field_name} is required.")
        return default
    if isinstance(raw, enum_cls):
        return raw
    for member in enum_cls:
        if str(raw).strip().lower() == member.value.lower():
            return member
    allowed = ", ".join(member.value for member in enum_cls)
    raise ValidationError(f"Invalid {field_name} '{raw}'. Expected one of: {allowed}.")


def parse_amount(raw: Any, field_name: str, default: Optional[float] = 0.0) -> Optional[float]:
    if raw is None or raw == "":
        return default
    if isinstance(raw, bool):
        raise ValidationError(f"{field_name} must be numeric.")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be numeric.")
    if value != value:  # NaN
        raise ValidationError(f"{field_name} must be numeric.")
    return value


def _parse_quantity(raw: Any) -> int:
    if raw is None or raw == "":
        return 1
    try:
        qty = int(float(raw))
    except (TypeError, ValueError):
        raise ValidationError("qty must be a whole number.")
    if qty < 1:
        raise ValidationError("qty must be at least 1.")
    return qty


def _string_map(raw: Any, field_name: str) -> Dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValidationError(f"{field_name} must be an object.")
    return {str(key): "" if value is None else str(value) for key, value in raw.items()}


def _string_list(raw: Any, field_name: str) -> List[str]:
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValidationError(f"{field_name} must be a list.")
    return [str(value) for value in raw if value]


@dataclass(frozen=True)
class OutfitItem:
    id: str
    type: str
    quantity: int = 1
    amount: Optional[float] = None
    total_cost: Optional[float] = None
    rate: Optional[float] = None
    subtype: Optional[str] = None
    fabric_source: str = "Customer"
    measurements: Dict[str, str] = field(default_factory=dict)
    images: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    audio_uri: Optional[str] = None
    description: Optional[str] = None
    delivery_date: Optional[str] = None
    trial_date: Optional[str] = None
    status: ItemStatus = ItemStatus.PENDING

    @property
    def contribution(self) -> float:
        # amount, then totalCost, then rate x qty; a zero falls through like a missing value
        if self.amount:
            return float(self.amount)
        if self.total_cost:
            return float(self.total_cost)
        if self.rate:
            return float(self.rate) * self.quantity
        return 0.0

    @property
    def is_cancelled(self) -> bool:
        return self.status is ItemStatus.CANCELLED

    def with_status(self, status: ItemStatus) -> "OutfitItem":
        return replace(self, status=status)

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "OutfitItem":
        if not isinstance(doc, Mapping):
            raise ValidationError("Each item must be an object.")
        garment = (doc.get("type") or doc.get("name") or "").strip()
        if not garment:
            raise ValidationError("Outfit type is required for every item.")
        return cls(
            id=str(doc.get("id") or new_id()),
            type=garment,
            quantity=_parse_quantity(doc.get("qty", doc.get("quantity"))),
            amount=parse_amount(doc.get("amount"), "amount", default=None),
            total_cost=parse_amount(doc.get("totalCost"), "totalCost", default=None),
            rate=parse_amount(doc.get("rate"), "rate", default=None),
            subtype=doc.get("subtype") or None,
            fabric_source=doc.get("fabricSource") or "Customer",
            measurements=_string_map(doc.get("measurements"), "measurements"),
            images=_string_list(doc.get("images"), "images"),
            notes=doc.get("notes") or None,
            audio_uri=doc.get("audioUri") or doc.get("voiceNote") or None,
            description=doc.get("description") or None,
            delivery_date=doc.get("deliveryDate") or None,
            trial_date=doc.get("trialDate") or None,
            status=parse_enum(ItemStatus, doc.get("status"), "item status", default=ItemStatus.PENDING),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "qty": self.quantity,
            "amount": self.amount,
            "totalCost": self.total_cost,
            "rate": self.rate,
            "subtype": self.subtype,
            "fabricSource": self.fabric_source,
            "measurements": dict(self.measurements),
            "images": list(self.images),
            "notes": self.notes,
            "audioUri": self.audio_uri,
            "description": self.description,
            "deliveryDate": self.delivery_date,
            "trialDate": self.trial_date,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class PaymentRecord:
    id: str
    order_id: Optional[str]
    amount: float
    mode: PaymentMode = PaymentMode.CASH
    customer_id: Optional[str] = None
    date: Optional[str] = None
    type: Optional[str] = None

    @property
    def is_advance(self) -> bool:
        return (self.type or "") == ADVANCE_TYPE

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "PaymentRecord":
        amount = parse_amount(doc.get("amount"), "amount")
        return cls(
            id=str(doc.get("id") or new_id()),
            order_id=doc.get("orderId"),
            amount=amount,
            mode=parse_enum(PaymentMode, doc.get("mode"), "payment mode", default=PaymentMode.CASH),
            customer_id=doc.get("customerId"),
            date=doc.get("date"),
            type=doc.get("type") or None,
        )


@dataclass(frozen=True)
class OrderRecord:
    id: Optional[str]
    items: List[OutfitItem]
    advance: float = 0.0
    status: OrderStatus = OrderStatus.PENDING
    bill_no: Optional[str] = None
    customer_id: Optional[str] = None

    def with_items(self, items: List[OutfitItem]) -> "OrderRecord":
        return replace(self, items=list(items))

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "OrderRecord":
        raw_items = doc.get("items") or []
        if not isinstance(raw_items, (list, tuple)):
            raise ValidationError("items must be a list.")
        return cls(
            id=doc.get("id"),
            items=[OutfitItem.from_document(item) for item in raw_items],
            advance=parse_amount(doc.get("advance"), "advance"),
            status=parse_enum(OrderStatus, doc.get("status"), "order status", default=OrderStatus.PENDING),
            bill_no=doc.get("billNo"),
            customer_id=doc.get("customerId"),
        )
