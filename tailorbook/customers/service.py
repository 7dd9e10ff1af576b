from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, or_

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Company, Customer, Order, Payment, User
from ..utils.billing import next_customer_display_id
from ..utils.validation import validate_phone


def customer_payload(customer: Customer) -> Dict[str, Any]:
    return {
        "id": customer.id,
        "displayId": customer.display_id,
        "name": customer.name,
        "mobile": customer.mobile,
        "location": customer.location,
        "totalOrders": int(customer.total_orders or 0),
        "totalSpent": round(float(customer.total_spent or 0), 2),
        "lastOrderDate": customer.last_order_date.isoformat() if customer.last_order_date else None,
        "createdAt": customer.created_at.isoformat() if customer.created_at else None,
    }


def _clean(data: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    if "name" in data or not partial:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Customer name is required.")
        cleaned["name"] = name
    if "mobile" in data or not partial:
        mobile = str(data.get("mobile") or "").strip()
        if not validate_phone(mobile):
            raise ValidationError("Please enter a valid 10-digit mobile number.")
        cleaned["mobile"] = mobile
    if "location" in data:
        cleaned["location"] = (data.get("location") or "").strip() or None
    return cleaned


def list_customers(owner_id: str, search: Optional[str] = None) -> List[Customer]:
    query = Customer.query.filter_by(owner_id=owner_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Customer.name.ilike(pattern), Customer.mobile.like(pattern)))
    return query.order_by(func.lower(Customer.name).asc()).all()


def get_customer(owner_id: str, customer_id: str) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None or customer.owner_id != owner_id:
        raise NotFoundError("Customer not found.")
    return customer


def create_customer(owner: User, data: Mapping[str, Any], company: Optional[Company] = None,
                    commit: bool = True) -> Customer:
    fields = _clean(data)
    company = company or owner.company
    customer = Customer(
        owner_id=owner.id,
        display_id=next_customer_display_id(owner.id, company.name if company else None),
        total_orders=0,
        total_spent=0,
        **fields,
    )
    db.session.add(customer)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return customer


def update_customer(customer: Customer, data: Mapping[str, Any]) -> Customer:
    for key, value in _clean(data, partial=True).items():
        setattr(customer, key, value)
    db.session.commit()
    return customer


def delete_customer(customer: Customer) -> None:
    """Remove the directory entry; orders and payments keep their copied name and mobile."""
    Order.query.filter_by(customer_id=customer.id).update({"customer_id": None})
    Payment.query.filter_by(customer_id=customer.id).update({"customer_id": None})
    db.session.delete(customer)
    db.session.commit()


def resolve_order_customer(owner: User, customer_id: Optional[str], name: str,
                           mobile: str) -> Customer:
    """Customer for a new order: the selected one, else a match on mobile, else a new entry."""
    if customer_id:
        return get_customer(owner.id, customer_id)
    existing = Customer.query.filter_by(owner_id=owner.id, mobile=mobile).first()
    if existing is not None:
        return existing
    return create_customer(owner, {"name": name, "mobile": mobile}, commit=False)


def record_order(customer: Customer, advance: float, when: Optional[datetime] = None) -> None:
    customer.total_orders = int(customer.total_orders or 0) + 1
    customer.total_spent = float(customer.total_spent or 0) + float(advance or 0)
    customer.last_order_date = when or datetime.utcnow()


def forget_order(customer: Customer, paid: float) -> None:
    customer.total_orders = max(int(customer.total_orders or 0) - 1, 0)
    customer.total_spent = float(customer.total_spent or 0) - float(paid or 0)


def adjust_spent(customer: Optional[Customer], delta: float) -> None:
    if customer is None or not delta:
        return
    customer.total_spent = float(customer.total_spent or 0) + float(delta)
