from __future__ import annotations

from datetime import date
from typing import Optional

from ..models import Customer, Order

CUSTOMER_PREFIX_FALLBACK = "CU"


def _sequence(value: Optional[str], separator: str) -> int:
    if not value or separator not in value:
        return 0
    try:
        return int(value.rsplit(separator, 1)[1])
    except ValueError:
        return 0


def next_bill_number(owner_id: str, today: Optional[date] = None) -> str:
    """Sequential bill numbers per owner and calendar year (YYYY/NNNNN).

    The next number is derived from the highest one already stored, so two
    devices saving at the same moment can still collide.
    """
    year = str((today or date.today()).year)
    rows = (Order.query
            .with_entities(Order.bill_no)
            .filter(Order.owner_id == owner_id, Order.bill_no.like(f"{year}/%"))
            .all())
    highest = max((_sequence(bill_no, "/") for (bill_no,) in rows), default=0)
    return f"{year}/{highest + 1:05d}"


def customer_prefix(company_name: Optional[str]) -> str:
    name = (company_name or "").strip()
    return name[:2].upper() if name else CUSTOMER_PREFIX_FALLBACK


def next_customer_display_id(owner_id: str, company_name: Optional[str]) -> str:
    prefix = customer_prefix(company_name)
    rows = (Customer.query
            .with_entities(Customer.display_id)
            .filter(Customer.owner_id == owner_id)
            .all())
    highest = max((_sequence(display_id, "-") for (display_id,) in rows), default=0)
    return f"{prefix}-{highest + 1:05d}"
