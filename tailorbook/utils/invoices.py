from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from flask import current_app, render_template

from .. import ledger
from ..models import Company, Order, Payment
from .dates import format_date

logger = logging.getLogger(__name__)

DEFAULT_BOUTIQUE_NAME = "My Boutique"
DEFAULT_TERMS = ["No Refund / No Exchange / No Cancellation", "E & O.E."]


def _line_rows(order: Order) -> List[Dict[str, Any]]:
    rows = []
    for index, item in enumerate(order.outfits, start=1):
        amount = item.contribution
        rate = item.rate if item.rate else (amount / item.quantity if item.quantity else amount)
        rows.append({
            "sno": index,
            "name": item.type,
            "description": item.description or item.subtype,
            "qty": item.quantity,
            "rate": rate,
            "amount": amount,
            "cancelled": item.is_cancelled,
        })
    return rows


def invoice_context(order: Order, company: Optional[Company],
                    payments: Optional[Sequence[Payment]] = None) -> Dict[str, Any]:
    boutique = (company.name if company and company.name else DEFAULT_BOUTIQUE_NAME)
    records = [p.to_record() for p in (payments if payments is not None else order.payments)]
    summary = ledger.summarise(order.to_record(), records)
    terms = company.bill_terms.splitlines() if company and company.bill_terms else DEFAULT_TERMS
    return {
        "currency": current_app.config.get("DEFAULT_CURRENCY_SYMBOL", "₹"),
        "initials": boutique[:2].upper(),
        "boutique_name": boutique,
        "address": company.address if company else None,
        "phone": company.phone if company else None,
        "gstin": company.gstin if company else None,
        "signature": company.bill_signature if company else None,
        "terms": [line for line in terms if line.strip()],
        "bill_no": order.bill_no,
        "date": format_date(order.date),
        "customer_name": order.customer_name,
        "customer_mobile": order.customer_mobile,
        "rows": _line_rows(order),
        "subtotal": summary.active_total,
        "collected": summary.collected,
        "balance": summary.balance,
        "refund_due": summary.refund_due,
    }


def render_invoice_html(order: Order, company: Optional[Company],
                        payments: Optional[Sequence[Payment]] = None) -> str:
    context = invoice_context(order, company, payments)
    logger.debug("Rendering invoice %s", order.bill_no)
    return render_template("invoice.html", **context)
