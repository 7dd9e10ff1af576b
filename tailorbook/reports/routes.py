from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import func

from ..auth.tokens import token_required
from ..errors import ValidationError
from ..extensions import db
from ..models import Order, Payment
from ..orders.service import order_payload, summary_for
from ..records import OrderStatus
from ..utils.dates import days_remaining, format_date

reports_bp = Blueprint('reports', __name__, url_prefix='/api/reports')

NO_DELIVERY_DATE = 999
NEAR_DUE_DAYS = 2
ATTENTION_LIMIT = 5
DELIVERY_FILTERS = ('today', 'tomorrow', 'overdue')


def _days_left(order: Order, today: date) -> int:
    remaining = days_remaining(order.delivery_date, today)
    return NO_DELIVERY_DATE if remaining is None else remaining


def reminder_link(mobile: Optional[str], name: Optional[str], amount: float) -> Optional[str]:
    if not mobile:
        return None
    symbol = current_app.config.get('DEFAULT_CURRENCY_SYMBOL', '₹')
    text = f"Hello {name or ''}, this is a gentle reminder that {symbol}{amount:.2f} is pending on your order."
    digits = ''.join(ch for ch in mobile if ch.isdigit())
    if len(digits) == 10:
        digits = current_app.config.get('WHATSAPP_DEFAULT_COUNTRY_CODE', '91') + digits
    return f"whatsapp://send?phone={digits}&text={quote(text)}"


def build_dashboard(owner_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    orders = Order.query.filter_by(owner_id=owner_id).order_by(Order.created_at.desc()).all()

    revenue = collected = 0.0
    health = {'on_time': 0, 'near_due': 0, 'overdue': 0}
    attention: List[Dict[str, Any]] = []
    due_today = in_progress = completed_today = 0
    month_orders = month_completed = 0

    for order in orders:
        summary = summary_for(order)
        revenue += summary.active_total
        collected += summary.collected
        status = order.status_enum
        days_left = _days_left(order, today)

        if status is OrderStatus.IN_PROGRESS:
            in_progress += 1
        if days_left == 0 and status not in (OrderStatus.COMPLETED, OrderStatus.CANCELLED):
            due_today += 1
        if (status is OrderStatus.COMPLETED and order.updated_at
                and order.updated_at.date() == today):
            completed_today += 1
        if order.date and (order.date.year, order.date.month) == (today.year, today.month):
            month_orders += 1
            if status is OrderStatus.COMPLETED:
                month_completed += 1

        if status is OrderStatus.CANCELLED:
            continue
        if days_left > NEAR_DUE_DAYS:
            health['on_time'] += 1
        elif days_left >= 0:
            health['near_due'] += 1
        else:
            health['overdue'] += 1

        if summary.balance > 0 and days_left < 0:
            attention.append({
                'orderId': order.id,
                'billNo': order.bill_no,
                'customerName': order.customer_name,
                'mobile': order.customer.mobile if order.customer else order.customer_mobile,
                'amountDue': summary.balance,
                'daysOverdue': abs(days_left),
            })

    attention.sort(key=lambda row: row['daysOverdue'], reverse=True)
    attention = attention[:ATTENTION_LIMIT]
    for row in attention:
        row['reminderLink'] = reminder_link(row['mobile'], row['customerName'], row['amountDue'])

    todays_collection = (db.session.query(func.coalesce(func.sum(Payment.amount), 0))
                         .join(Order, Payment.order_id == Order.id)
                         .filter(Order.owner_id == owner_id, Payment.date == today)
                         .scalar())
    month_start = today.replace(day=1)
    month_collection = (db.session.query(func.coalesce(func.sum(Payment.amount), 0))
                        .join(Order, Payment.order_id == Order.id)
                        .filter(Order.owner_id == owner_id, Payment.date >= month_start,
                                Payment.date <= today)
                        .scalar())

    active = sum(health.values())
    return {
        'date': format_date(today),
        'revenue': round(revenue, 2),
        'collected': round(collected, 2),
        'pending': round(revenue - collected, 2),
        'todays_collection': round(float(todays_collection or 0), 2),
        'due_today': due_today,
        'in_progress': in_progress,
        'completed_today': completed_today,
        'order_health': {
            **health,
            'on_time_percent': round(health['on_time'] / active * 100) if active else 0,
        },
        'payment_attention': attention,
        'month': {
            'orders': month_orders,
            'collection': round(float(month_collection or 0), 2),
            'completion_rate': round(month_completed / month_orders * 100) if month_orders else 0,
        },
        'recent_orders': [order_payload(order) for order in orders[:5]],
    }


def deliveries(owner_id: str, which: str, today: Optional[date] = None) -> List[Order]:
    if which not in DELIVERY_FILTERS:
        raise ValidationError(f"Unknown filter '{which}'. Expected one of: {', '.join(DELIVERY_FILTERS)}.")
    today = today or date.today()
    query = (Order.query
             .filter(Order.owner_id == owner_id, Order.delivery_date.isnot(None))
             .filter(Order.status.notin_([OrderStatus.COMPLETED.value, OrderStatus.CANCELLED.value])))
    if which == 'today':
        query = query.filter(Order.delivery_date == today)
    elif which == 'tomorrow':
        query = query.filter(Order.delivery_date == today + timedelta(days=1))
    else:
        query = query.filter(Order.delivery_date < today)
    return query.order_by(Order.delivery_date.asc(), Order.created_at.asc()).all()


@reports_bp.get('/dashboard')
@token_required
def dashboard():
    return jsonify(build_dashboard(g.api_user.id))


@reports_bp.get('/deliveries')
@token_required
def delivery_list():
    which = (request.args.get('filter') or 'today').lower()
    rows = deliveries(g.api_user.id, which)
    overdue_count = len(rows) if which == 'overdue' else len(deliveries(g.api_user.id, 'overdue'))
    return jsonify({
        'filter': which,
        'orders': [order_payload(order) for order in rows],
        'count': len(rows),
        'overdue_count': overdue_count,
        'generated_at': datetime.utcnow().isoformat() + 'Z',
    })
