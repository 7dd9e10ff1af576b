from __future__ import annotations

import logging

from flask import Blueprint, Response, g, jsonify, request, url_for
from jinja2 import TemplateError

from ..auth.tokens import token_required
from ..company.service import current_company
from ..customers.service import get_customer
from ..models import Order
from ..utils.http import json_body
from ..utils.invoices import render_invoice_html
from . import service
from .drafts import discard_wizard, load_wizard, store_wizard

logger = logging.getLogger(__name__)

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _created_response(order: Order):
    message = "Order created successfully."
    invoice_url = url_for("orders.invoice", order_id=order.id)
    try:
        render_invoice_html(order, current_company(required=False))
    except TemplateError as exc:
        logger.exception("Invoice for %s could not be generated: %s", order.bill_no, exc)
        message = "Order saved, but the bill could not be generated. You can retry from the order page."
        invoice_url = None
    return jsonify({
        "order": service.order_payload(order, include_payments=True),
        "message": message,
        "invoice_url": invoice_url,
    }), 201


# -- orders ------------------------------------------------------------


@orders_bp.get("")
@token_required
def index():
    rows = service.list_orders(
        g.api_user.id,
        status=request.args.get("status"),
        payment_status=request.args.get("payment_status"),
    )
    return jsonify({"orders": [service.order_payload(o) for o in rows], "count": len(rows)})


@orders_bp.post("")
@token_required
def create():
    order = service.create_order(g.api_user, json_body())
    return _created_response(order)


@orders_bp.get("/<order_id>")
@token_required
def show(order_id):
    order = service.get_order(g.api_user.id, order_id)
    return jsonify({"order": service.order_payload(order, include_payments=True)})


@orders_bp.patch("/<order_id>")
@token_required
def update(order_id):
    order = service.get_order(g.api_user.id, order_id)
    service.update_order(order, json_body())
    return jsonify({"order": service.order_payload(order, include_payments=True)})


@orders_bp.post("/<order_id>/status")
@token_required
def change_status(order_id):
    order = service.get_order(g.api_user.id, order_id)
    service.set_status(order, json_body().get("status"))
    return jsonify({"order": service.order_payload(order)})


@orders_bp.delete("/<order_id>")
@token_required
def delete(order_id):
    order = service.get_order(g.api_user.id, order_id)
    service.delete_order(order)
    return jsonify({"message": "Order deleted."})


@orders_bp.get("/<order_id>/invoice")
@token_required
def invoice(order_id):
    order = service.get_order(g.api_user.id, order_id)
    html = render_invoice_html(order, current_company(required=False))
    return Response(html, mimetype="text/html")


# -- items -------------------------------------------------------------


@orders_bp.post("/<order_id>/items")
@token_required
def add_item(order_id):
    order = service.get_order(g.api_user.id, order_id)
    service.add_item(order, json_body())
    return jsonify({"order": service.order_payload(order)}), 201


@orders_bp.get("/<order_id>/items/<int:index>")
@token_required
def show_item(order_id, index):
    order = service.get_order(g.api_user.id, order_id)
    return jsonify({"item": service.item_detail(order, index), "billNo": order.bill_no})


@orders_bp.patch("/<order_id>/items/<int:index>")
@token_required
def edit_item(order_id, index):
    order = service.get_order(g.api_user.id, order_id)
    service.edit_item(order, index, json_body())
    return jsonify({"order": service.order_payload(order)})


@orders_bp.delete("/<order_id>/items/<int:index>")
@token_required
def delete_item(order_id, index):
    order = service.get_order(g.api_user.id, order_id)
    service.delete_item(order, index)
    return jsonify({"order": service.order_payload(order)})


@orders_bp.get("/<order_id>/items/<int:index>/cancel")
@token_required
def cancel_preview(order_id, index):
    order = service.get_order(g.api_user.id, order_id)
    preview = service.preview_cancel(order, index)
    return jsonify({"preview": preview.to_dict()})


@orders_bp.post("/<order_id>/items/<int:index>/cancel")
@token_required
def cancel_confirm(order_id, index):
    order = service.get_order(g.api_user.id, order_id)
    data = json_body() if request.is_json else {}
    preview = service.confirm_cancel(order, index, cancel_order=bool(data.get("cancel_order")))
    return jsonify({"preview": preview.to_dict(), "order": service.order_payload(order)})


# -- creation wizard ---------------------------------------------------


def _wizard_response(wizard):
    return jsonify({"wizard": wizard.to_dict()})


@orders_bp.get("/draft")
@token_required
def draft_show():
    return _wizard_response(load_wizard(g.api_session))


@orders_bp.put("/draft")
@token_required
def draft_update():
    wizard = load_wizard(g.api_session)
    data = json_body()
    if data.get("customerId"):
        customer = get_customer(g.api_user.id, data["customerId"])
        data = {"customerName": customer.name, "customerMobile": customer.mobile, **data}
    wizard.update(data)
    store_wizard(g.api_session, wizard)
    return _wizard_response(wizard)


@orders_bp.delete("/draft")
@token_required
def draft_discard():
    discard_wizard(g.api_session)
    return jsonify({"message": "Draft discarded."})


@orders_bp.post("/draft/next")
@token_required
def draft_next():
    wizard = load_wizard(g.api_session)
    wizard.next()
    store_wizard(g.api_session, wizard)
    return _wizard_response(wizard)


@orders_bp.post("/draft/back")
@token_required
def draft_back():
    wizard = load_wizard(g.api_session)
    wizard.back()
    store_wizard(g.api_session, wizard)
    return _wizard_response(wizard)


@orders_bp.post("/draft/step")
@token_required
def draft_go_to():
    wizard = load_wizard(g.api_session)
    wizard.go_to(json_body().get("step"))
    store_wizard(g.api_session, wizard)
    return _wizard_response(wizard)


@orders_bp.post("/draft/add-another")
@token_required
def draft_add_another():
    wizard = load_wizard(g.api_session)
    wizard.add_another()
    store_wizard(g.api_session, wizard)
    return _wizard_response(wizard)


@orders_bp.post("/draft/cart/<int:index>/edit")
@token_required
def draft_edit_item(index):
    wizard = load_wizard(g.api_session)
    wizard.edit_cart_item(index)
    store_wizard(g.api_session, wizard)
    return _wizard_response(wizard)


@orders_bp.delete("/draft/cart/<int:index>")
@token_required
def draft_delete_item(index):
    wizard = load_wizard(g.api_session)
    wizard.delete_cart_item(index)
    store_wizard(g.api_session, wizard)
    return _wizard_response(wizard)


@orders_bp.put("/draft/cart/<int:index>/cost")
@token_required
def draft_item_cost(index):
    wizard = load_wizard(g.api_session)
    wizard.set_item_cost(index, json_body().get("cost"))
    store_wizard(g.api_session, wizard)
    return _wizard_response(wizard)


@orders_bp.post("/draft/save")
@token_required
def draft_save():
    wizard = load_wizard(g.api_session)
    order = service.create_order(g.api_user, wizard.build_order())
    discard_wizard(g.api_session)
    return _created_response(order)
