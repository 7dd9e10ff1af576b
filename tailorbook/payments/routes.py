from flask import Blueprint, g, jsonify, request

from ..auth.tokens import token_required
from ..orders.service import get_order, order_payload, payment_payload
from ..utils.http import json_body
from . import service

payments_bp = Blueprint("payments", __name__, url_prefix="/api")


@payments_bp.get("/payments")
@token_required
def index():
    rows = service.list_payments(g.api_user.id, order_id=request.args.get("order_id"))
    return jsonify({"payments": [payment_payload(p) for p in rows], "count": len(rows)})


@payments_bp.get("/orders/<order_id>/payments")
@token_required
def for_order(order_id):
    order = get_order(g.api_user.id, order_id)
    return jsonify({
        "payments": [payment_payload(p) for p in order.payments],
        "summary": order_payload(order)["summary"],
    })


@payments_bp.post("/orders/<order_id>/payments")
@token_required
def create(order_id):
    order = get_order(g.api_user.id, order_id)
    payment = service.add_payment(g.api_user, order, json_body())
    return jsonify({"payment": payment_payload(payment), "order": order_payload(order)}), 201


@payments_bp.patch("/payments/<payment_id>")
@token_required
def update(payment_id):
    payment = service.get_payment(g.api_user.id, payment_id)
    service.edit_payment(payment, json_body())
    body = {"payment": payment_payload(payment)}
    if payment.order is not None:
        body["order"] = order_payload(payment.order)
    return jsonify(body)


@payments_bp.delete("/payments/<payment_id>")
@token_required
def delete(payment_id):
    payment = service.get_payment(g.api_user.id, payment_id)
    order = payment.order
    service.delete_payment(payment)
    body = {"message": "Payment deleted."}
    if order is not None:
        body["order"] = order_payload(order)
    return jsonify(body)
