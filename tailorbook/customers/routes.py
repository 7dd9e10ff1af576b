from flask import Blueprint, g, jsonify, request

from ..auth.tokens import token_required
from ..company.service import current_company
from ..orders.service import order_payload
from ..utils.http import json_body
from . import service

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@token_required
def index():
    rows = service.list_customers(g.api_user.id, request.args.get("q"))
    return jsonify({"customers": [service.customer_payload(c) for c in rows], "count": len(rows)})


@customers_bp.post("")
@token_required
def create():
    customer = service.create_customer(g.api_user, json_body(), company=current_company(required=False))
    return jsonify({"customer": service.customer_payload(customer)}), 201


@customers_bp.get("/<customer_id>")
@token_required
def show(customer_id):
    customer = service.get_customer(g.api_user.id, customer_id)
    orders = sorted(customer.orders, key=lambda o: o.created_at, reverse=True)
    return jsonify({
        "customer": service.customer_payload(customer),
        "orders": [order_payload(order) for order in orders],
    })


@customers_bp.patch("/<customer_id>")
@token_required
def update(customer_id):
    customer = service.get_customer(g.api_user.id, customer_id)
    service.update_customer(customer, json_body())
    return jsonify({"customer": service.customer_payload(customer)})


@customers_bp.delete("/<customer_id>")
@token_required
def delete(customer_id):
    customer = service.get_customer(g.api_user.id, customer_id)
    service.delete_customer(customer)
    return jsonify({"message": "Customer deleted."})
