from flask import Blueprint, g, jsonify

from ..auth.tokens import token_required
from ..utils.http import json_body
from .service import company_payload, current_company, save_company

company_bp = Blueprint("company", __name__, url_prefix="/api/company")


@company_bp.get("")
@token_required
def show():
    return jsonify({"company": company_payload(current_company())})


@company_bp.put("")
@token_required
def save():
    existed = g.api_user.company is not None
    company = save_company(g.api_user, json_body())
    return jsonify({"company": company_payload(company)}), 200 if existed else 201
