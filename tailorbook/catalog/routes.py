from flask import Blueprint, g, jsonify

from ..auth.tokens import token_required
from ..utils.http import json_body
from . import service

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/outfits")


@catalog_bp.get("")
@token_required
def index():
    rows = service.list_outfits(g.api_user.id)
    return jsonify({"outfits": [service.outfit_payload(o) for o in rows]})


@catalog_bp.post("")
@token_required
def create():
    outfit = service.add_outfit(g.api_user.id, json_body())
    return jsonify({"outfit": service.outfit_payload(outfit)}), 201


@catalog_bp.put("/order")
@token_required
def reorder():
    rows = service.reorder_outfits(g.api_user.id, json_body().get("ids"))
    return jsonify({"outfits": [service.outfit_payload(o) for o in rows]})


@catalog_bp.patch("/<outfit_id>")
@token_required
def update(outfit_id):
    outfit = service.get_outfit(g.api_user.id, outfit_id)
    service.update_outfit(outfit, json_body())
    return jsonify({"outfit": service.outfit_payload(outfit)})


@catalog_bp.delete("/<outfit_id>")
@token_required
def delete(outfit_id):
    outfit = service.get_outfit(g.api_user.id, outfit_id)
    service.delete_outfit(outfit)
    return jsonify({"message": "Outfit deleted."})
