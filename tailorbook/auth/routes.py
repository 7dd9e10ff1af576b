from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, g, jsonify, request

from ..errors import ValidationError
from ..models import User
from ..utils.http import json_body
from . import bridge
from .otp import confirm_otp, send_otp
from .tokens import extract_token, issue_session, resolve_user_session, revoke_session, token_required

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def user_payload(user: User) -> Dict[str, Any]:
    company = user.company
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "is_phone_verified": bool(user.is_phone_verified),
        "has_pin": bool(user.pin),
        "company_id": company.id if company else None,
        "onboarded": company is not None,
    }


@auth_bp.post("/login")
def login():
    data = json_body()
    if data.get("phone"):
        user = bridge.login_with_phone(str(data.get("phone")), str(data.get("pin") or ""))
    elif data.get("email"):
        user = bridge.login_with_email(data.get("email"), data.get("password") or "")
    else:
        raise ValidationError("Phone and PIN are required.")
    token = issue_session(user)
    return jsonify({"token": token, "user": user_payload(user)})


@auth_bp.post("/signup")
def signup():
    data = json_body()
    user = bridge.signup(
        email=data.get("email"),
        pin=str(data.get("pin") or ""),
        name=data.get("name"),
        phone=str(data.get("phone") or ""),
    )
    token = issue_session(user)
    return jsonify({"token": token, "user": user_payload(user)}), 201


@auth_bp.post("/logout")
@token_required
def logout():
    revoke_session(g.api_session)
    return jsonify({"message": "Logged out."})


@auth_bp.get("/me")
@token_required
def me():
    return jsonify({"user": user_payload(g.api_user)})


@auth_bp.post("/otp/send")
def otp_send():
    data = json_body()
    session = resolve_user_session(extract_token(request))
    token = send_otp((data.get("phone") or "").strip(), user=session.user if session else None)
    return jsonify({"token": token, "message": "A verification code has been sent to your WhatsApp."})


@auth_bp.post("/otp/confirm")
def otp_confirm():
    data = json_body()
    session = resolve_user_session(extract_token(request))
    ok = confirm_otp(data.get("token"), data.get("code"), user=session.user if session else None)
    if not ok:
        raise ValidationError("Invalid verification code")
    return jsonify({"verified": True})


@auth_bp.post("/pin/change")
@token_required
def pin_change():
    data = json_body()
    bridge.change_pin(g.api_user, str(data.get("old_pin") or ""), str(data.get("new_pin") or ""))
    return jsonify({"message": "PIN updated."})


@auth_bp.post("/pin/reset")
def pin_reset():
    data = json_body()
    bridge.reset_pin_with_phone(
        str(data.get("phone") or ""),
        str(data.get("new_pin") or ""),
        data.get("otp_token"),
    )
    return jsonify({"message": "PIN updated. You can now sign in."})


@auth_bp.post("/password/reset")
def password_reset():
    data = json_body()
    bridge.reset_password(data.get("email"))
    return jsonify({"message": "Password reset email sent."})
