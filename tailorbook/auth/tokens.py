from __future__ import annotations

import secrets
from datetime import datetime
from functools import wraps
from typing import Callable, Optional

from flask import Request, current_app, g, request

from ..errors import AuthError
from ..extensions import db
from ..models import User, UserSession


def extract_token(req: Request) -> Optional[str]:
    header = req.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    token = req.args.get("token")
    if token:
        return token.strip()
    return None


def resolve_user_session(token: Optional[str]) -> Optional[UserSession]:
    if not token:
        return None
    session = UserSession.query.filter_by(session_token=token).first()
    if not session or session.revoked_at:
        return None
    return session


def token_required(fn: Callable) -> Callable:
    @wraps(fn)
    def wrapper(*args, **kwargs):
        session = resolve_user_session(extract_token(request))
        if not session:
            raise AuthError("Invalid or missing token.")
        g.api_user = session.user
        g.api_session = session
        return fn(*args, **kwargs)

    return wrapper


def issue_session(user: User) -> str:
    token = secrets.token_hex(current_app.config.get("SESSION_TOKEN_BYTES", 32))
    now = datetime.utcnow()
    user.last_login_at = now
    session = UserSession(
        user=user,
        session_token=token,
        user_agent=request.headers.get("User-Agent", "api"),
        ip_address=request.remote_addr,
        last_seen_at=now,
    )
    db.session.add(session)
    db.session.commit()
    return token


def revoke_session(session: UserSession) -> None:
    """End an API session and throw away any half-finished order draft."""
    session.revoked_at = datetime.utcnow()
    if session.draft is not None:
        db.session.delete(session.draft)
    db.session.add(session)
    db.session.commit()
