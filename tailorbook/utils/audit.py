from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from flask import g, has_app_context, has_request_context, request

from ..extensions import db
from ..models import AuditLog


def _actor() -> str:
    user = getattr(g, "api_user", None) if has_app_context() else None
    if user is not None:
        return user.email or user.id
    return "system"


def log_event(action: str, resource_type: str | None = None, resource_id: str | None = None,
              before: Any | None = None, after: Any | None = None) -> None:
    """Stage an audit row in the current session; the caller's commit persists it."""
    if has_request_context():
        ip_address = request.remote_addr
        user_agent = request.headers.get("User-Agent")
    else:
        ip_address = None
        user_agent = None

    entry = AuditLog(
        ts=datetime.utcnow(),
        user=_actor(),
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        before_state=json.dumps(before, default=str) if before is not None else None,
        after_state=json.dumps(after, default=str) if after is not None else None,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.session.add(entry)
