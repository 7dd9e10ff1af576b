from __future__ import annotations

from typing import Any, Dict

from flask import request

from ..errors import ValidationError


def json_body() -> Dict[str, Any]:
    if not request.is_json:
        raise ValidationError("Expected JSON payload.")
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Expected a JSON object.")
    return data
