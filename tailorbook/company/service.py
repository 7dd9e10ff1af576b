from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from flask import g

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Company, User
from ..utils.validation import validate_phone

FIELDS = {
    "name": "name",
    "address": "address",
    "phone": "phone",
    "gstin": "gstin",
    "billTerms": "bill_terms",
    "billSignature": "bill_signature",
}


def current_company(required: bool = True) -> Optional[Company]:
    """The signed-in owner's boutique profile."""
    user: Optional[User] = getattr(g, "api_user", None)
    company = user.company if user is not None else None
    if company is None and required:
        raise NotFoundError("Complete your boutique profile first.")
    return company


def save_company(owner: User, data: Mapping[str, Any]) -> Company:
    """Create the owner's single company profile or merge fields into it."""
    company = owner.company
    if company is None:
        if not (data.get("name") or "").strip():
            raise ValidationError("Boutique name is required.")
        company = Company(owner=owner, name=data["name"].strip())
        db.session.add(company)

    for key, attr in FIELDS.items():
        if key not in data:
            continue
        value = data[key]
        if isinstance(value, str):
            value = value.strip()
        if attr == "name" and not value:
            raise ValidationError("Boutique name is required.")
        if attr == "phone" and value and not validate_phone(value):
            raise ValidationError("Please enter a valid 10-digit mobile number.")
        setattr(company, attr, value or None)

    db.session.commit()
    return company


def company_payload(company: Company) -> Dict[str, Any]:
    return {
        "id": company.id,
        "name": company.name,
        "address": company.address,
        "phone": company.phone,
        "gstin": company.gstin,
        "billTerms": company.bill_terms,
        "billSignature": company.bill_signature,
        "updated_at": company.updated_at.isoformat() if company.updated_at else None,
    }
