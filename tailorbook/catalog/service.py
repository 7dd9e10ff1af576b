from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Mapping, Sequence

from sqlalchemy import func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Outfit
from ..records import parse_amount

logger = logging.getLogger(__name__)


def _options(*names: str) -> List[Dict[str, Any]]:
    return [{"id": f"opt_{name.lower().replace(' ', '_')}", "name": name} for name in names]


DEFAULT_OUTFITS: List[Dict[str, Any]] = [
    {
        "name": "Blouse",
        "category": "Stitching",
        "basePrice": 500,
        "categories": [
            {
                "id": "cat_1",
                "name": "Front Neck",
                "isVisible": True,
                "subCategories": [
                    {
                        "id": "opt_1",
                        "name": "Paan",
                        "options": [{"id": "sub_1", "name": "Deep"}, {"id": "sub_2", "name": "Standard"}],
                    },
                    {"id": "opt_2", "name": "Round"},
                    {"id": "opt_3", "name": "Square"},
                    {"id": "opt_4", "name": "Boat"},
                ],
            },
            {
                "id": "cat_2",
                "name": "Back Neck",
                "isVisible": True,
                "subCategories": _options("Deep U", "Pot Logic", "High Neck"),
            },
            {
                "id": "cat_3",
                "name": "Sleeve",
                "isVisible": True,
                "subCategories": _options("Half", "Elbow", "Full", "Sleeveless"),
            },
        ],
    },
    {
        "name": "Kurti",
        "category": "Stitching",
        "basePrice": 400,
        "categories": [
            {
                "id": "cat_k1",
                "name": "Neck Design",
                "isVisible": True,
                "subCategories": _options("Collar", "V Neck", "Round"),
            },
            {
                "id": "cat_k2",
                "name": "Bottom Style",
                "isVisible": True,
                "subCategories": _options("Straight", "A-Line", "Anarkali"),
            },
        ],
    },
    {"name": "Lehenga", "category": "Stitching", "basePrice": 1500},
    {"name": "Gown", "category": "Stitching", "basePrice": 1200},
    {"name": "Fall & Pico", "category": "Alteration", "basePrice": 50},
    {"name": "Fitting", "category": "Alteration", "basePrice": 100},
    {"name": "Others", "category": "General", "basePrice": 0},
]


def outfit_payload(outfit: Outfit) -> Dict[str, Any]:
    return {
        "id": outfit.id,
        "name": outfit.name,
        "category": outfit.category,
        "basePrice": float(outfit.base_price or 0),
        "image": outfit.image,
        "isVisible": bool(outfit.is_visible),
        "order": outfit.sort_order,
        "categories": outfit.categories or [],
    }


def seed_defaults(owner_id: str) -> List[Outfit]:
    rows = []
    for position, preset in enumerate(DEFAULT_OUTFITS):
        rows.append(Outfit(
            owner_id=owner_id,
            name=preset["name"],
            category=preset["category"],
            base_price=preset["basePrice"],
            is_visible=True,
            sort_order=position,
            categories=copy.deepcopy(preset.get("categories", [])),
        ))
    db.session.add_all(rows)
    db.session.commit()
    logger.info("Seeded %d default outfits for %s", len(rows), owner_id)
    return rows


def list_outfits(owner_id: str) -> List[Outfit]:
    query = Outfit.query.filter_by(owner_id=owner_id)
    if query.count() == 0:
        seed_defaults(owner_id)
    return query.order_by(Outfit.sort_order.asc(), Outfit.created_at.desc(), Outfit.name.asc()).all()


def get_outfit(owner_id: str, outfit_id: str) -> Outfit:
    outfit = db.session.get(Outfit, outfit_id)
    if outfit is None or outfit.owner_id != owner_id:
        raise NotFoundError("Outfit not found.")
    return outfit


def _apply(outfit: Outfit, data: Mapping[str, Any]) -> None:
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Outfit name is required.")
        outfit.name = name
    if "category" in data:
        outfit.category = (data.get("category") or "").strip() or None
    if "basePrice" in data:
        price = parse_amount(data.get("basePrice"), "basePrice")
        if price < 0:
            raise ValidationError("basePrice cannot be negative.")
        outfit.base_price = price
    if "image" in data:
        outfit.image = data.get("image") or None
    if "isVisible" in data:
        outfit.is_visible = bool(data.get("isVisible"))
    if "categories" in data:
        categories = data.get("categories") or []
        if not isinstance(categories, list):
            raise ValidationError("categories must be a list.")
        outfit.categories = categories


def add_outfit(owner_id: str, data: Mapping[str, Any]) -> Outfit:
    """New outfits go to the top of the list."""
    if not (data.get("name") or "").strip():
        raise ValidationError("Outfit name is required.")
    lowest = db.session.query(func.min(Outfit.sort_order)).filter_by(owner_id=owner_id).scalar()
    outfit = Outfit(owner_id=owner_id, sort_order=(lowest or 0) - 1, is_visible=True, categories=[])
    _apply(outfit, data)
    db.session.add(outfit)
    db.session.commit()
    return outfit


def update_outfit(outfit: Outfit, data: Mapping[str, Any]) -> Outfit:
    _apply(outfit, data)
    db.session.commit()
    return outfit


def delete_outfit(outfit: Outfit) -> None:
    db.session.delete(outfit)
    db.session.commit()


def reorder_outfits(owner_id: str, ordered_ids: Sequence[str]) -> List[Outfit]:
    if not isinstance(ordered_ids, (list, tuple)):
        raise ValidationError("ids must be a list.")
    outfits = [get_outfit(owner_id, outfit_id) for outfit_id in ordered_ids]
    for index, outfit in enumerate(outfits):
        outfit.sort_order = index
    db.session.commit()
    return outfits
