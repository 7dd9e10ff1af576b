from __future__ import annotations

from typing import Dict, List, Mapping, Tuple

MEASUREMENT_ORDER: Dict[str, List[str]] = {
    'Blouse': [
        'Height',
        'Shoulder Back',
        'Back Neck Depth',
        'Upper Chest',
        'Hook',
        'Points',
        'Back',
        'Shoulder Front',
        'Middle Chest',
        'Arm Round',
        'Arm Length',
        'Front Neck Depth',
        'Waist',
        'Sleeve',
        'Front',
        'Sleeve Breadth',
        'Sleeve Length',
        'Blouse Type',
    ],
    'Chudithar': [
        'Height',
        'Top Length',
        'Sleeve Breadth',
        'Pant',
        'Pant Breadth',
        'Arm Round',
        'Slit',
        'Pant Length',
        'Top',
        'Hip',
        'Front Neck Depth',
        'Arm Length',
        'Seat',
        'Waist',
        'Shoulder Back',
        'Back Neck Depth',
        'Upper Chest',
        'Sleeve Length',
        'Middle Chest',
    ],
    'Lehanga': [
        'Blouse Length',
        'Shoulder',
        'Bust',
        'Waist',
        'Skirt Length',
        'Skirt Waist',
        'Hip',
        'Sleeve Length',
    ],
}

TYPE_ALIASES = {'Chudi': 'Chudithar'}
UNKNOWN_INDEX = 999


def measurement_sort_index(garment_type: str, field: str) -> int:
    normalized = TYPE_ALIASES.get(garment_type, garment_type)
    order = MEASUREMENT_ORDER.get(normalized, [])
    try:
        return order.index(field)
    except ValueError:
        return UNKNOWN_INDEX


def sorted_measurements(garment_type: str, measurements: Mapping[str, str]) -> List[Tuple[str, str]]:
    # sorted() is stable, so unknown fields keep their entry order at the end
    return sorted(measurements.items(), key=lambda pair: measurement_sort_index(garment_type, pair[0]))


def _is_numeric(value: str) -> bool:
    try:
        float(value)
    except ValueError:
        return False
    return True


def split_measurements(measurements: Mapping[str, str]) -> Tuple[Dict[str, str], Dict[str, str]]:
    """Separate body measurements (numbers) from stitching options (names)."""
    numeric: Dict[str, str] = {}
    options: Dict[str, str] = {}
    for key, raw in measurements.items():
        value = str(raw).strip() if raw is not None else ''
        if not value:
            continue
        if _is_numeric(value):
            numeric[key] = value
        else:
            options[key] = value
    return numeric, options
