"""Standard trading-card parcel sizes offered to sellers when buying labels."""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from infrastructure.shipping import Parcel

PARCEL_PRESETS: Dict[str, Dict[str, Any]] = {
    "single_card_pwe": {
        "label": "Single Card (PWE)",
        "length": Decimal("6"),
        "width": Decimal("4"),
        "height": Decimal("0.25"),
        "weight": Decimal("1"),
    },
    "toploader_bubble": {
        "label": "Toploader in Bubble Mailer",
        "length": Decimal("7"),
        "width": Decimal("5"),
        "height": Decimal("0.5"),
        "weight": Decimal("2"),
    },
    "small_box": {
        "label": "Small Box",
        "length": Decimal("8"),
        "width": Decimal("6"),
        "height": Decimal("2"),
        "weight": Decimal("8"),
    },
    "medium_box": {
        "label": "Medium Box",
        "length": Decimal("10"),
        "width": Decimal("8"),
        "height": Decimal("4"),
        "weight": Decimal("16"),
    },
}

DIMENSIONS = ("length", "width", "height", "weight")


def resolve_parcel(parcel) -> Optional[Parcel]:
    """
    Build a Parcel from a preset name, ``{"preset": name}`` or explicit
    ``{length, width, height, weight}`` in inches and ounces.

    Returns None if the input names no preset and has no valid dimensions.
    """
    if isinstance(parcel, str):
        parcel = {"preset": parcel}
    if not isinstance(parcel, dict):
        return None

    if parcel.get("preset"):
        preset = PARCEL_PRESETS.get(parcel["preset"])
        if preset is None:
            return None
        return Parcel(**{name: preset[name] for name in DIMENSIONS})

    values = {}
    for name in DIMENSIONS:
        try:
            value = Decimal(str(parcel.get(name)))
        except (InvalidOperation, ValueError):
            return None
        if not value.is_finite() or value <= 0:
            return None
        values[name] = value

    return Parcel(
        distance_unit=parcel.get("distance_unit") or "in",
        mass_unit=parcel.get("mass_unit") or "oz",
        **values,
    )
