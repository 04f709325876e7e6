"""
Service: Text order parser
Turns manually typed order lines into item dicts. No pricing, no DB access.
"""
import re
from typing import List, Dict, Optional

# Spoken/typed unit -> canonical unit
UNIT_ALIASES = {
    "kg": "kg", "kgs": "kg", "kilo": "kg", "kilos": "kg", "kilogram": "kg", "kilograms": "kg",
    "g": "g", "gm": "g", "gms": "g", "gram": "g", "grams": "g",
    "l": "litre", "ltr": "litre", "litre": "litre", "litres": "litre", "liter": "litre", "liters": "litre",
    "ml": "ml",
    "packet": "packet", "packets": "packet", "pkt": "packet", "pack": "packet",
    "dozen": "dozen", "darjan": "dozen",
    "pc": "piece", "pcs": "piece", "piece": "piece", "pieces": "piece",
    "bag": "bag", "bags": "bag", "bori": "bag",
}

_UNIT_PATTERN = "|".join(sorted(UNIT_ALIASES, key=len, reverse=True))
_NUMBER = r"(\d+(?:\.\d+)?)"

# Item separators inside one line: comma, semicolon, "and", "aur"
_SEPARATORS = re.compile(r"\s*(?:,|;|\band\b|\baur\b)\s*", re.IGNORECASE)


def parse_order_text(text: str) -> Dict:
    """
    Parses free text into order items.

    Accepted shapes, one or more per line:
        5 kg rice
        rice 5kg
        2 packet salt, 1 dozen eggs
        aadha kilo adrak
        tomato            (no quantity, assumes 1 kg)

    Returns:
        {
            "items": [
                {
                    "name": str,
                    "quantity": float,
                    "unit": str,
                    "raw_text": str,
                    "line_number": int
                }
            ],
            "raw_text": str
        }
    """
    items = []

    for line_num, line in enumerate(text.strip().split('\n')):
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        # Bullets
        line = line.lstrip('-•*').strip()

        for chunk in _SEPARATORS.split(line):
            if not chunk:
                continue
            parsed = _parse_item_line(chunk)
            if parsed:
                parsed['line_number'] = line_num + 1
                items.append(parsed)

    return {
        "items": items,
        "raw_text": text,
    }


def _parse_item_line(text: str) -> Optional[Dict]:
    """
    Parses a single item.

    Supported formats:
    - "5 kg rice" / "5kg rice" / "rice 5 kg" / "rice 5kg"
    - "500 g garlic" / "garlic 500g" -> 0.5 kg
    - "3 onions" / "onions 3" (pieces)
    - "aadha/half kilo ginger" / "ginger half kg" -> 0.5 kg
    - "2 kg of dal" (ignores "of"/"ka"/"ki")
    - "tomato" (no quantity, assumes 1 kg)
    """
    original = text
    text_lower = re.sub(r'\s+', ' ', text.strip()).lower()
    text_lower = re.sub(r'[.,]\s*$', '', text_lower)

    # Drop filler words between quantity and name
    text_lower = re.sub(r'\s+(?:of|ka|ki|ke)\s+', ' ', text_lower)

    if not text_lower:
        return None

    patterns_before = [
        # "half kg X", "aadha kilo X"
        (r"^(?:half|aadha|adha)\s+(?:kg|kgs|kilo|kilos)\s+(.+)$", "half"),
        # "5 kg X", "5kg X"
        (rf"^{_NUMBER}\s*({_UNIT_PATTERN})\s+(.+)$", "unit"),
        # "3 X" (pieces)
        (rf"^{_NUMBER}\s+(.+)$", "count"),
    ]

    patterns_after = [
        # "X half kg"
        (r"^(.+?)\s+(?:half|aadha|adha)\s+(?:kg|kgs|kilo|kilos)$", "half"),
        # "X 5 kg", "X 5kg"
        (rf"^(.+?)\s+{_NUMBER}\s*({_UNIT_PATTERN})$", "unit_after"),
        # "X 3" (pieces)
        (rf"^(.+?)\s+{_NUMBER}$", "count_after"),
    ]

    for pattern, kind in patterns_before + patterns_after:
        match = re.match(pattern, text_lower)
        if not match:
            continue
        groups = match.groups()

        if kind == "half":
            quantity, unit, name = 0.5, "kg", groups[0]
        elif kind == "unit":
            quantity, unit, name = float(groups[0]), UNIT_ALIASES[groups[1]], groups[2]
        elif kind == "count":
            quantity, unit, name = float(groups[0]), "piece", groups[1]
        elif kind == "unit_after":
            name, quantity, unit = groups[0], float(groups[1]), UNIT_ALIASES[groups[2]]
        else:
            name, quantity, unit = groups[0], float(groups[1]), "piece"

        return _build_item(name, quantity, unit, original)

    # No quantity: one kilo
    return _build_item(text_lower, 1.0, "kg", original)


def _build_item(name, quantity, unit, original):
    # Grams are priced per kilo
    if unit == "g":
        quantity, unit = quantity / 1000.0, "kg"
    elif unit == "ml":
        quantity, unit = quantity / 1000.0, "litre"

    name = name.strip()
    if not name or quantity <= 0:
        return None

    return {
        "name": name,
        "quantity": quantity,
        "unit": unit,
        "raw_text": original,
    }


def parse_items(text: str) -> List[Dict]:
    """Shortcut returning only the parsed items"""
    return parse_order_text(text)["items"]
