"""
Estimated market prices for ordered items
Used when intake does not provide a unit price
"""
from .text_match import normalize_text, similarity_score

# Rupees per unit (kg for staples)
PRICE_CATALOG = {
    "rice": 80,
    "dal": 120,
    "oil": 150,
    "wheat": 60,
    "sugar": 45,
    "onion": 40,
    "potato": 30,
    "tomato": 50,
    "garlic": 200,
    "ginger": 180,
}

# Common Hindi names spoken by vendors
ALIASES = {
    "chawal": "rice",
    "daal": "dal",
    "tel": "oil",
    "gehun": "wheat",
    "atta": "wheat",
    "cheeni": "sugar",
    "chini": "sugar",
    "pyaz": "onion",
    "pyaaz": "onion",
    "aloo": "potato",
    "alu": "potato",
    "tamatar": "tomato",
    "lahsun": "garlic",
    "adrak": "ginger",
}

DEFAULT_UNIT_PRICE = 50
MATCH_THRESHOLD = 85


def lookup_unit_price(item_name):
    """
    Returns the catalog price for an item name.

    Exact names and Hindi aliases win; otherwise the best fuzzy match at or
    above MATCH_THRESHOLD is used, falling back to DEFAULT_UNIT_PRICE.
    """
    name = normalize_text(item_name)
    if not name:
        return DEFAULT_UNIT_PRICE

    name = ALIASES.get(name, name)
    if name in PRICE_CATALOG:
        return PRICE_CATALOG[name]

    best_score = 0
    best_price = DEFAULT_UNIT_PRICE
    for candidate, price in PRICE_CATALOG.items():
        score = similarity_score(name, candidate)
        if score > best_score:
            best_score = score
            best_price = price

    return best_price if best_score >= MATCH_THRESHOLD else DEFAULT_UNIT_PRICE


def estimate_items_value(items):
    """
    Sum of quantity * unit price over item dicts

    Args:
        items: iterable of {"quantity", "estimated_price"} dicts

    Returns:
        float: estimated order value
    """
    total = 0.0
    for item in items:
        quantity = float(item.get("quantity") or 0)
        price = item.get("estimated_price")
        if price is None:
            price = lookup_unit_price(item.get("name", ""))
        total += quantity * float(price)
    return round(total, 2)
