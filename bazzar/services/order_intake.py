"""
Service: Order intake
Validates order payloads (typed, voice or manual) and builds Order records
"""
import math
import re

from ..errors import ValidationError
from ..models import Order, OrderItem, ORDER_SOURCES, ORDER_PRIORITIES
from ..utils.pricing import lookup_unit_price

PHONE_RE = re.compile(r"^\+?[\d\s\-()]+$")


def to_number(value, field_name):
    """Finite float from a payload value; NaN and infinities are rejected"""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not math.isfinite(number):
        raise ValidationError(f"{field_name} must be a finite number")
    return number


def parse_location(data):
    """
    Accepts {"location": {...}}, {"location": "address"} or flat
    address/city/area/lat/lng keys.
    """
    location = data.get("location")
    if isinstance(location, str):
        location = {"address": location}
    elif not isinstance(location, dict):
        location = {key: data.get(key) for key in ("address", "city", "area", "lat", "lng")}

    address = (location.get("address") or "").strip()
    if not address:
        raise ValidationError("Delivery address is required")

    coordinates = location.get("coordinates") or {}
    lat = location.get("lat", coordinates.get("lat"))
    lng = location.get("lng", coordinates.get("lng"))
    if (lat is None) != (lng is None):
        raise ValidationError("Both lat and lng are required for coordinates")
    if lat is not None:
        lat, lng = to_number(lat, "lat"), to_number(lng, "lng")
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            raise ValidationError("Coordinates out of range")

    return {
        "address": address,
        "city": (location.get("city") or "").strip() or None,
        "area": (location.get("area") or "").strip() or None,
        "lat": lat,
        "lng": lng,
    }


def build_items(raw_items):
    """Validated OrderItem records, prices filled from the catalog when missing"""
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("At least one item is required")

    items = []
    for index, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Item {index} must be an object")
        name = (raw.get("name") or raw.get("item") or "").strip()
        if not name:
            raise ValidationError(f"Item {index} needs a name")

        quantity = to_number(raw.get("quantity"), f"Item {index} quantity")
        if quantity <= 0:
            raise ValidationError(f"Item {index} quantity must be positive")

        price = raw.get("estimated_price", raw.get("price"))
        if price is None:
            price = lookup_unit_price(name)
        price = to_number(price, f"Item {index} price")
        if price < 0:
            raise ValidationError(f"Item {index} price cannot be negative")

        items.append(OrderItem(
            name=name,
            quantity=quantity,
            unit=(raw.get("unit") or "kg").strip(),
            estimated_price=price,
        ))
    return items


def build_order(data, vendor_phone, source=None):
    """Unsaved Order from a request payload"""
    vendor_phone = (vendor_phone or "").strip()
    if not vendor_phone or not PHONE_RE.match(vendor_phone):
        raise ValidationError("A valid vendor phone number is required")

    source = source or data.get("source") or "manual"
    if source not in ORDER_SOURCES:
        raise ValidationError(f"source must be one of {', '.join(ORDER_SOURCES)}")

    priority = data.get("priority") or "medium"
    if priority not in ORDER_PRIORITIES:
        raise ValidationError(f"priority must be one of {', '.join(ORDER_PRIORITIES)}")

    confidence = to_number(data.get("confidence", 0) or 0, "confidence")
    if not 0 <= confidence <= 1:
        raise ValidationError("confidence must be between 0 and 1")

    location = parse_location(data)
    items = build_items(data.get("items"))

    order = Order(
        vendor_phone=vendor_phone,
        status="pending",
        address=location["address"],
        city=location["city"],
        area=location["area"],
        lat=location["lat"],
        lng=location["lng"],
        transcript=data.get("transcript"),
        confidence=confidence,
        source=source,
        priority=priority,
        delivery_notes=data.get("delivery_notes"),
    )
    order.items = items

    # Intake may quote its own total; otherwise sum the lines
    total = data.get("total", data.get("estimated_value"))
    if total is not None:
        total = to_number(total, "total")
        if total < 0:
            raise ValidationError("total cannot be negative")
        order.estimated_value = round(total, 2)
    else:
        order.estimated_value = round(order.items_total, 2)

    return order


def replace_items(order, raw_items):
    """Swaps the order's items and recomputes its estimated value"""
    order.items = build_items(raw_items)
    order.estimated_value = round(order.items_total, 2)
    return order
