"""
API: Orders
Creation (with automatic pooling), text parsing and order management
"""
import logging
from flask import Blueprint, request, jsonify
from sqlalchemy import func

from ..db import db
from ..errors import ValidationError
from ..models import Order, ORDER_STATUSES
from ..services import notifications
from ..services.order_intake import build_order, replace_items, to_number
from ..services.order_parser import parse_order_text
from ..services.pool_aggregator import (
    PoolingResult, get_order, pool_order, cancel_order, remove_order, refresh_pool,
)
from ..utils.auth import current_identity
from ..utils.pricing import lookup_unit_price

logger = logging.getLogger(__name__)

bp = Blueprint("orders", __name__)

MAX_PAGE_SIZE = 100


def _pagination(page):
    return {
        "page": page.page,
        "limit": page.per_page,
        "total": page.total,
        "pages": page.pages,
    }


def _vendor_phone(data):
    """Vendor tokens win over a phone in the payload"""
    identity = current_identity()
    if identity and identity["type"] == "vendor":
        return identity["phone"]
    return data.get("vendor_phone") or data.get("vendorPhone")


@bp.route("", methods=["GET"])
def get_orders():
    """Lists orders, newest first"""
    status = request.args.get("status")
    vendor_phone = request.args.get("vendor_phone")
    page = request.args.get("page", 1, type=int)
    limit = min(request.args.get("limit", 50, type=int), MAX_PAGE_SIZE)

    query = Order.query
    if status:
        query = query.filter_by(status=status)
    if vendor_phone:
        query = query.filter_by(vendor_phone=vendor_phone)

    result = db.paginate(
        query.order_by(Order.created_at.desc(), Order.id.desc()),
        page=page, per_page=limit, error_out=False,
    )

    return jsonify({
        "orders": [order.to_dict() for order in result.items],
        "pagination": _pagination(result),
    })


@bp.route("/<int:id>", methods=["GET"])
def get_order_detail(id):
    """Returns an order with its pool"""
    order = get_order(id)
    return jsonify(order.to_dict(include_pool=True))


@bp.route("/vendor/<phone>", methods=["GET"])
def get_vendor_orders(phone):
    """Latest orders of one vendor"""
    status = request.args.get("status")
    limit = min(request.args.get("limit", 20, type=int), MAX_PAGE_SIZE)

    query = Order.query.filter_by(vendor_phone=phone)
    if status:
        query = query.filter_by(status=status)

    orders = query.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()
    return jsonify([order.to_dict(include_pool=True) for order in orders])


@bp.route("/parse", methods=["POST"])
def parse_order():
    """Parses typed order text into items with estimated prices"""
    data = request.get_json(silent=True) or {}
    text = data.get("text", "")

    if not text or not text.strip():
        return jsonify({"error": "No text sent"}), 400

    parsed = parse_order_text(text)
    for item in parsed["items"]:
        item["estimated_price"] = lookup_unit_price(item["name"])
    parsed["total"] = round(sum(i["quantity"] * i["estimated_price"] for i in parsed["items"]), 2)

    return jsonify(parsed)


@bp.route("", methods=["POST"])
def create_order():
    """Creates an order and, unless auto_pool is false, pools it"""
    data = request.get_json(silent=True) or {}

    order = build_order(data, _vendor_phone(data))
    db.session.add(order)

    result = PoolingResult(pool=None, order=order)
    if data.get("auto_pool", True):
        result = pool_order(order)

    db.session.commit()
    logger.info("Order %s created for %s (%.2f)", order.id, order.vendor_phone, order.estimated_value)

    notifications.publish(result)

    return jsonify({
        "order": order.to_dict(),
        "pool": result.pool.to_dict() if result.pool else None,
        "message": "Order created successfully",
    }), 201


@bp.route("/<int:id>", methods=["PATCH"])
def update_order(id):
    """Updates notes or cancels an order (cancelling detaches it from its pool)"""
    order = get_order(id)
    data = request.get_json(silent=True) or {}

    status = data.get("status")
    if status is not None and status not in ORDER_STATUSES:
        raise ValidationError("Invalid status")
    if status not in (None, order.status, "cancelled"):
        raise ValidationError("Order status follows its pool; only cancellation is allowed here")

    result = PoolingResult(pool=order.pool, order=order)
    if status == "cancelled" and order.status != "cancelled":
        result = cancel_order(order)

    for key in ("supplier_notes", "delivery_notes"):
        if key in data:
            setattr(order, key, data[key])
    if "actual_value" in data:
        actual = data["actual_value"]
        if actual is not None:
            actual = to_number(actual, "actual_value")
            if actual < 0:
                raise ValidationError("actual_value cannot be negative")
        order.actual_value = actual

    db.session.commit()
    notifications.publish(result)

    return jsonify(order.to_dict(include_pool=True))


@bp.route("/<int:id>/items", methods=["PUT"])
def update_order_items(id):
    """Replaces the items of a pending or pooled order"""
    order = get_order(id)
    if order.status not in ("pending", "pooled"):
        raise ValidationError(f"Items of a {order.status} order cannot be changed")

    data = request.get_json(silent=True) or {}
    replace_items(order, data.get("items"))

    result = PoolingResult(pool=None, order=order)
    if order.pool is not None:
        result = refresh_pool(order.pool)
        result.order = order

    db.session.commit()
    notifications.publish(result)

    return jsonify(order.to_dict(include_pool=True))


@bp.route("/<int:id>", methods=["DELETE"])
def delete_order(id):
    """Deletes an order, removing it from its pool"""
    order = get_order(id)
    snapshot = {"id": order.id, "vendor_phone": order.vendor_phone, "status": "deleted",
                "location": order.location_dict()}

    result = remove_order(order)
    db.session.commit()

    notifications.notify_order_update(snapshot)
    if result.pool is not None:
        notifications.notify_pool_update(result.pool)

    return jsonify({"message": "Order deleted successfully"})


@bp.route("/stats/overview", methods=["GET"])
def get_order_stats():
    """Counts and estimated value per status"""
    rows = (
        db.session.query(Order.status, func.count(Order.id), func.coalesce(func.sum(Order.estimated_value), 0))
        .group_by(Order.status)
        .all()
    )
    breakdown = {status: {"count": count, "total_value": float(total)} for status, count, total in rows}

    return jsonify({
        "total_orders": sum(item["count"] for item in breakdown.values()),
        "total_value": round(sum(item["total_value"] for item in breakdown.values()), 2),
        "status_breakdown": breakdown,
    })
