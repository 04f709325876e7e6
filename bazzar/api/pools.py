"""
API: Pools
Pool listing, explicit creation, order attach/detach and supplier-driven
status changes
"""
import logging
from flask import Blueprint, request, jsonify, g
from sqlalchemy import func

from ..db import db
from ..errors import ValidationError
from ..models import Pool, Supplier
from ..services import notifications
from ..services.order_intake import parse_location
from ..services.pool_aggregator import (
    PoolingResult, get_pool, get_order, create_pool, validate_thresholds,
    attach_order, detach_order, transition_pool, location_matches,
)
from ..utils.auth import auth_required
from ..utils.geo import normalize_place

logger = logging.getLogger(__name__)

bp = Blueprint("pools", __name__)

MAX_PAGE_SIZE = 100


@bp.route("", methods=["GET"])
def get_pools():
    """Lists pools, newest first"""
    status = request.args.get("status")
    city = request.args.get("city")
    area = request.args.get("area")
    page = request.args.get("page", 1, type=int)
    limit = min(request.args.get("limit", 50, type=int), MAX_PAGE_SIZE)

    query = Pool.query
    if status:
        query = query.filter_by(status=status)
    if city:
        query = query.filter(func.lower(Pool.city) == normalize_place(city))
    if area:
        query = query.filter(func.lower(Pool.area) == normalize_place(area))

    result = db.paginate(
        query.order_by(Pool.created_at.desc(), Pool.id.desc()),
        page=page, per_page=limit, error_out=False,
    )

    return jsonify({
        "pools": [pool.to_dict() for pool in result.items],
        "pagination": {
            "page": result.page,
            "limit": result.per_page,
            "total": result.total,
            "pages": result.pages,
        },
    })


@bp.route("/<int:id>", methods=["GET"])
def get_pool_detail(id):
    """Returns a pool with its orders"""
    pool = get_pool(id)
    return jsonify(pool.to_dict(include_orders=True))


@bp.route("", methods=["POST"])
def create_pool_endpoint():
    """Creates an empty pool with optional threshold overrides"""
    data = request.get_json(silent=True) or {}

    location = parse_location(data)
    thresholds = validate_thresholds(data.get("threshold") or data)

    pool = create_pool(location, thresholds)
    pool.supplier_notes = data.get("supplier_notes")
    db.session.commit()
    logger.info("Pool %s created for %s / %s", pool.id, pool.city, pool.area or "-")

    notifications.notify_pool_update(pool)

    return jsonify(pool.to_dict()), 201


@bp.route("/<int:id>/orders", methods=["POST"])
def add_order_to_pool(id):
    """Attaches an order to the pool"""
    data = request.get_json(silent=True) or {}
    order_id = data.get("order_id", data.get("orderId"))
    if order_id is None:
        raise ValidationError("order_id is required")

    pool = get_pool(id, lock=True)
    order = get_order(order_id)

    result = attach_order(pool, order)
    db.session.commit()

    if result.attached:
        notifications.publish(result)

    return jsonify({
        "pool": pool.to_dict(),
        "order": order.to_dict(),
    })


@bp.route("/<int:id>/orders/<int:order_id>", methods=["DELETE"])
def remove_order_from_pool(id, order_id):
    """Detaches an order from the pool; an emptied pool is cancelled"""
    pool = get_pool(id, lock=True)
    order = get_order(order_id)

    result = detach_order(pool, order)
    db.session.commit()

    notifications.publish(result)

    return jsonify({
        "pool": pool.to_dict(),
        "order": order.to_dict(),
    })


@bp.route("/<int:id>/status", methods=["PATCH"])
@auth_required("supplier")
def update_pool_status(id):
    """Supplier action: dispatched, delivered or cancelled"""
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not status:
        raise ValidationError("status is required")

    pool = get_pool(id, lock=True)
    supplier = db.session.get(Supplier, g.identity["id"])
    if supplier is None:
        raise ValidationError("Supplier account not found")

    result = transition_pool(pool, status, supplier=supplier, details=data)
    db.session.commit()

    notifications.publish(result)

    return jsonify(pool.to_dict(include_orders=True))


@bp.route("/status/ready", methods=["GET"])
def get_ready_pools():
    """Pools waiting for a supplier, oldest first"""
    pools = Pool.query.filter_by(status="ready").order_by(Pool.ready_at.asc(), Pool.id.asc()).all()
    return jsonify([pool.to_dict(include_orders=True) for pool in pools])


@bp.route("/location/<city>", methods=["GET"])
@bp.route("/location/<city>/<area>", methods=["GET"])
def get_pools_by_location(city, area=None):
    """Open pools serving a city (and area)"""
    pools = (
        Pool.query.filter(Pool.status.in_(("collecting", "ready")))
        .order_by(Pool.created_at.desc(), Pool.id.desc())
        .all()
    )
    if area is not None:
        location = {"city": city, "area": area}
        pools = [pool for pool in pools if location_matches(pool, location)]
    else:
        pools = [pool for pool in pools if normalize_place(pool.city) == normalize_place(city)]

    return jsonify([pool.to_dict(include_orders=True) for pool in pools])


@bp.route("/stats/overview", methods=["GET"])
def get_pool_stats():
    """Pool counts, value and average size per status"""
    breakdown = {}
    for pool in Pool.query.all():
        entry = breakdown.setdefault(pool.status, {"count": 0, "total_value": 0.0, "orders": 0})
        entry["count"] += 1
        entry["total_value"] += pool.total_value
        entry["orders"] += len(pool.orders)

    for entry in breakdown.values():
        entry["avg_order_count"] = round(entry.pop("orders") / entry["count"], 2)
        entry["total_value"] = round(entry["total_value"], 2)

    return jsonify({
        "total_pools": sum(entry["count"] for entry in breakdown.values()),
        "ready_pools": breakdown.get("ready", {}).get("count", 0),
        "total_value": round(sum(entry["total_value"] for entry in breakdown.values()), 2),
        "status_breakdown": breakdown,
    })
