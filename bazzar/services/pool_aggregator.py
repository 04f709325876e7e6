"""
Service: Pool aggregator
Groups vendor orders by area into pools, keeps pool totals in sync and
drives the pool status machine:

    collecting -> ready -> dispatched -> delivered
    collecting -> cancelled, ready -> cancelled

Only the aggregator moves a pool to "ready" (when a threshold is reached);
every other transition is a supplier action. Functions here mutate the
session but never commit; the caller owns the transaction.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from flask import current_app

from ..db import db
from ..errors import ValidationError, NotFoundError, ForbiddenError
from ..models import Pool, Order, POOL_STATUSES, OPEN_POOL_STATUSES
from ..utils.geo import haversine_km, normalize_place
from .order_intake import to_number

logger = logging.getLogger(__name__)

POOL_TRANSITIONS = {
    "collecting": {"ready", "cancelled"},
    "ready": {"dispatched", "cancelled"},
    "dispatched": {"delivered"},
    "delivered": set(),
    "cancelled": set(),
}

DISPATCH_FIELDS = ("delivery_person_name", "delivery_person_phone", "vehicle_number", "supplier_notes")


@dataclass
class PoolingResult:
    pool: Optional[Pool]
    order: Optional[Order] = None
    created: bool = False
    attached: bool = False
    detached: bool = False
    became_ready: bool = False
    previous_status: Optional[str] = None
    orders: List[Order] = field(default_factory=list)

    @property
    def status_changed(self):
        return self.pool is not None and self.previous_status != self.pool.status


def get_pool(pool_id, lock=False):
    query = Pool.query.filter_by(id=pool_id)
    if lock:
        query = query.with_for_update()
    pool = query.first()
    if not pool:
        raise NotFoundError("Pool not found")
    return pool


def get_order(order_id):
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


# ---------------------------------------------------------------------------
# Thresholds and matching
# ---------------------------------------------------------------------------

def default_thresholds():
    config = current_app.config
    return {
        "min_orders": config["POOL_MIN_ORDERS"],
        "min_value": config["POOL_MIN_VALUE"],
        "max_wait_minutes": config["POOL_MAX_WAIT_MINUTES"],
        "radius_km": config["POOL_RADIUS_KM"],
    }


def validate_thresholds(data):
    """Merges threshold overrides onto the defaults and checks their ranges"""
    thresholds = default_thresholds()
    for key in thresholds:
        if data.get(key) is None:
            continue
        value = to_number(data[key], key)
        if key in ("min_orders", "max_wait_minutes"):
            if value != int(value):
                raise ValidationError(f"{key} must be an integer")
            value = int(value)
        thresholds[key] = value

    if thresholds["min_orders"] < 1:
        raise ValidationError("min_orders must be at least 1")
    if thresholds["min_value"] < 0:
        raise ValidationError("min_value cannot be negative")
    if thresholds["max_wait_minutes"] < 0:
        raise ValidationError("max_wait_minutes cannot be negative")
    if thresholds["radius_km"] <= 0:
        raise ValidationError("radius_km must be positive")
    return thresholds


def order_location(order):
    return {
        "address": order.address,
        # Pools are keyed by city; orders without one fall back to area/address
        "city": order.city or order.area or order.address,
        "area": order.area,
        "lat": order.lat,
        "lng": order.lng,
    }


def location_matches(pool, location):
    lat, lng = location.get("lat"), location.get("lng")
    if None not in (lat, lng, pool.lat, pool.lng):
        return haversine_km(pool.lat, pool.lng, lat, lng) <= pool.radius_km

    return (
        normalize_place(pool.city) == normalize_place(location.get("city"))
        and normalize_place(pool.area) == normalize_place(location.get("area"))
    )


def find_matching_pool(location):
    """
    Oldest open pool serving the location, preferring pools still collecting
    """
    candidates = [
        pool for pool in Pool.query.filter(Pool.status.in_(OPEN_POOL_STATUSES))
        .order_by(Pool.created_at.asc(), Pool.id.asc())
        .all()
        if location_matches(pool, location)
    ]
    if not candidates:
        return None
    collecting = [pool for pool in candidates if pool.status == "collecting"]
    return (collecting or candidates)[0]


def create_pool(location, thresholds=None, auto_created=False):
    if not (location.get("address") or "").strip():
        raise ValidationError("Pool address is required")
    if not (location.get("city") or "").strip():
        raise ValidationError("Pool city is required")

    thresholds = thresholds or default_thresholds()
    pool = Pool(
        address=location["address"].strip(),
        city=location["city"].strip(),
        area=(location.get("area") or "").strip() or None,
        lat=location.get("lat"),
        lng=location.get("lng"),
        radius_km=thresholds["radius_km"],
        min_orders=thresholds["min_orders"],
        min_value=thresholds["min_value"],
        max_wait_minutes=thresholds["max_wait_minutes"],
        status="collecting",
        total_value=0,
        auto_created=auto_created,
        created_at=datetime.utcnow(),
    )
    db.session.add(pool)
    return pool


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def recompute_total(pool):
    pool.total_value = round(sum(order.estimated_value or 0 for order in pool.orders), 2)
    return pool.total_value


def evaluate_ready(pool, now=None):
    """
    Flips a collecting pool to ready once any threshold is met.
    The wait-time threshold is only seen here, i.e. on the next write.
    """
    now = now or datetime.utcnow()
    if pool.status == "collecting" and pool.meets_threshold(now):
        pool.status = "ready"
        pool.ready_at = now
        logger.info("Pool %s is ready (%d orders, total %.2f)", pool.id, len(pool.orders), pool.total_value)
        return True
    return False


def attach_order(pool, order, now=None):
    """Attaches an order; attaching it to the same pool again is a no-op"""
    if order.pool is pool:
        return PoolingResult(pool=pool, order=order, previous_status=pool.status)

    if not pool.is_open:
        raise ValidationError(f"Pool {pool.id} is {pool.status}, orders can no longer be attached")
    if order.pool is not None:
        raise ValidationError(f"Order {order.id} already belongs to pool {order.pool.id}")
    if order.status != "pending":
        raise ValidationError(f"Only pending orders can be pooled (order is {order.status})")

    previous_status = pool.status
    pool.orders.append(order)
    order.status = "pooled"
    recompute_total(pool)
    became_ready = evaluate_ready(pool, now)

    return PoolingResult(
        pool=pool,
        order=order,
        attached=True,
        became_ready=became_ready,
        previous_status=previous_status,
    )


def detach_order(pool, order, now=None):
    """Removes an order; an emptied pool is cancelled"""
    if order.pool is not pool:
        raise NotFoundError(f"Order {order.id} is not in pool {pool.id}")
    if not pool.is_open:
        raise ValidationError(f"Pool {pool.id} is {pool.status}, orders can no longer be removed")

    previous_status = pool.status
    pool.orders.remove(order)
    order.status = "pending"
    recompute_total(pool)

    if not pool.orders:
        pool.status = "cancelled"
        pool.cancelled_at = now or datetime.utcnow()
        logger.info("Pool %s cancelled, last order %s removed", pool.id, order.id)

    return PoolingResult(
        pool=pool,
        order=order,
        detached=True,
        previous_status=previous_status,
    )


def pool_order(order, now=None, thresholds=None):
    """Finds or creates the pool for the order's area and attaches it"""
    location = order_location(order)
    pool = find_matching_pool(location)
    created = False
    if pool is None:
        pool = create_pool(location, thresholds, auto_created=True)
        db.session.flush()
        created = True
        logger.info("Created pool %s for %s / %s", pool.id, pool.city, pool.area or "-")

    result = attach_order(pool, order, now)
    result.created = created
    return result


def refresh_pool(pool, now=None):
    """Re-syncs the total after an attached order changed"""
    previous_status = pool.status
    recompute_total(pool)
    became_ready = evaluate_ready(pool, now)
    return PoolingResult(pool=pool, became_ready=became_ready, previous_status=previous_status)


def cancel_order(order, now=None):
    if order.status in ("dispatched", "delivered", "cancelled"):
        raise ValidationError(f"Order {order.id} is {order.status} and cannot be cancelled")

    result = PoolingResult(pool=order.pool, order=order)
    if order.pool is not None:
        result = detach_order(order.pool, order, now)
    order.status = "cancelled"
    return result


def remove_order(order, now=None):
    """Deletes an order, detaching it from its pool first"""
    result = PoolingResult(pool=order.pool, order=order)
    if order.pool is not None:
        result = detach_order(order.pool, order, now)
    db.session.delete(order)
    return result


# ---------------------------------------------------------------------------
# Dispatch state machine
# ---------------------------------------------------------------------------

def transition_pool(pool, status, supplier=None, details=None, now=None):
    """
    Supplier-driven status change. Dispatch and delivery cascade the new
    status to every attached order; cancelling releases the orders.
    """
    details = details or {}
    now = now or datetime.utcnow()

    if status not in POOL_STATUSES:
        raise ValidationError("Invalid status")
    if status == "ready":
        raise ValidationError("Pools become ready automatically when a threshold is reached")
    if status not in POOL_TRANSITIONS[pool.status]:
        raise ValidationError(f"Cannot move pool from {pool.status} to {status}")
    if supplier is not None and pool.supplier is not None and pool.supplier.id != supplier.id:
        raise ForbiddenError("Pool is assigned to another supplier")

    previous_status = pool.status
    affected = list(pool.orders)

    if status == "dispatched":
        if supplier is not None:
            pool.supplier = supplier
        pool.dispatched_at = now
        _apply_dispatch_details(pool, details)
        for order in affected:
            order.status = "dispatched"

    elif status == "delivered":
        pool.delivered_at = now
        for order in affected:
            order.status = "delivered"
            order.delivered_at = now
            if order.actual_value is None:
                order.actual_value = order.estimated_value

    elif status == "cancelled":
        pool.cancelled_at = now
        for order in affected:
            pool.orders.remove(order)
            order.status = "pending"
        recompute_total(pool)

    pool.status = status
    logger.info("Pool %s: %s -> %s (%d orders)", pool.id, previous_status, status, len(affected))

    return PoolingResult(pool=pool, previous_status=previous_status, orders=affected)


def _apply_dispatch_details(pool, details):
    for key in DISPATCH_FIELDS:
        if details.get(key) is not None:
            setattr(pool, key, details[key])

    estimated = details.get("estimated_delivery")
    if estimated:
        try:
            pool.estimated_delivery = datetime.fromisoformat(estimated)
        except (TypeError, ValueError):
            raise ValidationError("estimated_delivery must be an ISO-8601 datetime")
