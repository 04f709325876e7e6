"""
API: Suppliers
Supplier directory, service areas and the pools each supplier handles
"""
import logging
from flask import Blueprint, request, jsonify, g

from ..db import db
from ..errors import NotFoundError, ForbiddenError, ValidationError
from ..models import Supplier, Pool, ServiceArea
from ..services.order_intake import to_number
from ..utils.auth import auth_required

logger = logging.getLogger(__name__)

bp = Blueprint("suppliers", __name__)


def _get_supplier(id):
    supplier = db.session.get(Supplier, id)
    if not supplier:
        raise NotFoundError("Supplier not found")
    return supplier


def build_service_areas(raw_areas):
    """Validated ServiceArea records from a request payload"""
    if not isinstance(raw_areas, list):
        raise ValidationError("service_areas must be a list")

    service_areas = []
    for index, raw in enumerate(raw_areas, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Service area {index} must be an object")
        city = str(raw.get("city") or "").strip()
        if not city:
            raise ValidationError(f"Service area {index} needs a city")

        areas = raw.get("areas") or []
        if not isinstance(areas, list):
            raise ValidationError(f"Service area {index} areas must be a list")
        areas = [str(area).strip() for area in areas if str(area).strip()]

        radius = raw.get("radius_km")
        if radius is not None:
            radius = to_number(radius, f"Service area {index} radius_km")
            if radius <= 0:
                raise ValidationError(f"Service area {index} radius_km must be positive")

        fee = to_number(raw.get("delivery_fee") or 0, f"Service area {index} delivery_fee")
        if fee < 0:
            raise ValidationError(f"Service area {index} delivery_fee cannot be negative")

        service_areas.append(ServiceArea(city=city, areas=areas, radius_km=radius, delivery_fee=fee))
    return service_areas


@bp.route("", methods=["GET"])
def get_suppliers():
    """Active suppliers, optionally by city"""
    city = request.args.get("city")

    query = Supplier.query.filter_by(active=True)
    if city:
        query = query.filter(db.func.lower(Supplier.city) == city.strip().lower())

    return jsonify([supplier.to_dict() for supplier in query.order_by(Supplier.name).all()])


@bp.route("/<int:id>", methods=["GET"])
def get_supplier(id):
    return jsonify(_get_supplier(id).to_dict())


@bp.route("/location/<city>", methods=["GET"])
@bp.route("/location/<city>/<area>", methods=["GET"])
def get_suppliers_by_location(city, area=None):
    """Active suppliers delivering to a city (and area)"""
    suppliers = Supplier.query.filter_by(active=True).order_by(Supplier.name).all()
    return jsonify([
        supplier.to_dict() for supplier in suppliers
        if supplier.serves_location(city, area)
    ])


@bp.route("/<int:id>/service-areas", methods=["PUT"])
@auth_required("supplier")
def update_service_areas(id):
    """Replaces the supplier's own service areas"""
    supplier = _get_supplier(id)
    if supplier.id != g.identity["id"]:
        raise ForbiddenError("Suppliers can only change their own service areas")

    data = request.get_json(silent=True) or {}
    supplier.service_areas = build_service_areas(data.get("service_areas"))
    db.session.commit()
    logger.info("Supplier %s now serves %d areas", supplier.id, len(supplier.service_areas))

    return jsonify(supplier.to_dict())


@bp.route("/<int:id>/pools", methods=["GET"])
def get_supplier_pools(id):
    """Pools dispatched or delivered by the supplier"""
    supplier = _get_supplier(id)

    status = request.args.get("status")
    query = Pool.query.filter_by(supplier_id=supplier.id)
    if status:
        query = query.filter_by(status=status)

    pools = query.order_by(Pool.dispatched_at.desc(), Pool.id.desc()).all()
    return jsonify([pool.to_dict(include_orders=True) for pool in pools])
