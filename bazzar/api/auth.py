"""
API: Authentication
Vendor and supplier signup/login with phone and password
"""
import logging
import re
from flask import Blueprint, request, jsonify

from ..db import db
from ..models import Vendor, Supplier
from ..utils.auth import issue_token, current_identity
from .suppliers import build_service_areas

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

PHONE_RE = re.compile(r"^\+?[\d\s\-()]+$")
MIN_PASSWORD_LENGTH = 6

ACCOUNT_MODELS = {
    "vendor": Vendor,
    "supplier": Supplier,
}


def _signup(user_type):
    data = request.get_json(silent=True) or {}
    phone = (data.get("phone") or "").strip()
    name = (data.get("name") or "").strip()
    password = data.get("password") or ""

    if not phone or not PHONE_RE.match(phone):
        return jsonify({"error": "A valid phone number is required"}), 400
    if not name:
        return jsonify({"error": "name is required"}), 400
    if len(password) < MIN_PASSWORD_LENGTH:
        return jsonify({"error": f"password must have at least {MIN_PASSWORD_LENGTH} characters"}), 400

    model = ACCOUNT_MODELS[user_type]
    if model.query.filter_by(phone=phone).first():
        return jsonify({"error": f"A {user_type} with this phone already exists"}), 400

    if user_type == "vendor":
        user = Vendor(
            phone=phone,
            name=name,
            address=data.get("address"),
            city=data.get("city"),
            area=data.get("area"),
        )
    else:
        user = Supplier(
            phone=phone,
            name=name,
            business_name=data.get("business_name"),
            city=data.get("city"),
            area=data.get("area"),
        )
        if data.get("service_areas"):
            user.service_areas = build_service_areas(data["service_areas"])
    user.set_password(password)

    db.session.add(user)
    db.session.commit()
    logger.info("New %s account %s", user_type, user.id)

    return jsonify({
        "token": issue_token(user_type, user),
        "user": user.to_dict(),
    }), 201


def _login(user_type):
    data = request.get_json(silent=True) or {}
    phone = (data.get("phone") or "").strip()
    password = data.get("password") or ""

    user = ACCOUNT_MODELS[user_type].query.filter_by(phone=phone).first()
    if not user or not user.check_password(password):
        logger.info("Failed %s login for %s", user_type, phone)
        return jsonify({"error": "Incorrect phone or password"}), 401

    return jsonify({
        "token": issue_token(user_type, user),
        "user": user.to_dict(),
    })


@bp.route("/vendor/signup", methods=["POST"])
def vendor_signup():
    """Creates a vendor account"""
    return _signup("vendor")


@bp.route("/vendor/login", methods=["POST"])
def vendor_login():
    return _login("vendor")


@bp.route("/supplier/signup", methods=["POST"])
def supplier_signup():
    """Creates a supplier account"""
    return _signup("supplier")


@bp.route("/supplier/login", methods=["POST"])
def supplier_login():
    return _login("supplier")


@bp.route("/verify", methods=["GET"])
def verify():
    """Checks whether the token is valid"""
    identity = current_identity()
    if identity is None:
        return jsonify({"valid": False}), 401

    user = db.session.get(ACCOUNT_MODELS[identity["type"]], identity["id"])
    if not user:
        return jsonify({"valid": False}), 401

    return jsonify({
        "valid": True,
        "user": user.to_dict(),
    })
