"""
API: Voice orders
Audio clip -> transcript + items -> pooled order
"""
import logging
from flask import Blueprint, request, jsonify, current_app

from ..db import db
from ..errors import ValidationError
from ..services import notifications
from ..services.order_intake import PHONE_RE, build_order, parse_location
from ..services.pool_aggregator import PoolingResult, pool_order
from ..services.voice_intake import process_voice_order
from ..utils.auth import current_identity

logger = logging.getLogger(__name__)

bp = Blueprint("voice", __name__)


def allowed_audio(file):
    extension = file.filename.rsplit(".", 1)[-1].lower() if "." in file.filename else ""
    mimetype = file.mimetype or ""
    return (
        extension in current_app.config["ALLOWED_AUDIO_EXTENSIONS"]
        or mimetype.startswith("audio/")
        or mimetype in ("video/webm", "video/mp4")
    )


@bp.route("/process", methods=["POST"])
def process_voice():
    """
    Multipart form:
        audio: audio clip
        vendor_phone: required unless a vendor token is sent
        address, city, area, lat, lng: delivery location
        language: optional Whisper language hint (default from config)
        auto_pool: "false" to skip pooling
    """
    audio = request.files.get("audio")
    if audio is None or not audio.filename:
        raise ValidationError("No audio file provided")
    if not allowed_audio(audio):
        raise ValidationError(f"File type not supported: {audio.mimetype}")

    form = request.form
    identity = current_identity()
    vendor_phone = identity["phone"] if identity and identity["type"] == "vendor" else form.get("vendor_phone")
    if not vendor_phone or not PHONE_RE.match(vendor_phone.strip()):
        raise ValidationError("A valid vendor phone number is required")

    location = parse_location({"location": {
        "address": form.get("address") or form.get("location"),
        "city": form.get("city"),
        "area": form.get("area"),
        "lat": form.get("lat") or None,
        "lng": form.get("lng") or None,
    }})

    data = audio.read()
    if not data:
        raise ValidationError("Audio file is empty")

    intake = process_voice_order(audio.filename, data, audio.mimetype, form.get("language"))
    if not intake["items"]:
        return jsonify({
            **intake,
            "order": None,
            "pool": None,
            "message": "No items recognised, please repeat the order",
        }), 422

    payload = {
        "items": intake["items"],
        "total": intake["total"],
        "transcript": intake["transcript"],
        "confidence": intake["confidence"],
        "location": location,
    }
    order = build_order(payload, vendor_phone, source="voice")
    db.session.add(order)

    result = PoolingResult(pool=None, order=order)
    if form.get("auto_pool", "true").lower() != "false":
        result = pool_order(order)

    db.session.commit()
    logger.info("Voice order %s created for %s with %d items", order.id, vendor_phone, len(order.items))

    notifications.publish(result)

    return jsonify({
        **intake,
        "order": order.to_dict(),
        "pool": result.pool.to_dict() if result.pool else None,
    }), 201
