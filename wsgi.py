"""
BazzarBandhu - Flask application
Voice ordering and order pooling for street vendors and suppliers
"""
import logging
import os
from flask import Flask
from flask_cors import CORS
from bazzar.config import get_config
from bazzar.db import db, init_db
from bazzar.errors import register_error_handlers
from bazzar.limiter import limiter, init_limiter
from bazzar.sockets import socketio

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """Factory for the Flask application"""
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(get_config(config_name))

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Enable CORS
    allowed_origins = app.config["ALLOWED_ORIGINS"].split(",")
    if "*" in allowed_origins:
        # Development: allow everything
        CORS(app, resources={r"/api/*": {
            "origins": "*",
            "methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"]
        }})
        cors_origins = "*"
    else:
        # Production: specific domains
        CORS(app, resources={r"/api/*": {
            "origins": allowed_origins,
            "methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
            "supports_credentials": True
        }})
        cors_origins = allowed_origins

    # Database
    if not app.config["TESTING"]:
        os.makedirs(app.instance_path, exist_ok=True)
    init_db(app)

    # Live updates
    socketio.init_app(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=app.config["SOCKETIO_ASYNC_MODE"],
    )

    # Rate limiting (REST API only, /health is exempt)
    init_limiter(app)

    register_error_handlers(app)

    with app.app_context():
        if app.config["FLASK_ENV"] == "development":
            init_dev_data()

    # Register API blueprints
    from bazzar.api import auth_bp, orders_bp, pools_bp, suppliers_bp, voice_bp

    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(orders_bp, url_prefix="/api/orders")
    app.register_blueprint(pools_bp, url_prefix="/api/pools")
    app.register_blueprint(suppliers_bp, url_prefix="/api/suppliers")
    app.register_blueprint(voice_bp, url_prefix="/api/voice")

    # Health check
    @app.route("/health")
    @limiter.exempt
    def health():
        return {
            "status": "ok",
            "message": "BazzarBandhu is running",
            "voice": "configured" if app.config.get("OPENAI_API_KEY") else "not configured",
        }

    return app


def init_dev_data():
    """Seeds development data"""
    from bazzar.models import Supplier, Vendor, ServiceArea

    # Skip if data already exists
    if Supplier.query.first():
        return

    logger.info("Seeding development data...")

    suppliers = [
        Supplier(phone="+919800000001", name="Ramesh Traders", business_name="Ramesh Wholesale",
                 city="Mumbai", area="Andheri"),
        Supplier(phone="+919800000002", name="Sharma Kirana", business_name="Sharma & Sons",
                 city="Mumbai", area="Dadar"),
    ]
    suppliers[0].service_areas = [ServiceArea(city="Mumbai", areas=["Andheri", "Juhu", "Vile Parle"], delivery_fee=40)]
    suppliers[1].service_areas = [ServiceArea(city="Mumbai", areas=["Dadar", "Matunga"], delivery_fee=30)]
    vendors = [
        Vendor(phone="+919900000001", name="Sunita Chaat", address="Station Road, Andheri East",
               city="Mumbai", area="Andheri"),
        Vendor(phone="+919900000002", name="Raju Pav Bhaji", address="Lokhandwala Market",
               city="Mumbai", area="Andheri"),
        Vendor(phone="+919900000003", name="Meena Vada Pav", address="Dadar TT Circle",
               city="Mumbai", area="Dadar"),
    ]
    for account in suppliers + vendors:
        account.set_password("password123")
        db.session.add(account)

    db.session.commit()
    logger.info("Development data ready (%d suppliers, %d vendors)", len(suppliers), len(vendors))


# App instance for gunicorn
app = create_app()

if __name__ == "__main__":
    socketio.run(app, debug=True, host="0.0.0.0", port=5000, allow_unsafe_werkzeug=True)
