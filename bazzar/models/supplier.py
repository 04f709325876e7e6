"""
Model: Supplier
Wholesaler that picks up and dispatches ready pools
"""
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from ..db import db
from ..utils.geo import normalize_place


class Supplier(db.Model):
    __tablename__ = "suppliers"

    id = db.Column(db.Integer, primary_key=True)
    phone = db.Column(db.String(20), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    business_name = db.Column(db.String(160), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Service area
    city = db.Column(db.String(80), nullable=True)
    area = db.Column(db.String(80), nullable=True)

    active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    pools = db.relationship("Pool", back_populates="supplier")
    service_areas = db.relationship(
        "ServiceArea", back_populates="supplier", cascade="all, delete-orphan", order_by="ServiceArea.id"
    )

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def serves_location(self, city, area=None):
        """Listed service areas win; without any, the home city/area is used"""
        if self.service_areas:
            return any(service_area.covers(city, area) for service_area in self.service_areas)
        if normalize_place(self.city) != normalize_place(city):
            return False
        return not area or normalize_place(area) in normalize_place(self.area)

    def to_dict(self):
        return {
            "id": self.id,
            "type": "supplier",
            "phone": self.phone,
            "name": self.name,
            "business_name": self.business_name,
            "city": self.city,
            "area": self.area,
            "active": self.active,
            "service_areas": [service_area.to_dict() for service_area in self.service_areas],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
