"""
Model: Vendor
Street vendor placing orders, identified by phone
"""
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from ..db import db


class Vendor(db.Model):
    __tablename__ = "vendors"

    id = db.Column(db.Integer, primary_key=True)
    phone = db.Column(db.String(20), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    # Default delivery location
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(80), nullable=True)
    area = db.Column(db.String(80), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            "id": self.id,
            "type": "vendor",
            "phone": self.phone,
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "area": self.area,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
