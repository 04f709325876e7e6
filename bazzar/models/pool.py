"""
Model: Pool
A geographic batch of orders aggregated for joint dispatch
"""
from datetime import datetime, timedelta
from ..db import db

POOL_STATUSES = ("collecting", "ready", "dispatched", "delivered", "cancelled")
OPEN_POOL_STATUSES = ("collecting", "ready")


class Pool(db.Model):
    __tablename__ = "pools"

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    # Geographic descriptor
    address = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(80), nullable=False, index=True)
    area = db.Column(db.String(80), nullable=True, index=True)
    lat = db.Column(db.Float, nullable=True)
    lng = db.Column(db.Float, nullable=True)
    radius_km = db.Column(db.Float, nullable=False, default=2.0)

    status = db.Column(db.String(20), nullable=False, default="collecting", index=True)
    # collecting | ready | dispatched | delivered | cancelled

    # Thresholds, any one of them makes the pool ready
    min_orders = db.Column(db.Integer, nullable=False, default=5)
    min_value = db.Column(db.Float, nullable=False, default=1000)
    max_wait_minutes = db.Column(db.Integer, nullable=False, default=120)

    total_value = db.Column(db.Float, nullable=False, default=0)

    # Dispatch details
    supplier_notes = db.Column(db.Text, nullable=True)
    delivery_person_name = db.Column(db.String(120), nullable=True)
    delivery_person_phone = db.Column(db.String(20), nullable=True)
    vehicle_number = db.Column(db.String(40), nullable=True)
    estimated_delivery = db.Column(db.DateTime, nullable=True)

    auto_created = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    ready_at = db.Column(db.DateTime, nullable=True)
    dispatched_at = db.Column(db.DateTime, nullable=True)
    delivered_at = db.Column(db.DateTime, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    # Relationships
    orders = db.relationship("Order", back_populates="pool", order_by="Order.id")
    supplier = db.relationship("Supplier", back_populates="pools")

    @property
    def is_open(self):
        return self.status in OPEN_POOL_STATUSES

    @property
    def vendor_count(self):
        return len(self.orders)

    @property
    def average_order_value(self):
        return self.total_value / len(self.orders) if self.orders else 0

    def is_wait_expired(self, now=None):
        if not self.created_at:
            return False
        now = now or datetime.utcnow()
        return now - self.created_at >= timedelta(minutes=self.max_wait_minutes)

    def meets_threshold(self, now=None):
        """True when any one of the thresholds is reached"""
        return (
            len(self.orders) >= self.min_orders
            or self.total_value >= self.min_value
            or self.is_wait_expired(now)
        )

    def location_dict(self):
        coordinates = None
        if self.lat is not None and self.lng is not None:
            coordinates = {"lat": self.lat, "lng": self.lng}
        return {
            "address": self.address,
            "city": self.city,
            "area": self.area,
            "coordinates": coordinates,
            "radius_km": self.radius_km,
        }

    def to_dict(self, include_orders=False):
        data = {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "location": self.location_dict(),
            "status": self.status,
            "threshold": {
                "min_orders": self.min_orders,
                "min_value": self.min_value,
                "max_wait_minutes": self.max_wait_minutes,
            },
            "total_value": self.total_value,
            "order_ids": [order.id for order in self.orders],
            "vendor_count": self.vendor_count,
            "average_order_value": round(self.average_order_value, 2),
            "wait_expired": self.is_wait_expired(),
            "supplier_notes": self.supplier_notes,
            "dispatch_details": {
                "delivery_person_name": self.delivery_person_name,
                "delivery_person_phone": self.delivery_person_phone,
                "vehicle_number": self.vehicle_number,
                "estimated_delivery": self.estimated_delivery.isoformat() if self.estimated_delivery else None,
                "dispatched_at": self.dispatched_at.isoformat() if self.dispatched_at else None,
                "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
            },
            "auto_created": self.auto_created,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "ready_at": self.ready_at.isoformat() if self.ready_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
        }
        if include_orders:
            data["orders"] = [order.to_dict() for order in self.orders]
        return data
