"""
Model: Order
One vendor's requested items plus delivery details
"""
from datetime import datetime
from ..db import db

ORDER_STATUSES = ("pending", "pooled", "dispatched", "delivered", "cancelled")
ORDER_SOURCES = ("voice", "text", "manual")
ORDER_PRIORITIES = ("low", "medium", "high", "urgent")


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    vendor_phone = db.Column(db.String(20), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    # pending | pooled | dispatched | delivered | cancelled

    pool_id = db.Column(db.Integer, db.ForeignKey("pools.id"), nullable=True, index=True)

    # Delivery location
    address = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(80), nullable=True)
    area = db.Column(db.String(80), nullable=True)
    lat = db.Column(db.Float, nullable=True)
    lng = db.Column(db.Float, nullable=True)

    transcript = db.Column(db.Text, nullable=True)
    confidence = db.Column(db.Float, nullable=False, default=0)

    estimated_value = db.Column(db.Float, nullable=False, default=0)
    actual_value = db.Column(db.Float, nullable=True)

    source = db.Column(db.String(20), nullable=False, default="manual")
    # voice | text | manual
    priority = db.Column(db.String(20), nullable=False, default="medium")

    supplier_notes = db.Column(db.Text, nullable=True)
    delivery_notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    delivered_at = db.Column(db.DateTime, nullable=True)

    # Relationships
    pool = db.relationship("Pool", back_populates="orders")
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    @property
    def items_total(self):
        return sum(item.line_total for item in self.items)

    @property
    def total_quantity(self):
        return sum(item.quantity for item in self.items)

    def location_dict(self):
        coordinates = None
        if self.lat is not None and self.lng is not None:
            coordinates = {"lat": self.lat, "lng": self.lng}
        return {
            "address": self.address,
            "city": self.city,
            "area": self.area,
            "coordinates": coordinates,
        }

    def to_dict(self, include_pool=False):
        data = {
            "id": self.id,
            "vendor_phone": self.vendor_phone,
            "status": self.status,
            "pool_id": self.pool_id,
            "items": [item.to_dict() for item in self.items],
            "total_items": self.total_quantity,
            "location": self.location_dict(),
            "transcript": self.transcript,
            "confidence": self.confidence,
            "estimated_value": self.estimated_value,
            "actual_value": self.actual_value,
            "source": self.source,
            "priority": self.priority,
            "supplier_notes": self.supplier_notes,
            "delivery_notes": self.delivery_notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
        }
        if include_pool:
            data["pool"] = self.pool.to_dict() if self.pool else None
        return data
