"""
Model: Order item
One line of a vendor order (name, quantity, unit, estimated price)
"""
from ..db import db


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False)

    name = db.Column(db.String(120), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(16), nullable=False, default="kg")

    # Estimated price per unit, filled from the price catalog when missing
    estimated_price = db.Column(db.Float, nullable=False, default=0)

    order = db.relationship("Order", back_populates="items")

    @property
    def line_total(self):
        return (self.quantity or 0) * (self.estimated_price or 0)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "estimated_price": self.estimated_price,
            "total": round(self.line_total, 2),
        }
