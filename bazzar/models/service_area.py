"""
Model: ServiceArea
A city (and optionally some of its areas) a supplier delivers to
"""
from ..db import db
from ..utils.geo import normalize_place


class ServiceArea(db.Model):
    __tablename__ = "service_areas"

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    city = db.Column(db.String(80), nullable=False)
    areas = db.Column(db.JSON, nullable=False, default=list)
    radius_km = db.Column(db.Float, nullable=True)
    delivery_fee = db.Column(db.Float, nullable=False, default=0)

    supplier = db.relationship("Supplier", back_populates="service_areas")

    def covers(self, city, area=None):
        """Same city; an area is covered when one of ours contains it (or none are listed)"""
        if normalize_place(self.city) != normalize_place(city):
            return False
        if not area or not self.areas:
            return True
        wanted = normalize_place(area)
        return any(wanted in normalize_place(name) for name in self.areas)

    def to_dict(self):
        return {
            "id": self.id,
            "city": self.city,
            "areas": list(self.areas or []),
            "radius_km": self.radius_km,
            "delivery_fee": self.delivery_fee,
        }
