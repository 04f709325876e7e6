import os

os.environ["FLASK_ENV"] = "testing"

import pytest

from wsgi import create_app
from bazzar.db import db as _db
from bazzar.models import Order, OrderItem, Pool, Supplier, Vendor
from bazzar.sockets import socketio
from bazzar.utils.auth import issue_token


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def socket_client(app, client):
    sc = socketio.test_client(app, flask_test_client=client)
    yield sc
    if sc.is_connected():
        sc.disconnect()


@pytest.fixture
def supplier(db):
    supplier = Supplier(phone="+919800000001", name="Ramesh Traders", city="Mumbai", area="Andheri")
    supplier.set_password("secret123")
    db.session.add(supplier)
    db.session.commit()
    return supplier


@pytest.fixture
def other_supplier(db):
    supplier = Supplier(phone="+919800000002", name="Sharma Kirana", city="Mumbai", area="Dadar")
    supplier.set_password("secret123")
    db.session.add(supplier)
    db.session.commit()
    return supplier


@pytest.fixture
def vendor(db):
    vendor = Vendor(phone="+919900000001", name="Sunita Chaat", city="Mumbai", area="Andheri")
    vendor.set_password("secret123")
    db.session.add(vendor)
    db.session.commit()
    return vendor


@pytest.fixture
def supplier_headers(supplier):
    return {"Authorization": f"Bearer {issue_token('supplier', supplier)}"}


@pytest.fixture
def vendor_headers(vendor):
    return {"Authorization": f"Bearer {issue_token('vendor', vendor)}"}


@pytest.fixture
def make_order(db):
    counter = {"n": 0}

    def _make(value=100, phone=None, city="Mumbai", area="Andheri", lat=None, lng=None):
        counter["n"] += 1
        order = Order(
            vendor_phone=phone or f"+91990000{counter['n']:04d}",
            address=f"Stall {counter['n']}, {area} market",
            city=city,
            area=area,
            lat=lat,
            lng=lng,
            status="pending",
            estimated_value=value,
        )
        order.items = [OrderItem(name="rice", quantity=1, unit="kg", estimated_price=value)]
        db.session.add(order)
        db.session.flush()
        return order

    return _make


@pytest.fixture
def make_pool(db):
    def _make(min_orders=5, min_value=1000, max_wait_minutes=120, city="Mumbai", area="Andheri",
              lat=None, lng=None, radius_km=2.0, status="collecting", created_at=None):
        pool = Pool(
            address=f"{area} market",
            city=city,
            area=area,
            lat=lat,
            lng=lng,
            radius_km=radius_km,
            min_orders=min_orders,
            min_value=min_value,
            max_wait_minutes=max_wait_minutes,
            status=status,
            total_value=0,
        )
        if created_at is not None:
            pool.created_at = created_at
        db.session.add(pool)
        db.session.flush()
        return pool

    return _make
