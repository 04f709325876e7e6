from sqlalchemy.exc import SQLAlchemyError


def create_order(client, value=100, area="Andheri", phone="+919900000001", auto_pool=False):
    response = client.post("/api/orders", json={
        "vendor_phone": phone,
        "items": [{"name": "rice", "quantity": 1, "unit": "kg", "estimated_price": value}],
        "location": {"address": f"{area} station road", "city": "Mumbai", "area": area},
        "auto_pool": auto_pool,
    })
    assert response.status_code == 201
    return response.get_json()["order"]


def create_pool(client, **threshold):
    response = client.post("/api/pools", json={
        "location": {"address": "Andheri market", "city": "Mumbai", "area": "Andheri"},
        "threshold": threshold,
    })
    assert response.status_code == 201
    return response.get_json()


def test_create_pool_with_thresholds(client):
    pool = create_pool(client, min_orders=3, min_value=500)

    assert pool["status"] == "collecting"
    assert pool["threshold"]["min_orders"] == 3
    assert pool["threshold"]["min_value"] == 500
    assert pool["total_value"] == 0


def test_create_pool_requires_city(client):
    response = client.post("/api/pools", json={"location": {"address": "Somewhere"}})

    assert response.status_code == 400
    assert "city" in response.get_json()["error"]


def test_attach_scenario(client):
    pool = create_pool(client, min_orders=3)
    orders = [create_order(client, 100), create_order(client, 100), create_order(client, 50)]

    for order in orders[:2]:
        response = client.post(f"/api/pools/{pool['id']}/orders", json={"order_id": order["id"]})
        assert response.status_code == 200

    body = client.get(f"/api/pools/{pool['id']}").get_json()
    assert body["status"] == "collecting"
    assert body["total_value"] == 200

    response = client.post(f"/api/pools/{pool['id']}/orders", json={"order_id": orders[2]["id"]})
    body = response.get_json()
    assert body["pool"]["status"] == "ready"
    assert body["pool"]["total_value"] == 250
    assert body["order"]["status"] == "pooled"
    assert body["order"]["pool_id"] == pool["id"]


def test_attach_twice_keeps_total(client):
    pool = create_pool(client)
    order = create_order(client, 120)

    client.post(f"/api/pools/{pool['id']}/orders", json={"order_id": order["id"]})
    response = client.post(f"/api/pools/{pool['id']}/orders", json={"order_id": order["id"]})

    assert response.status_code == 200
    assert response.get_json()["pool"]["total_value"] == 120
    assert response.get_json()["pool"]["order_ids"] == [order["id"]]


def test_attach_unknown_ids(client):
    pool = create_pool(client)

    assert client.post("/api/pools/999/orders", json={"order_id": 1}).status_code == 404
    assert client.post(f"/api/pools/{pool['id']}/orders", json={"order_id": 999}).status_code == 404
    assert client.post(f"/api/pools/{pool['id']}/orders", json={}).status_code == 400


def test_detach_last_order_cancels(client):
    pool = create_pool(client)
    order = create_order(client, 80)
    client.post(f"/api/pools/{pool['id']}/orders", json={"order_id": order["id"]})

    response = client.delete(f"/api/pools/{pool['id']}/orders/{order['id']}")

    body = response.get_json()
    assert response.status_code == 200
    assert body["pool"]["status"] == "cancelled"
    assert body["pool"]["total_value"] == 0
    assert body["order"]["status"] == "pending"
    assert body["order"]["pool_id"] is None


def test_detach_order_not_in_pool(client):
    pool = create_pool(client)
    order = create_order(client)

    response = client.delete(f"/api/pools/{pool['id']}/orders/{order['id']}")

    assert response.status_code == 404


def test_status_change_requires_supplier(client, vendor_headers):
    pool = create_pool(client)

    assert client.patch(f"/api/pools/{pool['id']}/status", json={"status": "dispatched"}).status_code == 401
    response = client.patch(f"/api/pools/{pool['id']}/status", json={"status": "dispatched"},
                            headers=vendor_headers)
    assert response.status_code == 403


def test_dispatch_and_deliver(client, supplier, supplier_headers):
    pool = create_pool(client, min_orders=2)
    orders = [create_order(client, 100), create_order(client, 200, phone="+919900000002")]
    for order in orders:
        client.post(f"/api/pools/{pool['id']}/orders", json={"order_id": order["id"]})

    response = client.patch(f"/api/pools/{pool['id']}/status", headers=supplier_headers, json={
        "status": "dispatched",
        "delivery_person_name": "Vijay",
        "vehicle_number": "MH02AB1234",
        "estimated_delivery": "2024-05-01T10:30:00",
    })
    body = response.get_json()
    assert response.status_code == 200
    assert body["status"] == "dispatched"
    assert body["supplier_id"] == supplier.id
    assert body["dispatch_details"]["vehicle_number"] == "MH02AB1234"
    assert body["dispatch_details"]["estimated_delivery"] == "2024-05-01T10:30:00"
    assert {order["status"] for order in body["orders"]} == {"dispatched"}

    response = client.patch(f"/api/pools/{pool['id']}/status", headers=supplier_headers,
                            json={"status": "delivered"})
    body = response.get_json()
    assert body["status"] == "delivered"
    assert {order["status"] for order in body["orders"]} == {"delivered"}

    supplier_pools = client.get(f"/api/suppliers/{supplier.id}/pools").get_json()
    assert [p["id"] for p in supplier_pools] == [pool["id"]]


def test_invalid_transitions_rejected(client, supplier_headers):
    pool = create_pool(client)
    url = f"/api/pools/{pool['id']}/status"

    assert client.patch(url, headers=supplier_headers, json={"status": "ready"}).status_code == 400
    assert client.patch(url, headers=supplier_headers, json={"status": "dispatched"}).status_code == 400
    assert client.patch(url, headers=supplier_headers, json={"status": "bogus"}).status_code == 400
    assert client.patch(url, headers=supplier_headers, json={}).status_code == 400


def test_closed_pool_is_immutable(client, supplier_headers):
    pool = create_pool(client, min_orders=1)
    order = create_order(client)
    client.post(f"/api/pools/{pool['id']}/orders", json={"order_id": order["id"]})
    client.patch(f"/api/pools/{pool['id']}/status", headers=supplier_headers, json={"status": "dispatched"})

    late = create_order(client)
    assert client.post(f"/api/pools/{pool['id']}/orders", json={"order_id": late["id"]}).status_code == 400
    assert client.delete(f"/api/pools/{pool['id']}/orders/{order['id']}").status_code == 400


def test_ready_pools_listing(client):
    ready = create_pool(client, min_orders=1)
    create_pool(client, min_orders=5)
    order = create_order(client)
    client.post(f"/api/pools/{ready['id']}/orders", json={"order_id": order["id"]})

    body = client.get("/api/pools/status/ready").get_json()

    assert [pool["id"] for pool in body] == [ready["id"]]
    assert body[0]["orders"][0]["id"] == order["id"]


def test_list_and_filter_pools(client):
    create_pool(client)
    client.post("/api/pools", json={"location": {"address": "Dadar TT", "city": "Mumbai", "area": "Dadar"}})

    body = client.get("/api/pools?area=dadar").get_json()
    assert body["pagination"]["total"] == 1
    assert body["pools"][0]["location"]["area"] == "Dadar"

    by_location = client.get("/api/pools/location/mumbai/andheri").get_json()
    assert len(by_location) == 1
    assert len(client.get("/api/pools/location/Mumbai").get_json()) == 2


def test_pool_stats(client):
    pool = create_pool(client, min_orders=1)
    create_pool(client)
    order = create_order(client, 300)
    client.post(f"/api/pools/{pool['id']}/orders", json={"order_id": order["id"]})

    body = client.get("/api/pools/stats/overview").get_json()

    assert body["total_pools"] == 2
    assert body["ready_pools"] == 1
    assert body["total_value"] == 300
    assert body["status_breakdown"]["ready"]["avg_order_count"] == 1


def test_non_finite_thresholds_rejected(client):
    for threshold in ({"min_value": "inf"}, {"min_orders": "nan"}, {"radius_km": "Infinity"}):
        response = client.post("/api/pools", json={
            "location": {"address": "Andheri market", "city": "Mumbai", "area": "Andheri"},
            "threshold": threshold,
        })
        assert response.status_code == 400

    assert client.get("/api/pools").get_json()["pagination"]["total"] == 0


def test_failed_commit_leaves_pool_untouched(client, db, monkeypatch):
    pool = create_pool(client, min_orders=1)
    order = create_order(client, 75)

    def failing_commit():
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(db.session, "commit", failing_commit)
    response = client.post(f"/api/pools/{pool['id']}/orders", json={"order_id": order["id"]})
    monkeypatch.undo()

    assert response.status_code == 500
    assert "not applied" in response.get_json()["error"]

    body = client.get(f"/api/pools/{pool['id']}").get_json()
    assert body["status"] == "collecting"
    assert body["total_value"] == 0
    assert body["order_ids"] == []
    stored = client.get(f"/api/orders/{order['id']}").get_json()
    assert stored["status"] == "pending"
    assert stored["pool_id"] is None
