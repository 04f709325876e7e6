import json


ORDER = {
    "vendor_phone": "+919876543210",
    "items": [
        {"name": "rice", "quantity": 2, "unit": "kg", "estimated_price": 80},
        {"name": "onion", "quantity": 1, "unit": "kg"},
    ],
    "location": {"address": "Shop 4, Andheri station road", "city": "Mumbai", "area": "Andheri"},
}


def post_order(client, **overrides):
    return client.post("/api/orders", json={**ORDER, **overrides})


def test_create_order_pools_automatically(client):
    response = post_order(client)

    assert response.status_code == 201
    body = response.get_json()
    order, pool = body["order"], body["pool"]
    assert order["status"] == "pooled"
    assert order["estimated_value"] == 200
    assert order["items"][1]["estimated_price"] == 40
    assert order["pool_id"] == pool["id"]
    assert pool["auto_created"]
    assert pool["total_value"] == 200
    assert pool["location"]["area"] == "Andheri"


def test_orders_in_same_area_share_a_pool(client):
    first = post_order(client).get_json()
    second = post_order(client, vendor_phone="+919876543211").get_json()
    elsewhere = post_order(client, location={"address": "Dadar TT", "city": "Mumbai", "area": "Dadar"}).get_json()

    assert second["pool"]["id"] == first["pool"]["id"]
    assert second["pool"]["total_value"] == 400
    assert elsewhere["pool"]["id"] != first["pool"]["id"]


def test_create_order_without_pooling(client):
    response = post_order(client, auto_pool=False)

    body = response.get_json()
    assert body["order"]["status"] == "pending"
    assert body["order"]["pool_id"] is None
    assert body["pool"] is None


def test_provided_total_wins(client):
    body = post_order(client, total=999, auto_pool=False).get_json()

    assert body["order"]["estimated_value"] == 999


def test_create_order_validation(client):
    assert post_order(client, vendor_phone="").status_code == 400
    assert post_order(client, vendor_phone="call me").status_code == 400
    assert post_order(client, items=[]).status_code == 400
    assert post_order(client, items=[{"name": "rice", "quantity": 0}]).status_code == 400
    assert post_order(client, items=[{"quantity": 1}]).status_code == 400
    assert post_order(client, location={"city": "Mumbai"}).status_code == 400
    assert post_order(client, location={"address": "x", "lat": 19.1}).status_code == 400
    assert post_order(client, priority="critical").status_code == 400

    assert client.get("/api/orders").get_json()["pagination"]["total"] == 0


def test_vendor_token_sets_phone(client, vendor, vendor_headers):
    response = client.post("/api/orders", json=ORDER, headers=vendor_headers)

    assert response.get_json()["order"]["vendor_phone"] == vendor.phone


def test_invalid_token_rejected(client):
    response = client.post("/api/orders", json=ORDER, headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401


def test_get_order_and_vendor_orders(client):
    created = post_order(client).get_json()["order"]
    post_order(client, vendor_phone="+919876543299")

    body = client.get(f"/api/orders/{created['id']}").get_json()
    assert body["id"] == created["id"]
    assert body["pool"]["id"] == created["pool_id"]

    vendor_orders = client.get("/api/orders/vendor/+919876543210").get_json()
    assert [order["id"] for order in vendor_orders] == [created["id"]]

    assert client.get("/api/orders/9999").status_code == 404


def test_list_orders_filters(client):
    post_order(client)
    post_order(client, auto_pool=False)

    body = client.get("/api/orders?status=pending").get_json()

    assert body["pagination"]["total"] == 1
    assert body["orders"][0]["status"] == "pending"


def test_cancel_order_updates_pool(client):
    first = post_order(client).get_json()
    second = post_order(client, vendor_phone="+919876543211").get_json()

    response = client.patch(f"/api/orders/{first['order']['id']}", json={"status": "cancelled"})

    body = response.get_json()
    assert body["status"] == "cancelled"
    assert body["pool_id"] is None
    pool = client.get(f"/api/pools/{second['pool']['id']}").get_json()
    assert pool["total_value"] == 200
    assert pool["order_ids"] == [second["order"]["id"]]


def test_patch_cannot_set_pool_driven_status(client):
    order = post_order(client).get_json()["order"]

    assert client.patch(f"/api/orders/{order['id']}", json={"status": "dispatched"}).status_code == 400
    assert client.patch(f"/api/orders/{order['id']}", json={"status": "lost"}).status_code == 400


def test_patch_notes(client):
    order = post_order(client).get_json()["order"]

    body = client.patch(f"/api/orders/{order['id']}", json={"delivery_notes": "Gate 2"}).get_json()

    assert body["delivery_notes"] == "Gate 2"
    assert body["status"] == "pooled"


def test_update_items_refreshes_pool(client):
    created = post_order(client).get_json()

    response = client.put(f"/api/orders/{created['order']['id']}/items", json={
        "items": [{"name": "dal", "quantity": 10, "unit": "kg", "estimated_price": 120}],
    })

    body = response.get_json()
    assert body["estimated_value"] == 1200
    assert body["pool"]["total_value"] == 1200
    assert body["pool"]["status"] == "ready"


def test_delete_order_cancels_emptied_pool(client):
    created = post_order(client).get_json()

    response = client.delete(f"/api/orders/{created['order']['id']}")

    assert response.status_code == 200
    assert client.get(f"/api/orders/{created['order']['id']}").status_code == 404
    pool = client.get(f"/api/pools/{created['pool']['id']}").get_json()
    assert pool["status"] == "cancelled"
    assert pool["total_value"] == 0


def test_parse_order_text(client):
    response = client.post("/api/orders/parse", json={"text": "2 kg rice, 1 litre oil"})

    body = response.get_json()
    assert response.status_code == 200
    assert [item["name"] for item in body["items"]] == ["rice", "oil"]
    assert body["total"] == 2 * 80 + 150


def test_parse_order_requires_text(client):
    assert client.post("/api/orders/parse", json={"text": "  "}).status_code == 400


def test_order_stats(client):
    post_order(client)
    post_order(client, auto_pool=False, total=50)

    body = client.get("/api/orders/stats/overview").get_json()

    assert body["total_orders"] == 2
    assert body["total_value"] == 250
    assert body["status_breakdown"]["pending"]["count"] == 1
    assert body["status_breakdown"]["pooled"]["count"] == 1


def test_non_finite_numbers_rejected(client):
    inf_quantity = [{"name": "rice", "quantity": "inf", "unit": "kg"}]
    assert post_order(client, items=inf_quantity).status_code == 400
    assert post_order(client, items=[{"name": "rice", "quantity": 1, "estimated_price": "-inf"}]).status_code == 400

    raw = json.dumps({**ORDER, "total": float("nan")})
    response = client.post("/api/orders", data=raw, content_type="application/json")
    assert response.status_code == 400
    assert "finite" in response.get_json()["error"]

    assert client.get("/api/orders").get_json()["pagination"]["total"] == 0
    assert client.get("/api/pools").get_json()["pagination"]["total"] == 0


def test_patch_actual_value(client):
    order = post_order(client).get_json()["order"]
    url = f"/api/orders/{order['id']}"

    assert client.patch(url, json={"actual_value": "nan"}).status_code == 400
    assert client.patch(url, json={"actual_value": -5}).status_code == 400
    assert client.patch(url, json={"actual_value": 0}).get_json()["actual_value"] == 0
