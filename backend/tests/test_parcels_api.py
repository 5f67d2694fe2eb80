"""
Parcel endpoints end to end: envelope, role gate, ownership and the
create -> assign -> deliver -> cash out walk.
"""
from conftest import parcel_payload


async def _create(client, **overrides) -> dict:
    resp = await client.post("/api/parcels", json=parcel_payload(**overrides))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def test_root_and_unknown_route(client):
    resp = await client.get("/")
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    resp = await client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Not Found - /api/nothing-here"}


async def test_create_requires_token(client):
    resp = await client.post("/api/parcels", json=parcel_payload())
    assert resp.status_code == 401
    assert resp.json()["success"] is False


async def test_create_parcel(client, login, seed_user):
    await seed_user("owner@example.com")
    login("owner@example.com")

    resp = await client.post("/api/parcels", json=parcel_payload())

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Parcel created successfully"
    assert body["data"]["created_by"] == "owner@example.com"
    assert body["data"]["delivery_status"] == "not_collected"
    assert body["data"]["payment_status"] == "unpaid"


async def test_create_parcel_validation_is_400(client, login):
    login("owner@example.com")

    resp = await client.post("/api/parcels", json=parcel_payload(weight=5000))
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert "weight" in resp.json()["message"]

    resp = await client.post("/api/parcels", json=parcel_payload(title=""))
    assert resp.status_code == 400


async def test_list_own_parcels_only(client, login, seed_user):
    await seed_user("owner@example.com")
    login("owner@example.com")
    await _create(client, title="First")
    await _create(client, title="Second")

    resp = await client.get("/api/parcels/user/owner@example.com")
    assert resp.status_code == 200
    assert {p["title"] for p in resp.json()["data"]} == {"First", "Second"}

    resp = await client.get("/api/parcels/user/someone@example.com")
    assert resp.status_code == 403


async def test_empty_list_is_ok(client, login):
    login("nobody@example.com")
    resp = await client.get("/api/parcels/user/nobody@example.com")
    assert resp.status_code == 200
    assert resp.json()["data"] == []


async def test_parcel_detail_visibility(client, login, seed_user):
    await seed_user("owner@example.com")
    await seed_user("stranger@example.com")
    await seed_user("admin@example.com", role="admin")
    login("owner@example.com")
    parcel = await _create(client)
    path = f"/api/parcels/id/{parcel['parcel_id']}"

    assert (await client.get(path)).status_code == 200

    login("stranger@example.com")
    resp = await client.get(path)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Access denied"

    login("admin@example.com")
    assert (await client.get(path)).status_code == 200

    resp = await client.get("/api/parcels/id/prc_missing")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Parcel not found"


async def test_unregistered_caller_is_404_on_role_routes(client, login):
    login("ghost@example.com")
    resp = await client.get("/api/parcels/assign-rider")
    assert resp.status_code == 404
    assert resp.json()["message"] == "User not found"


async def test_admin_routes_reject_plain_users(client, login, seed_user):
    await seed_user("owner@example.com")
    login("owner@example.com")
    parcel = await _create(client)

    resp = await client.get("/api/parcels/assign-rider")
    assert resp.status_code == 403
    assert resp.json()["message"] == "Access denied: admin only"

    resp = await client.patch(f"/api/parcels/assign/{parcel['parcel_id']}", json={"rider_id": "rdr_x"})
    assert resp.status_code == 403

    resp = await client.get("/api/parcels/summary/status")
    assert resp.status_code == 403


async def test_full_delivery_walk(client, login, seed_user, seed_rider, mongo):
    await seed_user("owner@example.com")
    await seed_user("admin@example.com", role="admin")
    rider = await seed_rider("rider@example.com")

    login("owner@example.com")
    parcel = await _create(client)
    parcel_id = parcel["parcel_id"]

    login("admin@example.com")
    resp = await client.get("/api/parcels/assign-rider")
    assert resp.json()["data"] == []

    login("owner@example.com")
    resp = await client.post("/api/payment/confirm", json={
        "parcel_id":      parcel_id,
        "email":          "owner@example.com",
        "amount":         150,
        "payment_method": ["card"],
        "transaction_id": "pi_walk_001",
    })
    assert resp.status_code == 201

    login("admin@example.com")
    resp = await client.get("/api/parcels/assign-rider")
    assert [p["parcel_id"] for p in resp.json()["data"]] == [parcel_id]

    resp = await client.patch(f"/api/parcels/assign/{parcel_id}", json={"rider_id": rider["rider_id"]})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Rider assigned successfully"
    assert resp.json()["data"]["parcel"]["delivery_status"] == "rider_assigned"
    assert resp.json()["data"]["rider"]["work_status"] == "in_delivery"

    resp = await client.get("/api/parcels/assign-rider")
    assert resp.json()["data"] == []

    login("rider@example.com", uid=rider["uid"])
    resp = await client.get("/api/parcels/pending-deliveries/rider@example.com")
    assert [p["parcel_id"] for p in resp.json()["data"]] == [parcel_id]

    # the assigned rider can view the parcel
    assert (await client.get(f"/api/parcels/id/{parcel_id}")).status_code == 200

    resp = await client.patch(f"/api/parcels/update-status/{parcel_id}", json={"status": "in_transit"})
    assert resp.status_code == 200
    assert resp.json()["data"]["picked_at"] is not None

    resp = await client.patch(f"/api/parcels/update-status/{parcel_id}", json={"status": "delivered"})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Delivery status updated!"
    assert resp.json()["data"]["delivered_at"] is not None

    stored = await mongo.riders.find_one({"rider_id": rider["rider_id"]})
    assert stored["work_status"] == "idle"

    resp = await client.get("/api/parcels/completed-deliveries/rider@example.com")
    assert [p["parcel_id"] for p in resp.json()["data"]] == [parcel_id]
    resp = await client.get("/api/parcels/pending-deliveries/rider@example.com")
    assert resp.json()["data"] == []

    resp = await client.patch(f"/api/parcels/cash-out/{parcel_id}")
    assert resp.status_code == 200
    assert resp.json()["data"]["cash_out_status"] == "paid"
    assert resp.json()["data"]["cash_out_at"] is not None


async def test_busy_rider_cannot_be_assigned(client, login, seed_user, seed_rider, mongo):
    await seed_user("owner@example.com")
    await seed_user("admin@example.com", role="admin")
    rider = await seed_rider("rider@example.com")

    login("owner@example.com")
    first = await _create(client)
    second = await _create(client)

    login("admin@example.com")
    resp = await client.patch(f"/api/parcels/assign/{first['parcel_id']}", json={"rider_id": rider["rider_id"]})
    assert resp.status_code == 200

    resp = await client.patch(f"/api/parcels/assign/{second['parcel_id']}", json={"rider_id": rider["rider_id"]})
    assert resp.status_code == 409
    assert resp.json()["success"] is False

    stored = await mongo.parcels.find_one({"parcel_id": second["parcel_id"]})
    assert stored["assigned_rider_id"] is None
    assert stored["delivery_status"] == "not_collected"


async def test_rider_cannot_act_on_unassigned_parcel(client, login, seed_user, seed_rider):
    await seed_user("owner@example.com")
    await seed_user("admin@example.com", role="admin")
    mine = await seed_rider("rider@example.com")
    await seed_rider("other@example.com")

    login("owner@example.com")
    parcel = await _create(client)
    login("admin@example.com")
    await client.patch(f"/api/parcels/assign/{parcel['parcel_id']}", json={"rider_id": mine["rider_id"]})

    login("other@example.com")
    resp = await client.patch(f"/api/parcels/update-status/{parcel['parcel_id']}", json={"status": "delivered"})
    assert resp.status_code == 403
    resp = await client.patch(f"/api/parcels/cash-out/{parcel['parcel_id']}")
    assert resp.status_code == 403
    resp = await client.get("/api/parcels/pending-deliveries/rider@example.com")
    assert resp.status_code == 403


async def test_plain_user_cannot_update_status(client, login, seed_user):
    await seed_user("owner@example.com")
    login("owner@example.com")
    parcel = await _create(client)

    resp = await client.patch(f"/api/parcels/update-status/{parcel['parcel_id']}", json={"status": "delivered"})
    assert resp.status_code == 403
    assert resp.json()["message"] == "Access denied: rider or admin only"


async def test_invalid_status_value_is_400(client, login, seed_user):
    await seed_user("admin@example.com", role="admin")
    login("admin@example.com")
    parcel = await _create(client)

    resp = await client.patch(f"/api/parcels/update-status/{parcel['parcel_id']}", json={"status": "lost"})
    assert resp.status_code == 400


async def test_tracking_updates_and_lookup(client, login, seed_user):
    await seed_user("owner@example.com")
    login("owner@example.com")
    parcel = await _create(client)
    path = f"/api/parcels/tracking/{parcel['parcel_id']}"

    resp = await client.patch(path, json={"status": "parcel_created", "message": "Order placed"})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Tracking update added successfully."
    resp = await client.patch(path, json={"status": "payment_completed", "message": "Paid"})
    history = resp.json()["data"]["tracking_history"]
    assert [h["status"] for h in history] == ["parcel_created", "payment_completed"]

    resp = await client.patch(path, json={"status": "in_transit"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Status and message are required."

    resp = await client.get(f"/api/parcels/tracking/{parcel['tracking_code']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["parcel_id"] == parcel["parcel_id"]

    resp = await client.get("/api/parcels/tracking/PRF-000-0000")
    assert resp.status_code == 404


async def test_delete_parcel(client, login, seed_user):
    await seed_user("owner@example.com")
    await seed_user("stranger@example.com")
    login("owner@example.com")
    parcel = await _create(client)

    login("stranger@example.com")
    resp = await client.delete(f"/api/parcels/{parcel['parcel_id']}")
    assert resp.status_code == 403

    login("owner@example.com")
    resp = await client.delete(f"/api/parcels/{parcel['parcel_id']}")
    assert resp.status_code == 200
    resp = await client.get(f"/api/parcels/id/{parcel['parcel_id']}")
    assert resp.status_code == 404


async def test_status_summary(client, login, seed_user):
    await seed_user("admin@example.com", role="admin")
    login("admin@example.com")
    await _create(client)
    await _create(client)

    resp = await client.get("/api/parcels/summary/status")

    assert resp.status_code == 200
    assert resp.json()["data"] == [{"status": "not_collected", "count": 2}]


async def test_create_is_rate_limited(client, login):
    login("owner@example.com")
    for _ in range(20):
        assert (await client.post("/api/parcels", json=parcel_payload())).status_code == 201

    resp = await client.post("/api/parcels", json=parcel_payload())

    assert resp.status_code == 429
    assert resp.json()["success"] is False
