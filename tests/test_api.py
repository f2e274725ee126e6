"""
HTTP surface, exercised through FastAPI's TestClient.
"""

from datetime import date, timedelta

from tests.conftest import TARGET, add_cow, add_milk_series


def _feed(client, cow_id="COW001", lane_no=1, feed_kg=8.0):
    return client.post("/lane-log/feed", json={"lane_no": lane_no, "cow_id": cow_id, "feed_kg": feed_kg})


# ---------------------------------------------------------------------------
# System + cows
# ---------------------------------------------------------------------------

def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"


def test_create_and_list_cows(client):
    resp = client.post("/cows", json={"cow_id": "COW001", "name": "Bella", "cow_type": "pregnant"})
    assert resp.status_code == 200

    dup = client.post("/cows", json={"cow_id": "COW001"})
    assert dup.status_code == 409

    cows = client.get("/cows").json()
    assert cows[0]["cow_id"] == "COW001"
    assert cows[0]["cow_type"] == "pregnant"
    assert cows[0]["status"] == "active"


def test_invalid_cow_type_is_rejected(client):
    resp = client.post("/cows", json={"cow_id": "COW001", "cow_type": "heifer"})
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Lane log
# ---------------------------------------------------------------------------

def test_feed_then_milk_flow(client):
    client.post("/cows", json={"cow_id": "COW001", "cow_type": "dry"})

    fed = _feed(client)
    assert fed.status_code == 200
    assert fed.json()["data"]["cow_type"] == "dry"

    morning = client.post("/lane-log/milk-yield", json={"cow_id": "COW001", "session": "morning", "yield_l": 6.0})
    evening = client.post("/lane-log/milk-yield", json={"cow_id": "COW001", "session": "evening", "yield_l": 4.5})
    assert morning.status_code == 200
    assert evening.json()["message"] == "evening yield recorded successfully"

    today = client.get("/lane-log/today").json()["data"]
    assert len(today) == 1
    assert today[0]["total_yield_l"] == 10.5

    entry = client.get("/lane-log/entry", params={"lane_no": 1, "cow_id": "COW001"}).json()["data"]
    assert entry["feed_given_kg"] == 8.0


def test_repeat_feed_updates_same_row(client):
    _feed(client, feed_kg=5.0)
    _feed(client, feed_kg=6.0)

    today = client.get("/lane-log/today").json()["data"]
    assert [r["feed_given_kg"] for r in today] == [6.0]


def test_milk_before_feed_is_not_found(client):
    resp = client.post("/lane-log/milk-yield", json={"cow_id": "COW001", "session": "morning", "yield_l": 6.0})
    assert resp.status_code == 404
    assert "record feed first" in resp.json()["detail"]


def test_bad_session_and_lane_are_rejected(client):
    assert client.post("/lane-log/milk-yield", json={"cow_id": "C", "session": "noon", "yield_l": 1}).status_code == 422
    assert _feed(client, lane_no=0).status_code == 422
    assert _feed(client, feed_kg=-1).status_code == 422


def test_missing_entry_is_null(client):
    resp = client.get("/lane-log/entry", params={"lane_no": 3, "cow_id": "COW404"})
    assert resp.json() == {"data": None}


# ---------------------------------------------------------------------------
# Monitoring
# ---------------------------------------------------------------------------

def test_dashboard_for_date(client, db):
    add_cow(db, "COW001")
    add_milk_series(db, "COW001", TARGET, [20, 19, 21, 18, 20, 19, 22], feed=10.0)

    data = client.get("/monitoring/dashboard", params={"date": TARGET.isoformat()}).json()

    assert data["total_cows"] == 1
    assert data["total_milk"] == 22.0
    assert data["yield_feed_ratio"] == 2.2
    assert data["low_yield_count"] == 0


def test_dashboard_defaults_to_today(client):
    client.post("/cows", json={"cow_id": "COW001"})
    _feed(client, feed_kg=10.0)

    data = client.get("/monitoring/dashboard").json()

    assert data["date"] == date.today().isoformat()
    assert data["total_feed"] == 10.0
    assert data["low_yield_count"] == 1


def test_cows_list_and_detail(client, db):
    add_cow(db, "COW001")
    add_milk_series(db, "COW001", TARGET, [22, 22, 21, 21, 21, 18, 15])

    cows = client.get("/monitoring/cows", params={"date": TARGET.isoformat()}).json()
    assert cows == [{"cow_id": "COW001", "today_milk": 15.0, "today_feed": 20.0, "status": "ATTENTION"}]

    detail = client.get("/monitoring/cows/COW001", params={"date": TARGET.isoformat()}).json()
    assert detail["seven_day_average"] == 20.0
    assert len(detail["seven_day_history"]) == 7


def test_cow_detail_unknown_cow(client):
    resp = client.get("/monitoring/cows/NOPE")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Cow NOPE not found."


def test_summary_requires_date(client):
    resp = client.get("/monitoring/summary")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Date parameter is required"


def test_summary_for_date(client, db):
    add_milk_series(db, "COW-A", TARGET, [5.0])
    add_milk_series(db, "COW-B", TARGET, [7.0])

    data = client.get("/monitoring/summary", params={"date": TARGET.isoformat()}).json()

    assert data["best_cow_id"] == "COW-B"
    assert data["lowest_cow_id"] == "COW-A"
    assert data["total_milk"] == 12.0


def test_history_requires_both_dates(client):
    resp = client.get("/monitoring/history", params={"from": TARGET.isoformat()})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "From and to date parameters are required"


def test_history_range(client, db):
    add_milk_series(db, "COW001", TARGET, [1.0, 2.0, 3.0])
    params = {"from": (TARGET - timedelta(days=1)).isoformat(), "to": TARGET.isoformat()}

    rows = client.get("/monitoring/history", params=params).json()

    assert [r["milk"] for r in rows] == [3.0, 2.0]
    assert rows[0]["lane"] == "1"


def test_history_inverted_range(client):
    params = {"from": TARGET.isoformat(), "to": (TARGET - timedelta(days=3)).isoformat()}
    assert client.get("/monitoring/history", params=params).status_code == 400


def test_malformed_date_is_rejected(client):
    assert client.get("/monitoring/summary", params={"date": "14/03/2025"}).status_code == 422


# ---------------------------------------------------------------------------
# Pending RFID scans
# ---------------------------------------------------------------------------

def test_pending_scan_lifecycle(client):
    created = client.post("/rfid/pending", json={"rfid_uid": "E200-01"})
    assert created.status_code == 200
    assert created.json()["data"]["rfid_uid"] == "E200-01"

    assert client.get("/rfid/pending/E200-01").status_code == 200
    assert [s["rfid_uid"] for s in client.get("/rfid/pending").json()["data"]] == ["E200-01"]

    assert client.delete("/rfid/pending/E200-01").json() == {"deleted": True}
    assert client.get("/rfid/pending/E200-01").status_code == 404


def test_linking_consumes_pending_scan(client):
    client.post("/cows", json={"cow_id": "COW001"})
    client.post("/rfid/pending", json={"rfid_uid": "E200-01"})

    linked = client.post("/cows/COW001/rfid/E200-01")
    assert linked.json()["linked"] is True
    assert client.get("/rfid/pending/E200-01").status_code == 404

    again = client.post("/rfid/pending", json={"rfid_uid": "E200-01"})
    assert again.status_code == 409

    detail = client.get("/monitoring/cows/COW001").json()
    assert detail["tag_id"] == "E200-01"
