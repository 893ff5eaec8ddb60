"""Tests for the HTTP API blueprints."""

from unittest.mock import MagicMock, patch

from mailsync.error_tracking import StoreError

SUBSCRIPTION = {"endpoint": "https://push.example.com/abc", "keys": {"p256dh": "k", "auth": "a"}}


def test_health_endpoint(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    data = response.get_json()
    assert data["status"] == "ok"
    assert data["checks"] == {"redis": False}


def test_check_emails_queues_deep_sync(client):
    task = MagicMock()
    task.delay.return_value.id = "task-123"

    with patch("services.booking_service.sync_bookings_task", task):
        response = client.get("/api/check-emails?depth=all")

    assert response.status_code == 202
    data = response.get_json()
    assert data == {"status": "queued", "task_id": "task-123", "deep": True, "lookback_days": 90}
    task.delay.assert_called_once_with(deep=True)


def test_check_emails_default_window(client):
    task = MagicMock()
    task.delay.return_value.id = "task-456"

    with patch("services.booking_service.sync_bookings_task", task):
        response = client.get("/api/check-emails")

    assert response.get_json()["lookback_days"] == 7
    task.delay.assert_called_once_with(deep=False)


def test_check_emails_inline(client):
    outcome = {"status": "completed", "inserted": 2}

    with patch("services.booking_service.start_sync", return_value=outcome) as start_sync:
        response = client.get("/api/check-emails?sync=1")

    assert response.status_code == 200
    assert response.get_json() == outcome
    start_sync.assert_called_once_with(depth=None, inline=True)


def test_sync_status(client):
    status = {"state": "idle", "message": "Updated 3 items"}

    with patch("services.booking_service.get_sync_status", return_value=status):
        response = client.get("/api/sync-status")

    assert response.status_code == 200
    assert response.get_json()["message"] == "Updated 3 items"


def test_bookings_list(client, make_booking):
    records = [make_booking("2").to_dict(), make_booking("1", minutes_ago=5).to_dict()]

    with patch("services.booking_service.get_bookings", return_value=records):
        response = client.get("/api/bookings")

    assert response.status_code == 200
    data = response.get_json()
    assert [r["id"] for r in data] == ["2", "1"]
    assert data[0]["customerName"] == "Rahul Mehta"


def test_bookings_store_unavailable(client):
    with patch("services.booking_service.get_bookings", side_effect=StoreError("redis down")):
        response = client.get("/api/bookings")

    assert response.status_code == 503
    assert "error" in response.get_json()


def test_clear_history(client):
    with patch("services.booking_service.clear_history", return_value={"status": "cleared"}):
        response = client.post("/api/clear-history")

    assert response.status_code == 200
    assert response.get_json() == {"status": "cleared"}


def test_subscribe(client):
    response = client.post("/api/subscribe", json={"location": "Andheri", "subscription": SUBSCRIPTION})

    assert response.status_code == 201
    assert response.get_json() == {"status": "subscribed", "location": "Andheri"}


def test_subscribe_rejects_missing_subscription(client):
    response = client.post("/api/subscribe", json={"location": "Andheri"})

    assert response.status_code == 400
    assert "error" in response.get_json()


def test_subscribe_rejects_non_json_body(client):
    response = client.post("/api/subscribe", data="not json")

    assert response.status_code == 400
