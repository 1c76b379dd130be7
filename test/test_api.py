import pytest
from unittest.mock import patch

from conftest import make_token
from pushsvc.config import settings
from pushsvc.crud_devices import DeviceRegistry
from pushsvc.errors import StorageError, TokenExchangeError
from pushsvc.services.push_service import BatchResult, DeliveryResult

REGISTER_URL = "/api/device/register"


# ============= POST /api/device/register =============

def test_register_created_then_updated(client, subscribers):
    payload = {"user_id": 1, "fcm_token": make_token(), "device_type": "ios", "device_name": "iPhone 15"}

    created = client.post(REGISTER_URL, json=payload)
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "success"
    assert body["message"] == "Device token registered successfully"
    assert body["data"]["action"] == "created"

    updated = client.post(REGISTER_URL, json=payload)
    assert updated.status_code == 200
    assert updated.json()["data"] == {"device_id": body["data"]["device_id"], "action": "updated"}
    assert updated.json()["message"] == "Device token updated"


def test_register_defaults_device_type(client, subscribers, db_session):
    response = client.post(REGISTER_URL, json={"user_id": "2", "fcm_token": make_token()})

    assert response.status_code == 201


def test_register_empty_user_id(client, subscribers):
    response = client.post(REGISTER_URL, json={"user_id": "", "fcm_token": make_token()})

    assert response.status_code == 400
    assert response.json() == {
        "status": "error",
        "message": "Missing required parameters: user_id, fcm_token",
        "data": None,
    }


def test_register_short_token(client, subscribers):
    response = client.post(REGISTER_URL, json={"user_id": 1, "fcm_token": "short"})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid FCM token format"


def test_register_invalid_device_type(client, subscribers):
    response = client.post(REGISTER_URL, json={"user_id": 1, "fcm_token": make_token(), "device_type": "tv"})

    assert response.status_code == 400
    assert "Invalid device_type" in response.json()["message"]


def test_register_missing_field(client, subscribers):
    response = client.post(REGISTER_URL, json={"user_id": 1})

    assert response.status_code == 400
    assert response.json()["status"] == "error"
    assert response.json()["message"] == "Missing required parameters: fcm_token"


def test_register_malformed_json(client, subscribers):
    response = client.post(
        REGISTER_URL,
        content=b'{"user_id": 1, "fcm_token": ',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["status"] == "error"


def test_register_unknown_user(client, subscribers):
    response = client.post(REGISTER_URL, json={"user_id": 999999, "fcm_token": make_token()})

    assert response.status_code == 404
    assert response.json()["message"] == "User not found"


def test_register_storage_failure(client, subscribers):
    with patch("pushsvc.api.device_routes.DeviceRegistry.register", side_effect=StorageError("Failed to register device token")):
        response = client.post(REGISTER_URL, json={"user_id": 1, "fcm_token": make_token()})

    assert response.status_code == 500
    assert response.json()["message"] == "Failed to register device token"


def test_register_wrong_method(client):
    response = client.get(REGISTER_URL)

    assert response.status_code == 405
    assert response.json() == {"status": "error", "message": "Method not allowed", "data": None}


def test_register_preflight(client):
    response = client.options(REGISTER_URL)

    assert response.status_code == 200
    assert response.content == b""


@pytest.mark.parametrize("requested_headers", ["content-type", "content-type, x-requested-with"])
def test_browser_preflight_gets_empty_200(client, requested_headers):
    response = client.options(REGISTER_URL, headers={
        "Origin": "https://app.example.com",
        "Access-Control-Request-Method": "POST",
        "Access-Control-Request-Headers": requested_headers,
    })

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]


def test_reassignment_through_api(client, subscribers, db_session):
    token = make_token()
    client.post(REGISTER_URL, json={"user_id": 1, "fcm_token": token})
    response = client.post(REGISTER_URL, json={"user_id": 2, "fcm_token": token})

    assert response.status_code == 201

    registry = DeviceRegistry(db_session)
    assert registry.get_active_devices(1) == []
    assert [d.fcm_token for d in registry.get_active_devices(2)] == [token]


# ============= POST /api/notifications/send =============

SEND_PUSH = "pushsvc.api.notification_routes.send_push_to_user"


def test_send_notification(client):
    result = BatchResult(successful=2, failed=1, errors=[
        DeliveryResult(device_id=3, device_type="web", success=False, error="Internal error", status_code=500),
    ])

    with patch(SEND_PUSH, return_value=result) as send:
        response = client.post("/api/notifications/send", json={"user_id": 1, "title": "Hi", "body": "There"})

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Notification sent to 2 device(s)"
    assert body["data"]["devices_sent"] == 2
    assert body["data"]["devices_failed"] == 1
    assert body["data"]["errors"][0]["device_id"] == 3
    assert send.call_args.kwargs["user_id"] == 1


def test_send_notification_no_devices(client):
    with patch(SEND_PUSH, return_value=BatchResult()):
        response = client.post("/api/notifications/send", json={"user_id": 1, "title": "Hi", "body": "There"})

    assert response.status_code == 200
    assert response.json()["message"] == "No devices registered for this user"


def test_send_notification_upstream_failure(client):
    error = TokenExchangeError("OAuth token request failed with status 401", status_code=401, body="{}")

    with patch(SEND_PUSH, side_effect=error):
        response = client.post("/api/notifications/send", json={"user_id": 1, "title": "Hi", "body": "There"})

    assert response.status_code == 502
    assert response.json()["status"] == "error"


def test_send_notification_requires_admin_key(client, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_KEY", "s3cret")

    with patch(SEND_PUSH, return_value=BatchResult(successful=1)):
        denied = client.post("/api/notifications/send", json={"user_id": 1, "title": "Hi", "body": "There"})
        allowed = client.post(
            "/api/notifications/send",
            json={"user_id": 1, "title": "Hi", "body": "There"},
            headers={"X-Admin-Key": "s3cret"},
        )

    assert denied.status_code == 401
    assert denied.json()["message"] == "Invalid admin key"
    assert allowed.status_code == 200


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
