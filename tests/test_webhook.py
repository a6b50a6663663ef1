from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from sms_relay.config import Settings, get_settings
from sms_relay.main import app, get_sender, get_store
from sms_relay.store import SubscriberStore

CONTACT = "+15551234567"
ADMIN = "+15550000000"


@pytest.fixture
def client(store: SubscriberStore, sender) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_sender] = lambda: sender
    app.dependency_overrides[get_settings] = lambda: Settings(
        service_name="LEANA alerts", admin_token="secret"
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


def post_sms(client: TestClient, body: str, from_: str):
    return client.post("/sms/inbound", data={"Body": body, "From": from_})


def test_subscribe_then_unsubscribe(client: TestClient, store: SubscriberStore) -> None:
    resp = post_sms(client, "start", CONTACT)

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/xml")
    assert "<Message>" in resp.text
    assert "Reply STOP to unsubscribe" in resp.text
    sub = store.get(CONTACT)
    assert sub is not None and sub.is_active is True

    resp = post_sms(client, "stop", CONTACT)

    assert resp.status_code == 200
    assert "You have been unsubscribed" in resp.text
    sub = store.get(CONTACT)
    assert sub is not None and sub.is_active is False


def test_admin_broadcast_to_five_subscribers(
    client: TestClient, store: SubscriberStore, sender
) -> None:
    store.upsert(ADMIN, is_admin=True)
    contacts = [f"+1555000100{i}" for i in range(5)]
    for contact in contacts:
        store.upsert(contact, is_active=True)

    resp = post_sms(client, "Hello everyone", ADMIN)

    assert resp.status_code == 200
    assert "Sent your message to 5 subscribers." in resp.text
    assert len(sender.sent) == 5
    assert sorted(sender.sent) == sorted((c, "Hello everyone") for c in contacts)


@pytest.mark.parametrize("body", ["", "   "], ids=["empty", "blank"])
def test_blank_admin_message_gets_empty_twiml(
    client: TestClient, store: SubscriberStore, sender, body: str
) -> None:
    store.upsert(ADMIN, is_admin=True)
    store.upsert("+1001", is_active=True)

    resp = post_sms(client, body, ADMIN)

    assert resp.status_code == 200
    assert "<Response" in resp.text
    assert "<Message" not in resp.text
    assert sender.sent == []


@pytest.mark.parametrize("admin", [False, None], ids=["non-admin", "unknown"])
def test_ignored_senders_get_empty_twiml(
    client: TestClient, store: SubscriberStore, sender, admin: bool | None
) -> None:
    store.upsert("+1001", is_active=True)
    if admin is not None:
        store.upsert(CONTACT, is_active=True, is_admin=admin)

    resp = post_sms(client, "Hello everyone", CONTACT)

    assert resp.status_code == 200
    assert "<Response" in resp.text
    assert "<Message" not in resp.text
    assert sender.sent == []


@pytest.mark.parametrize(
    ("data", "files", "expected"),
    [
        ({"From": CONTACT}, None, "Invalid Body"),
        ({"Body": "start"}, None, "Invalid From"),
        ({}, None, "Invalid Body"),
        ({"From": CONTACT}, {"Body": ("body.txt", b"start", "text/plain")}, "Invalid Body"),
    ],
    ids=["missing-body", "missing-from", "missing-both", "body-is-file"],
)
def test_invalid_requests_are_rejected(
    client: TestClient, store: SubscriberStore, data, files, expected: str
) -> None:
    resp = client.post("/sms/inbound", data=data, files=files)

    assert resp.status_code == 400
    assert expected in resp.text
    assert store.get(CONTACT) is None
    assert store.list_active() == []


def test_store_failure_returns_server_error(
    client: TestClient, broken_store: SubscriberStore
) -> None:
    app.dependency_overrides[get_store] = lambda: broken_store

    resp = post_sms(client, "start", CONTACT)

    assert resp.status_code == 500
    assert "Thank you" not in resp.text


def test_only_post_is_allowed(client: TestClient) -> None:
    assert client.get("/sms/inbound").status_code == 405


def test_json_test_endpoint(client: TestClient, store: SubscriberStore) -> None:
    resp = client.post("/test/inbound", json={"phone": CONTACT, "text": "START"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert "Reply STOP to unsubscribe" in data["reply"]
    assert store.get(CONTACT) is not None


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_admin_subscribers_requires_token(
    client: TestClient, store: SubscriberStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr("sms_relay.main.ALLOWED_ADMIN_IPS", {"testclient"})
    store.upsert(CONTACT, is_active=True)

    assert client.get("/admin/subscribers").status_code == 401
    assert (
        client.get("/admin/subscribers", headers={"X-Admin-Token": "wrong"}).status_code == 401
    )

    resp = client.get("/admin/subscribers", headers={"X-Admin-Token": "secret"})
    assert resp.status_code == 200
    assert resp.json() == {
        "active": 1,
        "subscribers": [{"contact": CONTACT, "is_admin": False}],
    }


def test_admin_subscribers_refuses_remote_clients(client: TestClient) -> None:
    resp = client.get("/admin/subscribers", headers={"X-Admin-Token": "secret"})
    assert resp.status_code == 403
