import pytest
from unittest.mock import MagicMock

from conftest import make_event


@pytest.fixture(autouse=True)
def mock_qr(mocker):
    return mocker.patch(
        "eventhorizon.events_service.registration.qr_code_data_url",
        return_value="data:image/png;base64,AAAA",
    )


def test_list_events(client, store):
    store.list_active_events.return_value = [make_event()]

    response = client.get("/events/")
    assert response.status_code == 200
    data = response.get_json()
    assert len(data) == 1
    assert data[0]["slug"] == "tech-summit"


def test_list_events_db_error(client, store):
    store.list_active_events.side_effect = Exception("DB Error")
    response = client.get("/events/")
    assert response.status_code == 500


def test_get_event_detail(client, store):
    store.get_event_by_slug.return_value = make_event()

    response = client.get("/events/tech-summit")
    assert response.status_code == 200
    data = response.get_json()
    assert data["name"] == "Tech Summit"
    assert data["formDefaults"] == {"full_name": "", "email": ""}
    store.get_event_by_slug.assert_called_once_with("tech-summit")


def test_get_event_inactive_is_hidden(client, store):
    store.get_event_by_slug.return_value = make_event(isActive=False)
    response = client.get("/events/tech-summit")
    assert response.status_code == 404


def test_get_event_not_found(client, store):
    store.get_event_by_slug.return_value = None
    response = client.get("/events/missing")
    assert response.status_code == 404


def test_register_success(client, store, mailer):
    event = make_event()
    store.get_event_by_slug.return_value = event
    store.create_registration.return_value = {
        "id": "reg_1",
        "eventId": "evt_1",
        "eventName": "Tech Summit",
        "formData": {"full_name": "Jane Doe", "email": "jane@example.com"},
        "qrId": "qr_1",
        "registrationDate": "2025-05-01T10:00:00+00:00",
        "checkedIn": False,
        "checkInTime": None,
    }

    payload = {"full_name": "Jane Doe", "email": "jane@example.com"}
    response = client.post("/events/tech-summit/register", json=payload)

    assert response.status_code == 201
    data = response.get_json()
    assert data["success"] is True
    assert data["registration"]["qrId"] == "qr_1"
    assert data["qrCode"].startswith("data:image/png;base64,")
    assert data["emailStatus"] == "sent"
    mailer.send_confirmation.assert_called_once()


def test_register_email_failure_still_succeeds(client, store, mailer):
    store.get_event_by_slug.return_value = make_event()
    store.create_registration.return_value = {"id": "reg_1", "qrId": "qr_1", "formData": {}}
    mailer.send_confirmation.side_effect = Exception("provider down")

    response = client.post(
        "/events/tech-summit/register", json={"full_name": "Jane Doe", "email": "jane@example.com"}
    )

    assert response.status_code == 201
    assert response.get_json()["emailStatus"] == "failed"


def test_register_validation_errors(client, store, mailer):
    store.get_event_by_slug.return_value = make_event()

    response = client.post("/events/tech-summit/register", json={"full_name": "", "email": "nope"})

    assert response.status_code == 400
    errors = response.get_json()["errors"]
    assert errors["full_name"]["code"] == "missing-required"
    assert errors["email"]["code"] == "invalid-format"
    store.create_registration.assert_not_called()
    mailer.send_confirmation.assert_not_called()


def test_register_inactive_event(client, store):
    store.get_event_by_slug.return_value = make_event(isActive=False)
    response = client.post("/events/tech-summit/register", json={})
    assert response.status_code == 404


def test_register_store_error(client, store):
    store.get_event_by_slug.return_value = make_event()
    store.create_registration.side_effect = Exception("DB Error")

    response = client.post(
        "/events/tech-summit/register", json={"full_name": "Jane Doe", "email": "jane@example.com"}
    )
    assert response.status_code == 500
    assert response.get_json()["success"] is False


def test_register_broken_form_definition(client, store):
    store.get_event_by_slug.return_value = make_event(
        formFields=[{"name": "size", "label": "Size", "type": "radio"}]
    )
    response = client.post("/events/tech-summit/register", json={"size": "M"})
    assert response.status_code == 500


def test_register_rejects_non_object_body(client, store):
    store.get_event_by_slug.return_value = make_event()

    response = client.post("/events/tech-summit/register", json=["Jane Doe", "jane@example.com"])

    assert response.status_code == 400
    store.create_registration.assert_not_called()
