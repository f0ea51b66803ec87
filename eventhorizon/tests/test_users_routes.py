import pytest
import psycopg2.errors

from conftest import ADMIN, ORGANIZER_USER, make_event

NEW_USER = {
    "name": "Nina Newcomer",
    "email": "nina@example.com",
    "password": "secret123",
    "role": "Organizer",
    "assignedEvents": ["evt_1"],
}


@pytest.fixture
def as_admin(store, login):
    store.list_users.return_value = [ADMIN, ORGANIZER_USER]
    login()


def test_list_users(client, store, as_admin):
    response = client.get("/admin/users/")
    assert response.status_code == 200
    assert len(response.get_json()) == 2


def test_get_user_not_found(client, store, as_admin):
    store.get_user.return_value = None
    response = client.get("/admin/users/usr_missing")
    assert response.status_code == 404


def test_create_user_hashes_password(client, store, as_admin, mocker):
    mocker.patch("eventhorizon.users_service.routes.hash_password", return_value="hashed_secret")
    store.create_user.return_value = {**ORGANIZER_USER, "id": "usr_new", "email": "nina@example.com"}

    response = client.post("/admin/users/", json=NEW_USER)

    assert response.status_code == 201
    created = store.create_user.call_args[0][0]
    assert created["passwordHash"] == "hashed_secret"
    assert "password" not in created


def test_create_user_validation(client, store, as_admin):
    payload = {**NEW_USER, "name": "Al", "email": "bad", "password": "123", "role": "Guest"}

    response = client.post("/admin/users/", json=payload)

    assert response.status_code == 400
    errors = response.get_json()["errors"]
    assert set(errors) == {"name", "email", "password", "role"}
    store.create_user.assert_not_called()


def test_create_user_duplicate_email(client, store, as_admin):
    store.create_user.side_effect = psycopg2.errors.UniqueViolation()
    response = client.post("/admin/users/", json=NEW_USER)
    assert response.status_code == 400
    assert "email" in response.get_json()["errors"]


def test_update_user_keeps_password_unless_changed(client, store, as_admin):
    store.update_user.return_value = ORGANIZER_USER
    payload = {k: v for k, v in NEW_USER.items() if k != "password"}

    response = client.put("/admin/users/usr_org", json=payload)

    assert response.status_code == 200
    assert "passwordHash" not in store.update_user.call_args[0][1]


def test_update_user_change_password(client, store, as_admin, mocker):
    mocker.patch("eventhorizon.users_service.routes.hash_password", return_value="new_hash")
    store.update_user.return_value = ORGANIZER_USER

    response = client.put("/admin/users/usr_org", json={**NEW_USER, "changePassword": True})

    assert response.status_code == 200
    assert store.update_user.call_args[0][1]["passwordHash"] == "new_hash"


def test_delete_user(client, store, as_admin):
    store.delete_user.return_value = True
    response = client.delete("/admin/users/usr_org")
    assert response.status_code == 200
    store.delete_user.assert_called_once_with("usr_org")


def test_generate_users(client, store, as_admin):
    store.list_events.return_value = [make_event(), make_event(id="evt_2")]

    response = client.post("/admin/users/generate", json={"count": 3})

    assert response.status_code == 201
    assert store.create_user.call_count == 3
    names = [c[0][0]["name"] for c in store.create_user.call_args_list]
    assert len(set(names)) == 3
    for c in store.create_user.call_args_list:
        user = c[0][0]
        assert user["role"] == "Organizer"
        assert user["email"].endswith("@example.com")
        assert set(user["assignedEvents"]) <= {"evt_1", "evt_2"}


@pytest.mark.parametrize("count", [0, 51, "5", None, True])
def test_generate_users_rejects_bad_count(client, store, as_admin, count):
    response = client.post("/admin/users/generate", json={"count": count})
    assert response.status_code == 400
    store.create_user.assert_not_called()


def test_purge_users(client, store, as_admin):
    store.delete_users_except.return_value = 4
    response = client.post("/admin/users/purge")
    assert response.status_code == 200
    assert "4 users" in response.get_json()["message"]
    store.delete_users_except.assert_called_once_with("Administrator")


def test_organizer_cannot_manage_users(client, store, login):
    store.list_users.return_value = [ADMIN, ORGANIZER_USER]
    login(uid="usr_org", email="org@example.com")

    response = client.post("/admin/users/purge")
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/admin")
    store.delete_users_except.assert_not_called()
