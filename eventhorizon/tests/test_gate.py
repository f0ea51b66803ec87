import pytest
from unittest.mock import MagicMock

from eventhorizon.auth_service.gate import (
    GateDecision,
    UserDirectory,
    evaluate_role_gate,
    visible_events,
)
from eventhorizon.auth_service.utils import AuthState, Principal

from conftest import ADMIN, ORGANIZER_USER


def directory_of(*users):
    return UserDirectory(lambda: list(users))


def test_gate_no_principal_redirects_to_login():
    decision = evaluate_role_gate(AuthState(principal=None), directory_of(ADMIN))
    assert decision is GateDecision.REDIRECT_LOGIN


def test_gate_administrator_allowed():
    state = AuthState(principal=Principal("usr_admin", "admin@example.com"))
    assert evaluate_role_gate(state, directory_of(ADMIN, ORGANIZER_USER)) is GateDecision.ALLOW


def test_gate_email_match_is_case_insensitive():
    state = AuthState(principal=Principal("usr_admin", "Admin@Example.COM"))
    assert evaluate_role_gate(state, directory_of(ADMIN)) is GateDecision.ALLOW


def test_gate_organizer_redirects_to_admin_landing():
    state = AuthState(principal=Principal("usr_org", "org@example.com"))
    assert evaluate_role_gate(state, directory_of(ADMIN, ORGANIZER_USER)) is GateDecision.REDIRECT_ADMIN


def test_gate_unknown_email_redirects_to_admin_landing():
    state = AuthState(principal=Principal("usr_x", "nobody@example.com"))
    assert evaluate_role_gate(state, directory_of(ADMIN)) is GateDecision.REDIRECT_ADMIN


def test_gate_principal_without_email_redirects_to_admin_landing():
    loader = MagicMock(return_value=[ADMIN])
    state = AuthState(principal=Principal("usr_anon", None))

    assert evaluate_role_gate(state, UserDirectory(loader)) is GateDecision.REDIRECT_ADMIN
    # No email means no lookup
    loader.assert_not_called()


def test_gate_loading_renders_nothing():
    loader = MagicMock(return_value=[ADMIN])
    state = AuthState(principal=None, loading=True)

    assert evaluate_role_gate(state, UserDirectory(loader)) is GateDecision.LOADING
    loader.assert_not_called()


def test_directory_loads_once():
    loader = MagicMock(return_value=[ADMIN, ORGANIZER_USER])
    directory = UserDirectory(loader)

    assert directory.find_by_email("admin@example.com")["id"] == "usr_admin"
    assert directory.find_by_email("org@example.com")["id"] == "usr_org"
    assert directory.find_by_email("missing@example.com") is None
    assert loader.call_count == 1


@pytest.mark.parametrize("user, expected", [
    (None, []),
    (ADMIN, ["evt_1", "evt_2"]),
    (ORGANIZER_USER, ["evt_1"]),
    ({**ORGANIZER_USER, "assignedEvents": ["All"]}, ["evt_1", "evt_2"]),
    ({**ORGANIZER_USER, "assignedEvents": []}, []),
])
def test_visible_events(user, expected):
    events = [{"id": "evt_1"}, {"id": "evt_2"}]
    assert [e["id"] for e in visible_events(user, events)] == expected


# --- Gate applied to a real route (/admin/users is Administrator only) ---
def test_users_route_anonymous_redirects_to_login(client, store):
    response = client.get("/admin/users/")
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/login")
    store.list_users.assert_not_called()


def test_users_route_organizer_redirects_to_admin(client, store, login):
    store.list_users.return_value = [ADMIN, ORGANIZER_USER]
    login(uid="usr_org", email="org@example.com")

    response = client.get("/admin/users/")
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/admin")


def test_users_route_principal_without_email_redirects_to_admin(client, store, login):
    login(uid="usr_anon", email=None)

    response = client.get("/admin/users/")
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/admin")
    store.list_users.assert_not_called()


def test_users_route_bearer_token_administrator(client, store, identity):
    store.list_users.return_value = [ADMIN]
    token = identity.create_token("usr_admin", "admin@example.com")

    response = client.get("/admin/users/", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.get_json() == [ADMIN]
