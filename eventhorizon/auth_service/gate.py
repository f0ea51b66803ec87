"""
Access gates for the admin area.

Two decorators protect admin views:

- login_required: any signed-in principal may pass; anonymous visitors are
  sent to the login page.
- administrator_required: the role gate. Only a principal whose email
  matches a user record with role Administrator may pass.

The role gate keeps three distinct redirect outcomes. No principal goes to
the login page. A principal without an email, or whose email matches no
Administrator, goes to the admin landing page.
"""

import logging
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Iterable, Optional

from flask import g, jsonify, redirect

from eventhorizon.auth_service.utils import AuthState, current_auth_state
from eventhorizon.database.store import ADMINISTRATOR
from eventhorizon.extensions import get_clients

LOGIN_ROUTE = "/login"
ADMIN_LANDING_ROUTE = "/admin"

logger = logging.getLogger(__name__)


class GateDecision(Enum):
    LOADING = "loading"
    ALLOW = "allow"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_ADMIN = "redirect_admin"


class UserDirectory:
    """
    Users keyed by lower-cased email.

    The loader is called on the first lookup only, so a request that never
    reaches the lookup never queries the store.
    """

    def __init__(self, loader: Callable[[], Iterable[Dict[str, Any]]]):
        self._loader = loader
        self._by_email: Optional[Dict[str, Dict[str, Any]]] = None

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        if self._by_email is None:
            self._by_email = {
                user["email"].lower(): user for user in self._loader() if user.get("email")
            }
        return self._by_email.get(email.lower())


def evaluate_role_gate(state: AuthState, directory: UserDirectory, role: str = ADMINISTRATOR) -> GateDecision:
    """
    Decide whether the current principal may see a view restricted to `role`.

    Returns:
        GateDecision: LOADING while the state resolves; REDIRECT_LOGIN without
        a principal; REDIRECT_ADMIN for a principal without an email, without
        a user record, or with a different role; ALLOW otherwise.
    """
    if state.loading:
        return GateDecision.LOADING

    principal = state.principal
    if principal is None:
        return GateDecision.REDIRECT_LOGIN

    if not principal.email:
        return GateDecision.REDIRECT_ADMIN

    user = directory.find_by_email(principal.email)
    if user is None or user.get("role") != role:
        return GateDecision.REDIRECT_ADMIN

    return GateDecision.ALLOW


def gate_response(decision: GateDecision):
    """Translate a non-ALLOW decision into the response the client receives."""
    if decision is GateDecision.LOADING:
        return jsonify({"status": "loading"}), 202
    if decision is GateDecision.REDIRECT_LOGIN:
        return redirect(LOGIN_ROUTE)
    if decision is GateDecision.REDIRECT_ADMIN:
        return redirect(ADMIN_LANDING_ROUTE)
    return None


def _directory() -> UserDirectory:
    store = get_clients().store
    return UserDirectory(store.list_users)


def administrator_required(view):
    """Role gate: render the view only for Administrators."""

    @wraps(view)
    def decorated(*args, **kwargs):
        state = current_auth_state()
        directory = _directory()
        decision = evaluate_role_gate(state, directory)
        if decision is not GateDecision.ALLOW:
            logger.info(f"[Gate] {decision.value} for {state.principal!r}")
            return gate_response(decision)

        g.principal = state.principal
        g.current_user = directory.find_by_email(state.principal.email)
        return view(*args, **kwargs)

    return decorated


def login_required(view):
    """Render the view for any signed-in principal; otherwise go to the login page."""

    @wraps(view)
    def decorated(*args, **kwargs):
        state = current_auth_state()
        if state.loading:
            return gate_response(GateDecision.LOADING)
        if state.principal is None:
            return redirect(LOGIN_ROUTE)

        g.principal = state.principal
        g.current_user = None
        if state.principal.email:
            g.current_user = get_clients().store.get_user_by_email(state.principal.email)
        return view(*args, **kwargs)

    return decorated


def visible_events(user: Optional[Dict[str, Any]], events: Iterable[Dict[str, Any]]):
    """
    Events a signed-in user may manage.

    Administrators see every event. Organizers see the events listed in
    assignedEvents, or all of them when the list holds "All". A principal
    with no user record sees none.
    """
    events = list(events)
    if user is None:
        return []
    if user.get("role") == ADMINISTRATOR:
        return events
    assigned = user.get("assignedEvents") or []
    if "All" in assigned:
        return events
    return [e for e in events if e["id"] in assigned]
