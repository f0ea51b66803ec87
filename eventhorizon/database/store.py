"""
Document store for users, events and registrations.

Records are stored in PostgreSQL with nested documents in JSONB columns and
returned as plain dictionaries using the API's camelCase keys.
"""

import re
import unicodedata
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from psycopg2.extras import Json

from eventhorizon.config import require
from eventhorizon.database.db_connection import get_db

ADMINISTRATOR = "Administrator"
ORGANIZER = "Organizer"
VALID_ROLES = (ADMINISTRATOR, ORGANIZER)

# API key -> (column, wrap value as JSONB)
EVENT_COLUMNS = {
    "name": ("name", False),
    "date": ("date", False),
    "location": ("location", True),
    "description": ("description", False),
    "heroImage": ("hero_image", True),
    "formFields": ("form_fields", True),
    "rodo": ("rodo", False),
    "isActive": ("is_active", False),
    "themeColor": ("theme_color", False),
}

USER_COLUMNS = {
    "name": ("name", False),
    "email": ("email", False),
    "role": ("role", False),
    "assignedEvents": ("assigned_events", True),
    "passwordHash": ("password_hash", False),
}


# Letters that NFKD does not decompose into an ASCII base letter
TRANSLITERATIONS = str.maketrans({
    "ł": "l", "Ł": "L", "đ": "d", "Đ": "D", "ø": "o", "Ø": "O",
    "ß": "ss", "æ": "ae", "Æ": "AE", "œ": "oe", "Œ": "OE",
})


def slugify(name: str) -> str:
    """
    Derive a URL-safe slug from an event name.

    Accented letters are transliterated to ASCII first. May return "" when
    nothing usable is left; callers validate that.

    "Tech Summit 2025!" -> "tech-summit-2025"
    "Święto Łodzi" -> "swieto-lodzi"
    """
    text = (name or "").translate(TRANSLITERATIONS)
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"\s+", "-", text.strip().lower())
    return re.sub(r"[^\w-]+", "", slug, flags=re.ASCII)


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4()}"


def _iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _user_from_row(row, include_password: bool = False) -> Dict[str, Any]:
    user = {
        "id": row["id"],
        "name": row["name"],
        "email": row["email"],
        "role": row["role"],
        "assignedEvents": list(row["assigned_events"] or []),
    }
    if include_password:
        user["passwordHash"] = row["password_hash"]
    return user


def _event_from_row(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "name": row["name"],
        "slug": row["slug"],
        "date": row["date"],
        "location": row["location"] or {"types": []},
        "description": row["description"] or "",
        "heroImage": row["hero_image"] or {"src": "", "hint": ""},
        "formFields": list(row["form_fields"] or []),
        "rodo": row["rodo"] or "",
        "isActive": bool(row["is_active"]),
        "themeColor": row["theme_color"],
    }


def _registration_from_row(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "eventId": row["event_id"],
        "eventName": row["event_name"],
        "formData": row["form_data"] or {},
        "qrId": row["qr_id"],
        "registrationDate": _iso(row["registration_date"]),
        "checkedIn": bool(row["checked_in"]),
        "checkInTime": _iso(row["check_in_time"]),
    }


def _assignments(data: Dict[str, Any], columns: Dict[str, tuple]):
    """Build SET/INSERT column lists from an API-keyed dict."""
    names, values = [], []
    for key, (column, as_json) in columns.items():
        if key in data:
            names.append(column)
            values.append(Json(data[key]) if as_json else data[key])
    return names, values


class DocumentStore:
    """
    Read/write access to the users, events and registrations collections.

    Constructed once at startup. Both the database URL and the project
    identifier are required; a missing value raises ConfigurationError.
    """

    def __init__(self, database_url: Optional[str], project_id: Optional[str]):
        self.database_url = require("DATABASE_URL", database_url)
        self.project_id = require("PROJECT_ID", project_id)

    def connect(self):
        return get_db(self.database_url, self.project_id)

    def _fetch_all(self, sql: str, params: tuple = ()) -> list:
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return cur.fetchall()

    def _fetch_one(self, sql: str, params: tuple = (), commit: bool = False):
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                row = cur.fetchone()
                if commit:
                    conn.commit()
                return row

    def _execute(self, sql: str, params: tuple = ()) -> int:
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                conn.commit()
                return cur.rowcount

    # --- USERS ---
    def list_users(self) -> List[Dict[str, Any]]:
        rows = self._fetch_all("SELECT * FROM users ORDER BY name;")
        return [_user_from_row(r) for r in rows]

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        row = self._fetch_one("SELECT * FROM users WHERE id = %s;", (user_id,))
        return _user_from_row(row) if row else None

    def get_user_by_email(self, email: str, include_password: bool = False) -> Optional[Dict[str, Any]]:
        row = self._fetch_one("SELECT * FROM users WHERE lower(email) = lower(%s);", (email,))
        return _user_from_row(row, include_password) if row else None

    def create_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        names, values = _assignments(data, USER_COLUMNS)
        names.insert(0, "id")
        values.insert(0, new_id("usr"))
        placeholders = ", ".join(["%s"] * len(names))
        sql = f"INSERT INTO users ({', '.join(names)}) VALUES ({placeholders}) RETURNING *;"
        return _user_from_row(self._fetch_one(sql, tuple(values), commit=True))

    def update_user(self, user_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        names, values = _assignments(data, USER_COLUMNS)
        if not names:
            return self.get_user(user_id)
        set_clause = ", ".join(f"{n} = %s" for n in names)
        sql = f"UPDATE users SET {set_clause} WHERE id = %s RETURNING *;"
        row = self._fetch_one(sql, tuple(values) + (user_id,), commit=True)
        return _user_from_row(row) if row else None

    def delete_user(self, user_id: str) -> bool:
        return self._execute("DELETE FROM users WHERE id = %s;", (user_id,)) > 0

    def delete_users_except(self, role: str) -> int:
        """Delete every user whose role differs from `role`. Returns the count removed."""
        return self._execute("DELETE FROM users WHERE role <> %s;", (role,))

    # --- EVENTS ---
    def list_events(self) -> List[Dict[str, Any]]:
        rows = self._fetch_all("SELECT * FROM events ORDER BY date, name;")
        return [_event_from_row(r) for r in rows]

    def list_active_events(self) -> List[Dict[str, Any]]:
        rows = self._fetch_all("SELECT * FROM events WHERE is_active ORDER BY date, name;")
        return [_event_from_row(r) for r in rows]

    def get_event(self, event_id: str) -> Optional[Dict[str, Any]]:
        row = self._fetch_one("SELECT * FROM events WHERE id = %s;", (event_id,))
        return _event_from_row(row) if row else None

    def get_event_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        row = self._fetch_one("SELECT * FROM events WHERE slug = %s;", (slug,))
        return _event_from_row(row) if row else None

    def create_event(self, data: Dict[str, Any]) -> Dict[str, Any]:
        names, values = _assignments(data, EVENT_COLUMNS)
        names = ["id", "slug"] + names
        values = [new_id("evt"), slugify(data["name"])] + values
        placeholders = ", ".join(["%s"] * len(names))
        sql = f"INSERT INTO events ({', '.join(names)}) VALUES ({placeholders}) RETURNING *;"
        return _event_from_row(self._fetch_one(sql, tuple(values), commit=True))

    def update_event(self, event_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        names, values = _assignments(data, EVENT_COLUMNS)
        if "name" in data:
            names.append("slug")
            values.append(slugify(data["name"]))
        if not names:
            return self.get_event(event_id)
        set_clause = ", ".join(f"{n} = %s" for n in names)
        sql = f"UPDATE events SET {set_clause} WHERE id = %s RETURNING *;"
        row = self._fetch_one(sql, tuple(values) + (event_id,), commit=True)
        return _event_from_row(row) if row else None

    def delete_event(self, event_id: str) -> bool:
        return self._execute("DELETE FROM events WHERE id = %s;", (event_id,)) > 0

    def set_active_event(self, event_id: str) -> Optional[Dict[str, Any]]:
        """Mark one event active and every other event inactive, in one transaction."""
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT id FROM events WHERE id = %s;", (event_id,))
                if not cur.fetchone():
                    return None
                cur.execute("UPDATE events SET is_active = FALSE WHERE is_active AND id <> %s;", (event_id,))
                cur.execute("UPDATE events SET is_active = TRUE WHERE id = %s RETURNING *;", (event_id,))
                row = cur.fetchone()
                conn.commit()
                return _event_from_row(row)

    def deactivate_event(self, event_id: str) -> Optional[Dict[str, Any]]:
        row = self._fetch_one(
            "UPDATE events SET is_active = FALSE WHERE id = %s RETURNING *;", (event_id,), commit=True
        )
        return _event_from_row(row) if row else None

    # --- REGISTRATIONS ---
    def list_registrations(self, event_id: Optional[str] = None) -> List[Dict[str, Any]]:
        if event_id:
            rows = self._fetch_all(
                "SELECT * FROM registrations WHERE event_id = %s ORDER BY registration_date;", (event_id,)
            )
        else:
            rows = self._fetch_all("SELECT * FROM registrations ORDER BY registration_date;")
        return [_registration_from_row(r) for r in rows]

    def get_registration(self, event_id: str, registration_id: str) -> Optional[Dict[str, Any]]:
        row = self._fetch_one(
            "SELECT * FROM registrations WHERE event_id = %s AND id = %s;", (event_id, registration_id)
        )
        return _registration_from_row(row) if row else None

    def find_registration_by_qr(self, event_id: str, qr_id: str) -> Optional[Dict[str, Any]]:
        row = self._fetch_one(
            "SELECT * FROM registrations WHERE event_id = %s AND qr_id = %s;", (event_id, qr_id)
        )
        return _registration_from_row(row) if row else None

    def create_registration(self, event: Dict[str, Any], form_data: Dict[str, Any]) -> Dict[str, Any]:
        sql = """
            INSERT INTO registrations (id, event_id, event_name, form_data, qr_id, registration_date)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING *;
        """
        params = (
            new_id("reg"),
            event["id"],
            event["name"],
            Json(form_data),
            new_id("qr"),
            datetime.now(timezone.utc),
        )
        return _registration_from_row(self._fetch_one(sql, params, commit=True))

    def update_registration_form_data(
        self, event_id: str, registration_id: str, form_data: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        row = self._fetch_one(
            "UPDATE registrations SET form_data = %s WHERE event_id = %s AND id = %s RETURNING *;",
            (Json(form_data), event_id, registration_id),
            commit=True,
        )
        return _registration_from_row(row) if row else None

    def set_check_in(self, event_id: str, registration_id: str, checked_in: bool) -> Optional[Dict[str, Any]]:
        check_in_time = datetime.now(timezone.utc) if checked_in else None
        row = self._fetch_one(
            """
            UPDATE registrations SET checked_in = %s, check_in_time = %s
            WHERE event_id = %s AND id = %s
            RETURNING *;
            """,
            (checked_in, check_in_time, event_id, registration_id),
            commit=True,
        )
        return _registration_from_row(row) if row else None

    def check_in(self, event_id: str, registration_id: str) -> Optional[Dict[str, Any]]:
        """
        Check a registration in unless it already is, in a single UPDATE.

        Returns None when the registration is missing or was already checked in.
        """
        row = self._fetch_one(
            """
            UPDATE registrations SET checked_in = TRUE, check_in_time = %s
            WHERE event_id = %s AND id = %s AND NOT checked_in
            RETURNING *;
            """,
            (datetime.now(timezone.utc), event_id, registration_id),
            commit=True,
        )
        return _registration_from_row(row) if row else None

    def delete_registration(self, registration_id: str) -> bool:
        return self._execute("DELETE FROM registrations WHERE id = %s;", (registration_id,)) > 0
