"""Test helper functions."""

import json
from io import BytesIO
from itertools import count
from typing import Any, Dict, Optional

from ulid import ULID

from linknow.services import supabase_client
from linknow.services.validation import normalize_phone
from linknow.utils.errors import NotFound, ValidationFailed

GATEWAY_FUNCTIONS = (
    "create_profile",
    "get_profile_by_user_id",
    "get_profile_by_slug",
    "get_profile_by_id",
    "find_profile_by_phone",
    "update_profile",
    "create_property",
    "get_properties_by_profile",
    "get_property_by_id",
    "update_property",
    "delete_property",
    "reorder_properties",
)


class InMemoryStore:
    """Dict-backed replacement for the Supabase gateway functions.

    ``fail_next[name] = error`` makes the next call of ``name`` raise.
    """

    def __init__(self):
        self.profiles: Dict[str, dict] = {}
        self.properties: Dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.fail_next: Dict[str, Exception] = {}
        self._clock = count()

    def install(self, monkeypatch) -> None:
        for name in GATEWAY_FUNCTIONS:
            monkeypatch.setattr(supabase_client, name, getattr(self, name))

    def calls_to(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.fail_next:
            raise self.fail_next.pop(name)

    def _timestamp(self) -> str:
        return f"2024-12-09T12:00:{next(self._clock):06d}"

    def _slug_taken(self, slug: str, profile_id: Optional[str] = None) -> bool:
        return any(row["slug"] == slug and row["id"] != profile_id for row in self.profiles.values())

    async def create_profile(self, user_id: str, profile_data: dict) -> dict:
        self._record("create_profile", user_id, profile_data)
        if self._slug_taken(profile_data["slug"]):
            raise ValidationFailed("slug", "This link is already taken")
        now = self._timestamp()
        row = {**profile_data, "id": str(ULID()), "user_id": user_id, "created_at": now, "updated_at": now}
        self.profiles[row["id"]] = row
        return dict(row)

    async def get_profile_by_user_id(self, user_id: str) -> Optional[dict]:
        self._record("get_profile_by_user_id", user_id)
        for row in self.profiles.values():
            if row["user_id"] == user_id:
                return dict(row)
        return None

    async def get_profile_by_slug(self, slug: str) -> Optional[dict]:
        self._record("get_profile_by_slug", slug)
        for row in self.profiles.values():
            if row["slug"] == slug:
                return dict(row)
        return None

    async def get_profile_by_id(self, profile_id: str) -> Optional[dict]:
        self._record("get_profile_by_id", profile_id)
        row = self.profiles.get(profile_id)
        return dict(row) if row else None

    async def find_profile_by_phone(self, phone_number: str, email: Optional[str] = None) -> Optional[dict]:
        self._record("find_profile_by_phone", phone_number, email)
        for row in self.profiles.values():
            if normalize_phone(row.get("phone_number")) != normalize_phone(phone_number):
                continue
            if email is None or (row.get("email") or "").lower() == email.lower():
                return dict(row)
        return None

    async def update_profile(self, profile_id: str, updates: dict) -> dict:
        self._record("update_profile", profile_id, updates)
        if profile_id not in self.profiles:
            raise NotFound(f"Profile not found: {profile_id}")
        if "slug" in updates and self._slug_taken(updates["slug"], profile_id):
            raise ValidationFailed("slug", "This link is already taken")
        self.profiles[profile_id].update(updates, updated_at=self._timestamp())
        return dict(self.profiles[profile_id])

    async def create_property(self, profile_id: str, property_data: dict) -> dict:
        self._record("create_property", profile_id, property_data)
        now = self._timestamp()
        row = {**property_data, "profile_id": profile_id, "created_at": now, "updated_at": now}
        row.setdefault("id", str(ULID()))
        self.properties[row["id"]] = row
        return dict(row)

    async def get_properties_by_profile(self, profile_id: str) -> list[dict]:
        self._record("get_properties_by_profile", profile_id)
        rows = [dict(row) for row in self.properties.values() if row["profile_id"] == profile_id]
        return sorted(rows, key=lambda row: (row.get("display_order") or 0, row["created_at"]))

    async def get_property_by_id(self, property_id: str) -> Optional[dict]:
        self._record("get_property_by_id", property_id)
        row = self.properties.get(property_id)
        return dict(row) if row else None

    async def update_property(self, property_id: str, updates: dict) -> dict:
        self._record("update_property", property_id, updates)
        if property_id not in self.properties:
            raise NotFound(f"Property not found: {property_id}")
        self.properties[property_id].update(updates, updated_at=self._timestamp())
        return dict(self.properties[property_id])

    async def delete_property(self, property_id: str) -> None:
        self._record("delete_property", property_id)
        self.properties.pop(property_id, None)

    async def reorder_properties(self, profile_id: str, property_ids: list[str]) -> None:
        self._record("reorder_properties", profile_id, list(property_ids))
        for position, property_id in enumerate(property_ids):
            row = self.properties.get(property_id)
            if row and row["profile_id"] == profile_id:
                row["display_order"] = position

    def ordered_ids(self, profile_id: str) -> list[str]:
        rows = [row for row in self.properties.values() if row["profile_id"] == profile_id]
        rows.sort(key=lambda row: (row.get("display_order") or 0, row["created_at"]))
        return [row["id"] for row in rows]


class MockSocket:
    """Feeds a raw request to a handler and captures everything it sends."""

    def __init__(self, raw_request: bytes):
        self._raw_request = raw_request
        self.sent = bytearray()

    def makefile(self, *args, **kwargs):
        return BytesIO(self._raw_request)

    def sendall(self, data):
        self.sent.extend(data)

    def close(self):
        pass


def build_raw_request(
    method: str,
    path: str,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> bytes:
    """Serialize an HTTP/1.1 request; dict/list bodies are sent as JSON."""
    headers = dict(headers or {})
    if isinstance(body, (dict, list)):
        payload = json.dumps(body).encode("utf-8")
        headers.setdefault("Content-Type", "application/json")
    elif isinstance(body, str):
        payload = body.encode("utf-8")
    else:
        payload = body or b""
    headers["Content-Length"] = str(len(payload))
    headers.setdefault("Connection", "close")
    head = f"{method} {path} HTTP/1.1\r\n" + "".join(f"{key}: {value}\r\n" for key, value in headers.items())
    return head.encode("latin-1") + b"\r\n" + payload


def call_handler(
    handler_cls,
    method: str,
    path: str,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> tuple[int, Any]:
    """Run one request through a ``BaseHTTPRequestHandler`` and return (status, parsed JSON)."""
    sock = MockSocket(build_raw_request(method, path, body, headers))
    handler_cls(sock, ("127.0.0.1", 8000), None)

    head, _, payload = bytes(sock.sent).partition(b"\r\n\r\n")
    status = int(head.split(b" ", 2)[1])
    return status, json.loads(payload) if payload else None
