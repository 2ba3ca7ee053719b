from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

PASSWORD = "password1"


def register(client, email: str, password: str = PASSWORD, name: str = "Test User", role: Optional[str] = None) -> dict:
    body = {"email": email, "password": password, "name": name}
    if role is not None:
        body["role"] = role
    resp = client.post("/api/auth/register", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["user"]


def login(client, email: str, password: str = PASSWORD) -> str:
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


def auth_headers(client, email: str, password: str = PASSWORD) -> dict:
    return {"Authorization": f"Bearer {login(client, email, password)}"}


def make_task(client, headers: dict, title: str = "Write report", **fields) -> dict:
    resp = client.post("/api/tasks", json={"title": title, **fields}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["task"]


def iso_in(days: float) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()
