"""
tests/helpers.py -- Test doubles and request helpers shared across test modules.

Kept out of conftest.py so test modules can import them directly.
"""

from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient

DEFAULT_PASSWORD = "s3cr3t-pass"


class StubUploader:
    """Records uploads and returns a fake host URL.

    Mirrors MediaUploader's contract: deletes the local file after every
    attempt and returns None on failure (fail=True).
    """

    def __init__(self) -> None:
        self.fail = False
        self.uploaded: list[str] = []

    def upload(self, local_path):
        if not local_path:
            return None
        path = Path(local_path)
        existed = path.exists()
        path.unlink(missing_ok=True)
        if self.fail or not existed:
            return None
        self.uploaded.append(path.name)
        return {"url": f"https://media.example.com/{path.name}"}


def make_temp_file(directory: Path, name: str = "avatar.png") -> Path:
    """Write a small file standing in for an uploaded image."""
    path = directory / name
    path.write_bytes(b"\x89PNG fake image bytes")
    return path


def register_via_api(client: TestClient, username: str, password: str = DEFAULT_PASSWORD, **overrides):
    """POST /users/register with a fake avatar; returns the response."""
    form = {
        "fullname": overrides.pop("fullname", f"{username} Tester"),
        "email": overrides.pop("email", f"{username.lower()}@example.com"),
        "username": username,
        "password": password,
    }
    files = overrides.pop("files", {"avatar": ("avatar.png", b"\x89PNG fake", "image/png")})
    return client.post("/api/v1/users/register", data=form, files=files)


def login_via_api(client: TestClient, username: str, password: str = DEFAULT_PASSWORD):
    return client.post("/api/v1/users/login", json={"username": username, "password": password})


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
