"""
tests/test_users_routes.py -- Integration tests for /api/v1/users/*.

Uses the module-scoped api_client fixture (shared-memory SQLite, stub
uploader). Each test registers its own usernames so tests stay independent
within the shared database.

Covers:
  - register: 201 envelope, no secrets in the payload, validation and conflicts
  - login: tokens in body and cookies, Cache-Control, error statuses
  - refresh-token: rotation through the body, reuse rejected
  - logout, current-user, change-password, update-account, avatar, cover-image
  - public channel profile with subscription counts
"""

from __future__ import annotations

import pytest

from helpers import DEFAULT_PASSWORD, bearer, login_via_api, register_via_api

SECRET_KEYS = {"password", "hashedPassword", "hashed_password", "refreshToken", "refresh_token"}


def _login_tokens(client, username: str, password: str = DEFAULT_PASSWORD) -> dict:
    resp = login_via_api(client, username, password)
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------


def test_register_returns_envelope_without_secrets(api_client):
    client, _ = api_client
    resp = register_via_api(client, "Ada", fullname="Ada Lovelace", email="ada@x.com")
    assert resp.status_code == 201
    body = resp.json()
    assert body["statusCode"] == 201
    assert body["success"] is True
    assert body["message"] == "User registered successfully"
    user = body["data"]
    assert user["username"] == "ada"
    assert user["email"] == "ada@x.com"
    assert user["avatar"].startswith("https://media.example.com/")
    assert user["coverImage"] == ""
    assert not SECRET_KEYS & set(user)


def test_register_with_cover_image(api_client):
    client, _ = api_client
    files = {
        "avatar": ("avatar.png", b"\x89PNG fake", "image/png"),
        "coverImage": ("cover.png", b"\x89PNG cover", "image/png"),
    }
    resp = register_via_api(client, "withcover", files=files)
    assert resp.status_code == 201
    assert resp.json()["data"]["coverImage"].startswith("https://media.example.com/")


def test_register_missing_field(api_client):
    client, _ = api_client
    resp = register_via_api(client, "nofullname", fullname="")
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "All fields are required"


def test_register_missing_avatar(api_client):
    client, _ = api_client
    resp = register_via_api(client, "noavatar", files=None)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Avatar file is required"


def test_register_duplicate_conflicts(api_client):
    client, services = api_client
    assert register_via_api(client, "dupe").status_code == 201
    resp = register_via_api(client, "DUPE", email="other-dupe@example.com")
    assert resp.status_code == 409
    assert services.user_store.find_by_identifier(email="other-dupe@example.com") is None


def test_register_upload_failure(api_client):
    client, services = api_client
    services.uploader.fail = True
    try:
        resp = register_via_api(client, "uploadfail")
    finally:
        services.uploader.fail = False
    assert resp.status_code == 400
    assert services.user_store.get_by_username("uploadfail") is None


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


def test_login_returns_tokens_and_cookies(api_client):
    client, services = api_client
    register_via_api(client, "logan")
    resp = login_via_api(client, "logan")
    assert resp.status_code == 200
    assert resp.headers["cache-control"] == "no-store"
    data = resp.json()["data"]
    assert data["accessToken"]
    assert data["refreshToken"]
    assert not SECRET_KEYS & set(data["user"])
    set_cookie = resp.headers.get_list("set-cookie")
    assert any(c.startswith("accessToken=") and "HttpOnly" in c for c in set_cookie)
    assert any(c.startswith("refreshToken=") and "HttpOnly" in c for c in set_cookie)
    stored = services.user_store.get_by_username("logan")
    assert stored.refresh_token == data["refreshToken"]


def test_login_by_email(api_client):
    client, _ = api_client
    register_via_api(client, "emma")
    resp = client.post("/api/v1/users/login", json={"email": "emma@example.com", "password": DEFAULT_PASSWORD})
    assert resp.status_code == 200


@pytest.mark.parametrize(
    "payload,status,message",
    [
        ({"password": "x"}, 400, "username or email is required"),
        ({"username": "ghost", "password": "x"}, 404, "User does not exist"),
    ],
)
def test_login_errors(api_client, payload, status, message):
    client, _ = api_client
    resp = client.post("/api/v1/users/login", json=payload)
    assert resp.status_code == status
    assert resp.json()["message"] == message


def test_login_wrong_password(api_client):
    client, _ = api_client
    register_via_api(client, "wrongpw")
    resp = login_via_api(client, "wrongpw", "not-the-password")
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid user credentials"


def test_login_overlong_password_rejected(api_client):
    client, _ = api_client
    resp = client.post("/api/v1/users/login", json={"username": "someone", "password": "x" * 100})
    assert resp.status_code == 422
    assert resp.json()["success"] is False


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------


def test_refresh_rotates_and_rejects_reuse(api_client):
    client, _ = api_client
    register_via_api(client, "rory")
    first = _login_tokens(client, "rory")["refreshToken"]

    resp = client.post("/api/v1/users/refresh-token", json={"refreshToken": first})
    assert resp.status_code == 200
    assert resp.headers["cache-control"] == "no-store"
    second = resp.json()["data"]["refreshToken"]
    assert second != first

    reused = client.post("/api/v1/users/refresh-token", json={"refreshToken": first})
    assert reused.status_code == 401
    assert reused.json()["message"] == "Refresh token is expired or used"

    again = client.post("/api/v1/users/refresh-token", json={"refreshToken": second})
    assert again.status_code == 200


def test_refresh_without_token(api_client):
    client, _ = api_client
    client.cookies.clear()
    resp = client.post("/api/v1/users/refresh-token")
    assert resp.status_code == 401
    assert resp.json()["message"] == "Unauthorized request"


def test_refresh_with_garbage_token(api_client):
    client, _ = api_client
    resp = client.post("/api/v1/users/refresh-token", json={"refreshToken": "garbage"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid refresh token"


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


def test_current_user_requires_auth(api_client):
    client, _ = api_client
    client.cookies.clear()
    resp = client.get("/api/v1/users/current-user")
    assert resp.status_code == 401
    assert resp.json()["message"] == "Unauthorized request"


def test_current_user_rejects_bad_token(api_client):
    client, _ = api_client
    resp = client.get("/api/v1/users/current-user", headers=bearer("garbage"))
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid access token"


def test_current_user_rejects_refresh_token(api_client):
    client, _ = api_client
    register_via_api(client, "swapper")
    tokens = _login_tokens(client, "swapper")
    resp = client.get("/api/v1/users/current-user", headers=bearer(tokens["refreshToken"]))
    assert resp.status_code == 401


def test_current_user(api_client):
    client, _ = api_client
    register_via_api(client, "carla")
    tokens = _login_tokens(client, "carla")
    resp = client.get("/api/v1/users/current-user", headers=bearer(tokens["accessToken"]))
    assert resp.status_code == 200
    user = resp.json()["data"]
    assert user["username"] == "carla"
    assert not SECRET_KEYS & set(user)


def test_logout_clears_session(api_client):
    client, services = api_client
    register_via_api(client, "leo")
    tokens = _login_tokens(client, "leo")

    resp = client.post("/api/v1/users/logout", headers=bearer(tokens["accessToken"]))
    assert resp.status_code == 200
    assert resp.json()["message"] == "User logged out"
    assert services.user_store.get_by_username("leo").refresh_token is None

    # Logging out twice is harmless.
    assert client.post("/api/v1/users/logout", headers=bearer(tokens["accessToken"])).status_code == 200

    stale = client.post("/api/v1/users/refresh-token", json={"refreshToken": tokens["refreshToken"]})
    assert stale.status_code == 401


def test_change_password_round_trip(api_client):
    client, _ = api_client
    register_via_api(client, "pat")
    tokens = _login_tokens(client, "pat")
    headers = bearer(tokens["accessToken"])

    wrong = client.post(
        "/api/v1/users/change-password",
        json={"oldPassword": "nope", "newPassword": "n3w-pass"},
        headers=headers,
    )
    assert wrong.status_code == 401

    resp = client.post(
        "/api/v1/users/change-password",
        json={"oldPassword": DEFAULT_PASSWORD, "newPassword": "n3w-pass"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert login_via_api(client, "pat", "n3w-pass").status_code == 200
    assert login_via_api(client, "pat").status_code == 401


def test_update_account(api_client):
    client, _ = api_client
    register_via_api(client, "uma")
    headers = bearer(_login_tokens(client, "uma")["accessToken"])
    resp = client.patch(
        "/api/v1/users/update-account",
        json={"fullname": "Uma Updated", "email": "uma-new@example.com"},
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["fullname"] == "Uma Updated"
    assert data["email"] == "uma-new@example.com"


def test_update_account_email_taken(api_client):
    client, _ = api_client
    register_via_api(client, "vic")
    register_via_api(client, "val")
    headers = bearer(_login_tokens(client, "val")["accessToken"])
    resp = client.patch(
        "/api/v1/users/update-account",
        json={"fullname": "Val", "email": "vic@example.com"},
        headers=headers,
    )
    assert resp.status_code == 409


def test_update_avatar_and_cover(api_client):
    client, _ = api_client
    register_via_api(client, "ivy")
    headers = bearer(_login_tokens(client, "ivy")["accessToken"])

    avatar = client.patch(
        "/api/v1/users/avatar",
        files={"avatar": ("new.png", b"\x89PNG new", "image/png")},
        headers=headers,
    )
    assert avatar.status_code == 200

    cover = client.patch(
        "/api/v1/users/cover-image",
        files={"coverImage": ("cover.png", b"\x89PNG cover", "image/png")},
        headers=headers,
    )
    assert cover.status_code == 200
    assert cover.json()["data"]["coverImage"].startswith("https://media.example.com/")


def test_update_avatar_missing_file(api_client):
    client, _ = api_client
    register_via_api(client, "nofile")
    headers = bearer(_login_tokens(client, "nofile")["accessToken"])
    resp = client.patch("/api/v1/users/avatar", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Avatar file is missing"


# ---------------------------------------------------------------------------
# Channel profile
# ---------------------------------------------------------------------------


def test_channel_profile_public(api_client):
    client, services = api_client
    register_via_api(client, "chan")
    register_via_api(client, "fan")
    chan = services.user_store.get_by_username("chan")
    fan = services.user_store.get_by_username("fan")
    services.subscription_store.subscribe(fan.id, chan.id)

    client.cookies.clear()
    resp = client.get("/api/v1/users/c/CHAN")
    assert resp.status_code == 200
    profile = resp.json()["data"]
    assert profile["username"] == "chan"
    assert profile["subscribersCount"] == 1
    assert profile["channelsSubscribedToCount"] == 0
    assert profile["isSubscribed"] is False
    assert "email" not in profile

    headers = bearer(_login_tokens(client, "fan")["accessToken"])
    assert client.get("/api/v1/users/c/chan", headers=headers).json()["data"]["isSubscribed"] is True


def test_channel_profile_missing(api_client):
    client, _ = api_client
    resp = client.get("/api/v1/users/c/nobody-here")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Channel does not exist"


def test_login_keeps_surrounding_spaces_in_password(api_client):
    client, _ = api_client
    spaced = "  s3cr3t-pass  "
    assert register_via_api(client, "spacey", password=spaced).status_code == 201

    resp = client.post("/api/v1/users/login", json={"username": "  spacey ", "password": spaced})
    assert resp.status_code == 200, resp.text
    assert login_via_api(client, "spacey", "s3cr3t-pass").status_code == 401


def test_change_password_to_spaced_then_login(api_client):
    client, _ = api_client
    register_via_api(client, "padded")
    headers = bearer(_login_tokens(client, "padded")["accessToken"])
    resp = client.post(
        "/api/v1/users/change-password",
        json={"oldPassword": DEFAULT_PASSWORD, "newPassword": " padded-pass "},
        headers=headers,
    )
    assert resp.status_code == 200
    assert login_via_api(client, "padded", " padded-pass ").status_code == 200
