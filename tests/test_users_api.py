"""
API tests for /users: registration, login, profile and likes.

Repositories are in-memory fakes injected via dependency overrides, so no
DynamoDB or SES access is needed.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from taskboard.config import settings
from taskboard.errors import ConflictError
from taskboard.schemas.users import RegisterRequest, User
from taskboard.services.auth import register_user

from conftest import STRONG_PASSWORD

BASE = "/api/v1/users"


def _register(client, user_name="jdoe", email="jdoe@example.com", password=STRONG_PASSWORD, **extra):
    return client.post(
        f"{BASE}/register",
        json={"user_name": user_name, "email": email, "password": password, **extra},
    )


# ── POST /users/register ──────────────────────────────────────────────────────

class TestRegister:
    def test_register_success(self, client, user_repo):
        response = _register(client, name="Jane Doe")
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "success"
        result = body["result"]
        assert result["user"]["user_name"] == "jdoe"
        assert result["user"]["name"] == "Jane Doe"
        assert result["user"]["role"] == "user"
        assert "password_hash" not in result["user"]
        assert result["token"]
        assert result["token_type"] == "bearer"
        assert response.cookies.get(settings.auth_cookie_name) == result["token"]
        assert user_repo.find_by_email("jdoe@example.com") is not None

    def test_stored_password_is_hashed(self, client, user_repo):
        _register(client)
        stored = user_repo.find_by_email_with_secret("jdoe@example.com")
        assert stored.password_hash != STRONG_PASSWORD
        assert stored.password_hash.startswith("$2")

    def test_name_defaults_to_user_name(self, client):
        response = _register(client)
        assert response.json()["result"]["user"]["name"] == "jdoe"

    def test_register_creates_welcome_notification_and_email(
        self, client, notification_repo, email_service
    ):
        response = _register(client)
        user_id = response.json()["result"]["user"]["user_id"]

        notifications = notification_repo.list_for_recipient(user_id)
        assert [n.type for n in notifications] == ["welcome"]
        assert email_service.sent[0]["to"] == "jdoe@example.com"
        assert email_service.sent[0]["template"] == "welcome"

    def test_registration_token_authenticates(self, client):
        token = _register(client).json()["result"]["token"]
        client.cookies.clear()
        response = client.get(f"{BASE}/profile", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["result"]["user_name"] == "jdoe"

    def test_duplicate_email(self, client):
        _register(client)
        response = _register(client, user_name="other")
        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"
        assert response.json()["message"] == "email already exists"

    def test_duplicate_user_name_is_case_insensitive(self, client):
        _register(client)
        response = _register(client, user_name="JDoe", email="someone@example.com")
        assert response.status_code == 409
        assert response.json()["message"] == "user_name already exists"

    @pytest.mark.parametrize(
        "payload_override, field",
        [
            ({"user_name": "ab"}, "user_name"),
            ({"user_name": "not valid!"}, "user_name"),
            ({"email": "not-an-email"}, "email"),
            ({"password": "short"}, "password"),
        ],
    )
    def test_invalid_payload(self, client, payload_override, field):
        payload = {"user_name": "jdoe", "email": "jdoe@example.com", "password": STRONG_PASSWORD}
        response = client.post(f"{BASE}/register", json={**payload, **payload_override})
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["message"] == "Validation failed"
        assert field in [e["field"] for e in body["errors"]]

    def test_weak_password(self, client):
        response = _register(client, password="password1")
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Password does not meet the strength requirements"
        assert all(e["field"] == "password" for e in body["errors"])


def test_concurrent_registration_has_single_winner(user_repo, hasher):
    request = RegisterRequest(user_name="racer", email="racer@example.com", password=STRONG_PASSWORD)
    barrier = threading.Barrier(2)

    def attempt():
        barrier.wait()
        try:
            return register_user(request, user_repo, hasher)
        except ConflictError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=2) as pool:
        outcomes = list(pool.map(lambda _: attempt(), range(2)))

    assert sum(isinstance(o, User) for o in outcomes) == 1
    assert sum(isinstance(o, ConflictError) for o in outcomes) == 1
    assert len(user_repo.list_all()) == 1


def test_store_rejects_duplicate_that_slips_past_lookup(client, user_repo, monkeypatch):
    # Both registrations see "no such user", as when they race each other
    monkeypatch.setattr(user_repo, "find_by_email", lambda email: None)
    monkeypatch.setattr(user_repo, "find_by_user_name", lambda user_name: None)

    first = _register(client)
    second = _register(client, user_name="other")
    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["message"] == "email already exists"


# ── POST /users/login, /users/token, /users/logout ───────────────────────────

class TestLogin:
    def test_login_success_sets_cookie(self, client, make_user):
        user = make_user()
        response = client.post(f"{BASE}/login", json={"email": user.email, "password": STRONG_PASSWORD})
        assert response.status_code == 200
        result = response.json()["result"]
        assert result["user"]["user_id"] == user.user_id
        assert response.cookies.get(settings.auth_cookie_name) == result["token"]
        set_cookie = response.headers["set-cookie"].lower()
        assert "httponly" in set_cookie

        # Cookie alone now authenticates
        profile = client.get(f"{BASE}/profile")
        assert profile.status_code == 200

    def test_login_email_is_case_insensitive(self, client, make_user):
        user = make_user()
        response = client.post(
            f"{BASE}/login", json={"email": user.email.upper(), "password": STRONG_PASSWORD}
        )
        assert response.status_code == 200

    def test_login_wrong_password(self, client, make_user):
        user = make_user()
        response = client.post(f"{BASE}/login", json={"email": user.email, "password": "Wr0ng!pass"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_login_unknown_email(self, client):
        response = client.post(
            f"{BASE}/login", json={"email": "ghost@example.com", "password": STRONG_PASSWORD}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_token_endpoint(self, client, make_user):
        user = make_user()
        response = client.post(
            f"{BASE}/token", data={"username": user.email, "password": STRONG_PASSWORD}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == 3600
        profile = client.get(
            f"{BASE}/profile", headers={"Authorization": f"Bearer {body['access_token']}"}
        )
        assert profile.json()["result"]["user_id"] == user.user_id

    def test_token_endpoint_wrong_password(self, client, make_user):
        user = make_user()
        response = client.post(f"{BASE}/token", data={"username": user.email, "password": "nope"})
        assert response.status_code == 401
        assert response.json()["message"] == "Incorrect username or password"

    def test_logout_clears_cookie(self, client, make_user):
        user = make_user()
        client.post(f"{BASE}/login", json={"email": user.email, "password": STRONG_PASSWORD})
        assert client.get(f"{BASE}/profile").status_code == 200

        response = client.post(f"{BASE}/logout")
        assert response.status_code == 200
        assert client.get(f"{BASE}/profile").status_code == 401


# ── Profile and password ──────────────────────────────────────────────────────

class TestProfile:
    def test_get_profile(self, client, make_user, auth_headers):
        user = make_user()
        response = client.get(f"{BASE}/profile", headers=auth_headers(user))
        assert response.status_code == 200
        assert response.json()["result"]["email"] == user.email

    def test_update_profile(self, client, make_user, auth_headers):
        user = make_user()
        response = client.patch(
            f"{BASE}/profile", json={"bio": "Builds things"}, headers=auth_headers(user)
        )
        assert response.status_code == 200
        result = response.json()["result"]
        assert result["bio"] == "Builds things"
        assert result["name"] == user.name

    def test_update_profile_without_fields(self, client, make_user, auth_headers):
        user = make_user()
        response = client.patch(f"{BASE}/profile", json={}, headers=auth_headers(user))
        assert response.status_code == 400
        assert response.json()["message"] == "No profile fields to update"

    def test_public_profile_not_found(self, client):
        response = client.get(f"{BASE}/missing-user")
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_change_password(self, client, make_user, auth_headers):
        user = make_user()
        response = client.put(
            f"{BASE}/password",
            json={"current_password": STRONG_PASSWORD, "new_password": "N3w!secret"},
            headers=auth_headers(user),
        )
        assert response.status_code == 200

        old = client.post(f"{BASE}/login", json={"email": user.email, "password": STRONG_PASSWORD})
        new = client.post(f"{BASE}/login", json={"email": user.email, "password": "N3w!secret"})
        assert old.status_code == 401
        assert new.status_code == 200

    def test_change_password_wrong_current(self, client, make_user, auth_headers):
        user = make_user()
        response = client.put(
            f"{BASE}/password",
            json={"current_password": "Wr0ng!pass", "new_password": "N3w!secret"},
            headers=auth_headers(user),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Current password is incorrect"

    def test_change_password_requires_auth(self, client):
        response = client.put(
            f"{BASE}/password",
            json={"current_password": STRONG_PASSWORD, "new_password": "N3w!secret"},
        )
        assert response.status_code == 401


# ── Likes ─────────────────────────────────────────────────────────────────────

class TestLikes:
    def test_like_profile(self, client, make_user, auth_headers, user_repo, notification_repo, email_service):
        liker = make_user()
        target = make_user()
        response = client.post(f"{BASE}/{target.user_id}/like", headers=auth_headers(liker))
        assert response.status_code == 200

        assert user_repo.find_by_id(liker.user_id).likes == [target.user_id]
        [notification] = notification_repo.list_for_recipient(target.user_id)
        assert notification.type == "profile_like"
        assert notification.sender == liker.user_id
        assert email_service.sent[-1]["to"] == target.email
        assert email_service.sent[-1]["template"] == "profile_liked"

        public = client.get(f"{BASE}/{target.user_id}")
        assert public.json()["result"]["likes_count"] == 0
        assert client.get(f"{BASE}/{liker.user_id}").json()["result"]["likes_count"] == 1

    def test_like_twice_conflicts(self, client, make_user, auth_headers):
        liker = make_user()
        target = make_user()
        client.post(f"{BASE}/{target.user_id}/like", headers=auth_headers(liker))
        response = client.post(f"{BASE}/{target.user_id}/like", headers=auth_headers(liker))
        assert response.status_code == 409

    def test_like_self_rejected(self, client, make_user, auth_headers):
        user = make_user()
        response = client.post(f"{BASE}/{user.user_id}/like", headers=auth_headers(user))
        assert response.status_code == 400

    def test_like_unknown_user(self, client, make_user, auth_headers):
        liker = make_user()
        response = client.post(f"{BASE}/missing-user/like", headers=auth_headers(liker))
        assert response.status_code == 404

    def test_unlike_profile(self, client, make_user, auth_headers, user_repo, notification_repo):
        liker = make_user()
        target = make_user()
        client.post(f"{BASE}/{target.user_id}/like", headers=auth_headers(liker))
        response = client.delete(f"{BASE}/{target.user_id}/like", headers=auth_headers(liker))
        assert response.status_code == 200
        assert user_repo.find_by_id(liker.user_id).likes == []
        types = {n.type for n in notification_repo.list_for_recipient(target.user_id)}
        assert types == {"profile_like", "profile_unlike"}

    def test_unlike_without_like(self, client, make_user, auth_headers):
        liker = make_user()
        target = make_user()
        response = client.delete(f"{BASE}/{target.user_id}/like", headers=auth_headers(liker))
        assert response.status_code == 400
        assert response.json()["message"] == "Profile not liked yet"
