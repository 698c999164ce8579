"""API tests for /admin routes and the role gate."""

from taskboard.services.notifications import build_notification

BASE = "/api/v1/admin/users"


def test_requires_auth(client):
    response = client.get(BASE)
    assert response.status_code == 401


def test_regular_user_forbidden(client, make_user, auth_headers):
    user = make_user()
    response = client.get(BASE, headers=auth_headers(user))
    assert response.status_code == 403
    assert response.json()["message"] == "Insufficient permissions"


def test_admin_lists_users_newest_first(client, make_user, auth_headers):
    admin = make_user(role="admin")
    users = [make_user() for _ in range(3)]

    response = client.get(BASE, params={"limit": 2}, headers=auth_headers(admin))
    assert response.status_code == 200
    body = response.json()
    assert [u["user_id"] for u in body["result"]] == [users[2].user_id, users[1].user_id]
    assert body["meta"]["pagination"]["total"] == 4
    assert body["meta"]["pagination"]["total_pages"] == 2
    assert all("password_hash" not in u for u in body["result"])


def test_admin_deletes_user(client, make_user, auth_headers, user_repo, notification_repo, email_service):
    admin = make_user(role="admin")
    target = make_user()
    bystander = make_user()
    notification_repo.save(build_notification(target.user_id, bystander.user_id, "profile_like", "hi"))
    notification_repo.save(build_notification(bystander.user_id, target.user_id, "profile_like", "hi"))
    notification_repo.save(build_notification(bystander.user_id, admin.user_id, "profile_like", "hi"))

    response = client.delete(f"{BASE}/{target.user_id}", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["result"]["user_id"] == target.user_id
    assert user_repo.find_by_id(target.user_id) is None
    assert len(notification_repo.store) == 1
    assert email_service.sent[-1]["template"] == "account_deletion"
    assert email_service.sent[-1]["to"] == target.email


def test_deleted_users_token_stops_working(client, make_user, auth_headers):
    admin = make_user(role="admin")
    target = make_user()
    headers = auth_headers(target)
    client.delete(f"{BASE}/{target.user_id}", headers=auth_headers(admin))
    assert client.get("/api/v1/users/profile", headers=headers).status_code == 401


def test_admin_cannot_delete_self(client, make_user, auth_headers, user_repo):
    admin = make_user(role="admin")
    response = client.delete(f"{BASE}/{admin.user_id}", headers=auth_headers(admin))
    assert response.status_code == 403
    assert response.json()["message"] == "You cannot delete your own account"
    assert user_repo.find_by_id(admin.user_id) is not None


def test_delete_unknown_user(client, make_user, auth_headers):
    admin = make_user(role="admin")
    response = client.delete(f"{BASE}/missing-user", headers=auth_headers(admin))
    assert response.status_code == 404


def test_regular_user_cannot_delete(client, make_user, auth_headers, user_repo):
    user = make_user()
    target = make_user()
    response = client.delete(f"{BASE}/{target.user_id}", headers=auth_headers(user))
    assert response.status_code == 403
    assert user_repo.find_by_id(target.user_id) is not None


def test_admin_search_matches_name_or_email(client, make_user, auth_headers):
    admin = make_user(role="admin")
    by_name = make_user(name="Grace Hopper")
    by_email = make_user(email="hopper.fan@example.com")
    make_user(name="Alan Turing")

    response = client.get(BASE, params={"search": "HOPPER"}, headers=auth_headers(admin))
    assert response.status_code == 200
    body = response.json()
    assert {u["user_id"] for u in body["result"]} == {by_name.user_id, by_email.user_id}
    assert body["meta"]["pagination"]["total"] == 2


def test_admin_search_without_matches(client, make_user, auth_headers):
    admin = make_user(role="admin")
    make_user()
    response = client.get(BASE, params={"search": "nobody"}, headers=auth_headers(admin))
    assert response.json()["result"] == []
    assert response.json()["meta"]["pagination"]["total"] == 0


def test_blank_search_lists_everyone(client, make_user, auth_headers):
    admin = make_user(role="admin")
    make_user()
    response = client.get(BASE, params={"search": "  "}, headers=auth_headers(admin))
    assert response.json()["meta"]["pagination"]["total"] == 2
