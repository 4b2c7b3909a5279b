import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '../backend')))

from conftest import auth_header


def test_admin_routes_require_admin(client, register):
    token = register()["token"]
    for path in ("/api/auth/admin/users", "/api/news/admin/analytics", "/api/admin/settings", "/api/admin/db-stats"):
        assert client.get(path).status_code == 401
        response = client.get(path, headers=auth_header(token))
        assert response.status_code == 403
        assert response.json()["error"] == "Admin access required"


def test_list_users_with_analysis_counts(client, register, admin_token):
    alice = register()["token"]
    client.post("/api/news/analyze", json={"content": "claim"}, headers=auth_header(alice))

    users = client.get("/api/auth/admin/users", headers=auth_header(admin_token)).json()["users"]

    assert [user["email"] for user in users] == ["alice@example.com", "admin@coredex.ai"]
    assert users[0]["analysis_count"] == 1


def test_update_user(client, register, admin_token):
    user = register()["user"]
    headers = auth_header(admin_token)

    missing = client.put(f"/api/auth/admin/users/{user['id']}", json={"name": "A"}, headers=headers)
    assert missing.json()["error"] == "Name, email, and role required"

    bad_role = client.put(
        f"/api/auth/admin/users/{user['id']}",
        json={"name": "A", "email": "alice@example.com", "role": "owner"},
        headers=headers,
    )
    assert bad_role.json()["error"] == "Invalid role"

    absent = client.put("/api/auth/admin/users/999", json={"name": "A", "email": "x@example.com", "role": "user"}, headers=headers)
    assert absent.status_code == 404

    ok = client.put(
        f"/api/auth/admin/users/{user['id']}",
        json={"name": "Alice Admin", "email": "alice@example.com", "role": "admin"},
        headers=headers,
    )
    assert ok.status_code == 200
    users = client.get("/api/auth/admin/users", headers=headers).json()["users"]
    assert users[0]["role"] == "admin"


def test_delete_user_cascades(client, register, admin_token):
    registered = register()
    alice_headers = auth_header(registered["token"])
    client.post("/api/news/analyze", json={"content": "one"}, headers=alice_headers)
    client.post("/api/news/analyze", json={"content": "two"}, headers=alice_headers)

    response = client.delete(f"/api/auth/admin/users/{registered['user']['id']}", headers=auth_header(admin_token))

    assert response.status_code == 200
    assert response.json()["deletedAnalyses"] == 2
    # the credential is still signed, but nothing is left behind it
    assert client.get("/api/news/history", headers=alice_headers).json()["history"] == []
    stats = client.get("/api/admin/db-stats", headers=auth_header(admin_token)).json()["stats"]
    assert stats["users"] == 1
    assert stats["analysis"] == 0


def test_delete_user_guards(client, register, admin_token):
    headers = auth_header(admin_token)
    admin_id = client.get("/api/auth/verify", headers=headers).json()["user"]["id"]

    response = client.delete(f"/api/auth/admin/users/{admin_id}", headers=headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Cannot delete yourself"

    assert client.delete("/api/auth/admin/users/999", headers=headers).status_code == 404

    other = register(name="Root", email="root@example.com")["user"]
    client.put(
        f"/api/auth/admin/users/{other['id']}",
        json={"name": "Root", "email": "root@example.com", "role": "admin"},
        headers=headers,
    )
    response = client.delete(f"/api/auth/admin/users/{other['id']}", headers=headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Cannot delete admin users"


def test_analytics_snapshot(client, register, admin_token):
    token = register()["token"]
    client.post("/api/news/analyze", json={"content": "claim"}, headers=auth_header(token))

    data = client.get("/api/news/admin/analytics", headers=auth_header(admin_token)).json()

    assert data["total_users"] == 2
    assert data["total_analysis"] == 1
    assert data["uncertain_count"] == 1
    assert data["uncertain_percentage"] == 100
    assert data["fake_percentage"] == 0
    assert data["today_analysis"] == 1
    assert data["user_activity"][0]["count"] == 1
    assert data["user_stats"][0]["analysis_count"] == 1


def test_settings_defaults_and_update(client, admin_token):
    headers = auth_header(admin_token)
    settings = {row["key"]: row["value"] for row in client.get("/api/admin/settings", headers=headers).json()["settings"]}
    assert settings["max_analysis_length"] == "10000"
    assert settings["allow_registration"] == "true"
    assert len(settings) == 6

    response = client.put("/api/admin/settings/maintenance_mode", json={"value": "true"}, headers=headers)
    assert response.json() == {"success": True, "key": "maintenance_mode", "value": "true"}

    unknown = client.put("/api/admin/settings/nope", json={"value": "1"}, headers=headers)
    assert unknown.status_code == 404
    assert unknown.json() == {"success": False, "error": "Setting not found"}


def test_registration_can_be_disabled(client, admin_token):
    client.put("/api/admin/settings/allow_registration", json={"value": "false"}, headers=auth_header(admin_token))

    response = client.post("/api/auth/register", json={"name": "A", "email": "a@example.com", "password": "secret1"})

    assert response.status_code == 403


def test_max_analysis_length(client, admin_token):
    client.put("/api/admin/settings/max_analysis_length", json={"value": "10"}, headers=auth_header(admin_token))

    response = client.post("/api/news/analyze", json={"content": "x" * 11})

    assert response.status_code == 400
    assert response.json()["error"] == "Content too long"
    assert client.post("/api/news/analyze", json={"content": "x" * 10}).status_code == 200


def test_history_cleanup_and_optimize(client, admin_token):
    headers = auth_header(admin_token)

    response = client.delete("/api/admin/history/cleanup?days=7", headers=headers)
    assert response.json() == {"success": True, "deleted": 0}
    assert client.delete("/api/admin/history/cleanup?days=0", headers=headers).status_code == 400

    response = client.post("/api/admin/maintenance/optimize", headers=headers)
    assert response.json() == {"success": True, "optimized": True}
