"""
Tests for caller resolution and permission-gated endpoints.
"""
from fastapi import Depends, FastAPI, status
from fastapi.testclient import TestClient

from app.core.auth import CurrentUser, require_action
from app.main import app


def test_request_without_user_header_fails(client):
    """Requests without the user id header are rejected."""
    response = client.get("/api/v1/auth/me")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert "Authentication required" in response.json()["detail"]


def test_request_with_unknown_user_fails(client):
    response = client.get("/api/v1/auth/me", headers={"X-User-ID": "ghost"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_inactive_user_fails(client, make_user, db_session):
    user = make_user("gone", role="admin")
    user.is_active = False
    db_session.commit()

    response = client.get("/api/v1/auth/me", headers={"X-User-ID": "gone"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_me_returns_effective_permissions(client, store, trainee_headers):
    store.add_custom_permission("12345", "report:view")

    response = client.get("/api/v1/auth/me", headers=trainee_headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["user_id"] == "12345"
    assert data["role"] == "trainee"
    assert data["role_label"] == "מתאמן"
    assert data["is_admin"] is False
    assert "report:view" in data["permissions"]
    assert "question:read" in data["permissions"]
    assert "question:create" not in data["permissions"]


def test_trainee_cannot_list_users(client, trainee_headers):
    """Listing users requires user:read."""
    response = client.get("/api/v1/users/", headers=trainee_headers)

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert "user:read" in response.json()["detail"]


def test_instructor_cannot_view_audit_trail(client, instructor_headers):
    response = client.get("/api/v1/activity/", headers=instructor_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_custom_grant_opens_gated_endpoint(client, store, instructor_headers):
    store.add_custom_permission("instructor1", "audit:view")

    response = client.get("/api/v1/activity/", headers=instructor_headers)

    assert response.status_code == status.HTTP_200_OK


def test_admin_can_list_users(client, admin_headers, trainee_headers):
    response = client.get("/api/v1/users/", headers=admin_headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 2
    assert {u["user_id"] for u in data["items"]} == {"admin1", "12345"}


def test_permission_catalog_endpoint(client, trainee_headers):
    response = client.get("/api/v1/permissions/", headers=trainee_headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["groups"][0]["group"] == "question"
    assert data["groups"][0]["label"] == "שאלות"
    keys = {p["key"] for g in data["groups"] for p in g["permissions"]}
    assert "audit:view" in keys
    assert data["total"] == len(keys)


def test_role_permissions_endpoint(client, trainee_headers):
    response = client.get("/api/v1/permissions/roles/instructor", headers=trainee_headers)
    assert "question:create" in response.json()["permissions"]

    response = client.get("/api/v1/permissions/roles/wizard", headers=trainee_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["permissions"] == []


def test_check_endpoint(client, store, admin_headers, trainee_headers):
    store.add_custom_permission("u9", "question:create")

    response = client.post(
        "/api/v1/permissions/check",
        headers=admin_headers,
        json={"role": "trainee", "permission": "question:create", "user_id": "u9"},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["allowed"] is True
    assert response.json()["decision"] == "allow_custom_grant"

    response = client.post(
        "/api/v1/permissions/check",
        headers=trainee_headers,
        json={"role": None, "permission": "question:read"},
    )
    assert response.json()["allowed"] is False


def test_check_endpoint_own_grants(client, store, trainee_headers):
    store.add_custom_permission("12345", "report:view")

    response = client.post(
        "/api/v1/permissions/check",
        headers=trainee_headers,
        json={"role": "trainee", "permission": "report:view", "user_id": "12345"},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["decision"] == "allow_custom_grant"


def test_check_endpoints_refuse_other_users_grants(client, store, trainee_headers):
    """Only permission managers may evaluate another user's custom grants."""
    store.add_custom_permission("admin-x", "system:backup")

    response = client.post(
        "/api/v1/permissions/check",
        headers=trainee_headers,
        json={"role": "trainee", "permission": "system:backup", "user_id": "admin-x"},
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.post(
        "/api/v1/permissions/check-action",
        headers=trainee_headers,
        json={"role": "trainee", "action": "backup", "resource": "system", "user_id": "admin-x"},
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_check_action_endpoint(client, trainee_headers):
    response = client.post(
        "/api/v1/permissions/check-action",
        headers=trainee_headers,
        json={"role": "trainee", "action": "delete", "resource": "note", "is_owner": True},
    )
    assert response.json()["allowed"] is True

    response = client.post(
        "/api/v1/permissions/check-action",
        headers=trainee_headers,
        json={"role": "trainee", "action": "delete", "resource": "note"},
    )
    assert response.json()["allowed"] is False


def test_require_action_dependency(client, store, make_user):
    """require_action accepts resource:action or its :all scope, custom grants included."""
    mini = FastAPI()
    mini.state.permission_store = store

    # Reuse the test database override installed by the client fixture
    mini.dependency_overrides.update(app.dependency_overrides)

    @mini.get("/activity")
    def read_activity(user: CurrentUser = Depends(require_action("read", "activity"))):
        return {"user_id": user.user_id}

    make_user("t1", role="trainee")
    make_user("i1", role="instructor")
    mini_client = TestClient(mini)

    assert mini_client.get("/activity", headers={"X-User-ID": "i1"}).json() == {"user_id": "i1"}
    assert mini_client.get("/activity", headers={"X-User-ID": "t1"}).status_code == status.HTTP_403_FORBIDDEN
    assert mini_client.get("/activity").status_code == status.HTTP_401_UNAUTHORIZED

    store.add_custom_permission("t1", "activity:read:all")
    assert mini_client.get("/activity", headers={"X-User-ID": "t1"}).status_code == status.HTTP_200_OK
