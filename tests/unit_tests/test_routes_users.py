"""Test suite for User API endpoints."""

from fastapi import status

from tests.consts import API_BASE
from tests.consts import MANAGER_ID
from tests.consts import PD_ID
from tests.consts import SUPERVISOR_ID
from tests.consts import USER_ID
from tests.consts import as_user

NEW_USER = {
    "employee_number": "2001",
    "name": "New Person",
    "username": "newperson",
    "password": "secret",
    "role": "User",
    "pd_id": PD_ID,
}


class TestUserAccess:
    """Tests for approver-only gating."""

    def test_list_users(self, client):
        response = client.get(f"{API_BASE}/users", headers=as_user(MANAGER_ID))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["Count"] == 6
        assert all("password" not in user for user in data["Users"])

    def test_list_users_forbidden_for_other_roles(self, client):
        response = client.get(f"{API_BASE}/users", headers=as_user(SUPERVISOR_ID))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_list_users_requires_header(self, client):
        assert client.get(f"{API_BASE}/users").status_code == status.HTTP_401_UNAUTHORIZED

    def test_recommenders_open_to_any_user(self, client):
        response = client.get(f"{API_BASE}/users/recommenders", headers=as_user(USER_ID))

        assert response.status_code == status.HTTP_200_OK
        assert {user["id"] for user in response.json()["Users"]} == {"u-pd", "u-pd2"}


class TestUserManagement:
    """Tests for create, update, delete and password reset."""

    def test_create_user(self, client):
        response = client.post(f"{API_BASE}/users", json=NEW_USER, headers=as_user(MANAGER_ID))

        assert response.status_code == status.HTTP_201_CREATED
        user = response.json()["User"]
        assert user["username"] == "newperson"
        assert user["pd_id"] == PD_ID

        login = client.post(f"{API_BASE}/auth/login", json={"username": "newperson", "password": "secret"})
        assert login.json()["User"]["id"] == user["id"]

    def test_create_duplicate_username(self, client):
        response = client.post(
            f"{API_BASE}/users", json={**NEW_USER, "username": "supervisor"}, headers=as_user(MANAGER_ID)
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error_type"] == "DuplicateEntity"

    def test_create_requester_without_recommender(self, client):
        body = {key: value for key, value in NEW_USER.items() if key != "pd_id"}

        response = client.post(f"{API_BASE}/users", json=body, headers=as_user(MANAGER_ID))

        assert response.status_code == 422

    def test_create_forbidden_for_requester(self, client):
        response = client.post(f"{API_BASE}/users", json=NEW_USER, headers=as_user(USER_ID))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_update_user(self, client):
        body = {
            "employee_number": "1002",
            "name": "Shift Supervisor",
            "username": "supervisor",
            "role": "Supervisor",
        }

        response = client.put(f"{API_BASE}/users/{SUPERVISOR_ID}", json=body, headers=as_user(MANAGER_ID))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["User"]["name"] == "Shift Supervisor"

        # password omitted, so the old one still works
        login = client.post(f"{API_BASE}/auth/login", json={"username": "supervisor", "password": "supervisor"})
        assert login.status_code == status.HTTP_200_OK

    def test_update_unknown_user(self, client):
        response = client.put(f"{API_BASE}/users/ghost", json=NEW_USER, headers=as_user(MANAGER_ID))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delete_user(self, client):
        response = client.delete(f"{API_BASE}/users/{SUPERVISOR_ID}", headers=as_user(MANAGER_ID))

        assert response.status_code == status.HTTP_200_OK
        assert client.get(f"{API_BASE}/auth/me", headers=as_user(SUPERVISOR_ID)).status_code == 401

    def test_delete_recommender_with_requesters(self, client):
        response = client.delete(f"{API_BASE}/users/{PD_ID}", headers=as_user(MANAGER_ID))

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error_type"] == "EntityInUse"

    def test_reset_password(self, client):
        response = client.post(f"{API_BASE}/users/{USER_ID}/reset-password", headers=as_user(MANAGER_ID))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["NewPassword"] == "E1E1E1"

        login = client.post(f"{API_BASE}/auth/login", json={"username": "user", "password": "E1E1E1"})
        assert login.status_code == status.HTTP_200_OK
