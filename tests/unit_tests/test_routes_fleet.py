"""Test suite for Fleet API endpoints."""

from fastapi import status

from tests.consts import API_BASE
from tests.consts import MANAGER_ID
from tests.consts import SUPERVISOR_ID
from tests.consts import USER_ID
from tests.consts import as_user


class TestDriverEndpoints:
    """Tests for /fleet/drivers."""

    def test_reviewer_lists_drivers(self, client):
        response = client.get(f"{API_BASE}/fleet/drivers", headers=as_user(SUPERVISOR_ID))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["Count"] == 2

    def test_requester_cannot_list_drivers(self, client):
        response = client.get(f"{API_BASE}/fleet/drivers", headers=as_user(USER_ID))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_create_driver(self, client):
        response = client.post(
            f"{API_BASE}/fleet/drivers", json={"name": "Nimal", "contact": "0711111111"}, headers=as_user(MANAGER_ID)
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["Driver"]["name"] == "Nimal"

    def test_reviewer_cannot_create_driver(self, client):
        response = client.post(
            f"{API_BASE}/fleet/drivers", json={"name": "Nimal", "contact": "0711111111"}, headers=as_user(SUPERVISOR_ID)
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_duplicate_driver(self, client):
        response = client.post(
            f"{API_BASE}/fleet/drivers", json={"name": "Sunil", "contact": "0771234567"}, headers=as_user(MANAGER_ID)
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error_type"] == "DuplicateEntity"

    def test_update_driver(self, client):
        response = client.put(
            f"{API_BASE}/fleet/drivers/D1",
            json={"name": "Sunil Perera", "contact": "0771234567"},
            headers=as_user(MANAGER_ID),
        )

        assert response.json()["Driver"]["name"] == "Sunil Perera"

    def test_delete_unknown_driver(self, client):
        response = client.delete(f"{API_BASE}/fleet/drivers/D404", headers=as_user(MANAGER_ID))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delete_assigned_driver(self, client, new_request_payload):
        created = client.post(f"{API_BASE}/requests", json=new_request_payload, headers=as_user(USER_ID))
        request_id = created.json()["Request"]["id"]
        client.post(
            f"{API_BASE}/requests/{request_id}/forward",
            json={"driver_id": "D1", "vehicle_id": "V1"},
            headers=as_user(SUPERVISOR_ID),
        )

        response = client.delete(f"{API_BASE}/fleet/drivers/D1", headers=as_user(MANAGER_ID))

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error_type"] == "EntityInUse"

    def test_delete_driver(self, client):
        response = client.delete(f"{API_BASE}/fleet/drivers/D2", headers=as_user(MANAGER_ID))

        assert response.status_code == status.HTTP_200_OK
        assert client.get(f"{API_BASE}/fleet/drivers", headers=as_user(MANAGER_ID)).json()["Count"] == 1


class TestVehicleEndpoints:
    """Tests for /fleet/vehicles."""

    def test_list_vehicles(self, client):
        response = client.get(f"{API_BASE}/fleet/vehicles", headers=as_user(MANAGER_ID))

        assert [v["vehicle_number"] for v in response.json()["Vehicles"]] == ["CAB-1234", "KX-9876"]

    def test_create_vehicle(self, client):
        response = client.post(
            f"{API_BASE}/fleet/vehicles",
            json={"vehicle_number": "NB-5555", "type": "Jeep"},
            headers=as_user(MANAGER_ID),
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["Vehicle"]["type"] == "Jeep"

    def test_duplicate_vehicle_number(self, client):
        response = client.post(
            f"{API_BASE}/fleet/vehicles",
            json={"vehicle_number": "CAB-1234", "type": "Bus"},
            headers=as_user(MANAGER_ID),
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_update_unknown_vehicle(self, client):
        response = client.put(
            f"{API_BASE}/fleet/vehicles/V404",
            json={"vehicle_number": "NB-1", "type": "Car"},
            headers=as_user(MANAGER_ID),
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delete_vehicle(self, client):
        response = client.delete(f"{API_BASE}/fleet/vehicles/V2", headers=as_user(MANAGER_ID))

        assert response.json()["Message"] == "Vehicle deleted: V2"
