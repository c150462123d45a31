import pytest

import settings


@pytest.fixture
def location(admin_client):
    return admin_client.post("/machine-locations/", json={"name": "Office"}).json()


@pytest.fixture
def machine(admin_client, fundraiser, location):
    response = admin_client.post(
        "/machines/",
        json={
            "fundraiserId": fundraiser.id,
            "machineName": "Verifone 1",
            "machineNumber": "VF-001",
            "batchNumber": "B100",
            "locationId": location["id"],
            "status": "assigned",
        },
    )
    assert response.status_code == 200, response.text
    return response.json()


class TestMachineLocations:
    def test_list_is_public(self, client, location):
        assert client.get("/machine-locations/").json()[0]["name"] == "Office"

    def test_create_is_admin_only(self, user_client):
        assert user_client.post("/machine-locations/", json={"name": "Home"}).status_code == 403

    def test_duplicate_name_conflicts(self, admin_client, location):
        response = admin_client.post("/machine-locations/", json={"name": "Office"})

        assert response.status_code == 409

    def test_name_is_required(self, admin_client):
        response = admin_client.post("/machine-locations/", json={"description": "x"})

        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"] == ["body", "name"]


class TestMachines:
    def test_create_defaults_to_available(self, admin_client):
        body = admin_client.post(
            "/machines/", json={"machineName": "Spare", "machineNumber": "SP-1"}
        ).json()

        assert body["status"] == "available"
        assert body["fundraiserId"] is None

    def test_machine_number_is_unique(self, admin_client, machine):
        response = admin_client.post(
            "/machines/", json={"machineName": "Other", "machineNumber": "VF-001"}
        )

        assert response.status_code == 409

    def test_list_is_admin_only(self, admin_client, user_client, machine):
        assert [m["id"] for m in admin_client.get("/machines/").json()] == [machine["id"]]
        assert user_client.get("/machines/").status_code == 403

    def test_protected_lookups(self, user_client, machine, fundraiser):
        assert user_client.get(f"/machines/{machine['id']}").json()["machineNumber"] == "VF-001"
        by_fundraiser = user_client.get(f"/machines/by-fundraiser/{fundraiser.id}").json()
        assert [m["id"] for m in by_fundraiser] == [machine["id"]]
        assert user_client.get("/machines/by-fundraiser/9999").json() == []
        assert user_client.get("/machines/9999").json() is None

    def test_unassign_leaves_other_fields(self, admin_client, machine):
        body = admin_client.patch(f"/machines/{machine['id']}", json={"fundraiserId": None}).json()

        assert body["fundraiserId"] is None
        for field in ("machineName", "machineNumber", "status", "batchNumber", "locationId"):
            assert body[field] == machine[field]

    def test_batch_date_can_be_set_and_cleared(self, admin_client, machine):
        body = admin_client.patch(
            f"/machines/{machine['id']}", json={"batchDate": "2024-05-01T10:00:00"}
        ).json()
        assert body["batchDate"].startswith("2024-05-01T10:00:00")

        body = admin_client.patch(f"/machines/{machine['id']}", json={"batchDate": None}).json()
        assert body["batchDate"] is None

    def test_batch_date_is_stored_in_utc(self, admin_client, machine):
        response = admin_client.patch(
            f"/machines/{machine['id']}", json={"batchDate": "2024-05-01T12:00:00+02:00"}
        )

        assert response.status_code == 200
        assert response.json()["batchDate"].startswith("2024-05-01T10:00:00")

    def test_create_with_naive_batch_date(self, admin_client):
        response = admin_client.post(
            "/machines/",
            json={
                "machineName": "Spare",
                "machineNumber": "VF-900",
                "batchDate": "2024-05-01T10:00:00",
            },
        )

        assert response.status_code == 200
        assert response.json()["batchDate"].startswith("2024-05-01T10:00:00")

    def test_status_cannot_be_null(self, admin_client, machine):
        response = admin_client.patch(f"/machines/{machine['id']}", json={"status": None})

        assert response.status_code == 422

    def test_updates_to_different_fields_both_survive(self, admin_client, machine):
        # Each update writes only its own column: last writer wins per field
        admin_client.patch(f"/machines/{machine['id']}", json={"status": "returned"})
        admin_client.patch(f"/machines/{machine['id']}", json={"batchNumber": "B123"})

        body = admin_client.get(f"/machines/{machine['id']}").json()
        assert body["status"] == "returned"
        assert body["batchNumber"] == "B123"

    def test_same_field_last_writer_wins(self, admin_client, machine):
        admin_client.patch(f"/machines/{machine['id']}", json={"batchNumber": "first"})
        admin_client.patch(f"/machines/{machine['id']}", json={"batchNumber": "second"})

        assert admin_client.get(f"/machines/{machine['id']}").json()["batchNumber"] == "second"

    def test_any_status_change_allowed_by_default(self, admin_client, machine):
        response = admin_client.patch(f"/machines/{machine['id']}", json={"status": "available"})
        response = admin_client.patch(f"/machines/{machine['id']}", json={"status": "returned"})

        assert response.status_code == 200
        assert response.json()["status"] == "returned"

    def test_transitions_enforced_when_enabled(self, admin_client, machine, monkeypatch):
        monkeypatch.setattr("settings.ENFORCE_STATUS_TRANSITIONS", True)
        admin_client.patch(f"/machines/{machine['id']}", json={"status": "inactive"})

        response = admin_client.patch(f"/machines/{machine['id']}", json={"status": "returned"})

        assert response.status_code == 409
        assert response.json()["detail"] == "Cannot change status from inactive to returned"

    def test_update_missing_is_null(self, admin_client):
        assert admin_client.patch("/machines/9999", json={"batchNumber": "B"}).json() is None


class TestReturnNotification:
    def test_return_notifies_admin(self, admin_client, machine, dispatched):
        admin_client.patch(f"/machines/{machine['id']}", json={"status": "returned"})

        assert dispatched == [
            (
                "notify_admin_machine_returned",
                (settings.ADMIN_EMAIL, "Fay Raiser", "Verifone 1", "B100"),
            )
        ]

    def test_other_changes_do_not_notify(self, admin_client, machine, dispatched):
        admin_client.patch(f"/machines/{machine['id']}", json={"batchNumber": "B2"})

        assert dispatched == []
