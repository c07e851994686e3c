from datetime import datetime, timezone

from sstdesk.db.models import RoleEnum as Role, ServiceConfiguration, ServiceStatusEnum as Status
from tests.conftest import auth, make_service, make_user


class TestConfiguration:
    def test_required_documents_is_public(self, client):
        r = client.get("/api/configuration/required-documents?serviceType=SUPERVISOR_ESPACIOS_CONFINADOS")
        assert r.status_code == 200
        body = r.json()
        assert body["requiredDocuments"] == ["CHARLA_SEGURIDAD", "ATS", "PERMISO_ESPACIOS_CONFINADOS"]
        assert body["totalRequired"] == 7

    def test_required_documents_needs_type(self, client):
        r = client.get("/api/configuration/required-documents")
        assert r.status_code == 400
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_save_and_delete_service_type(self, client, repo, users):
        headers = auth(users.admin)
        payload = {"serviceType": "OTRO", "requiredDocs": ["ATS"], "requiredInspections": ["ARNES"]}
        assert client.post("/api/configuration/service-types", json=payload, headers=headers).status_code == 200
        payload["requiredDocs"] = []
        client.post("/api/configuration/service-types", json=payload, headers=headers)
        configs = repo.all(ServiceConfiguration)
        assert len(configs) == 1 and configs[0].required_docs == []

        r = client.get("/api/configuration/required-documents?serviceType=OTRO")
        assert r.json()["totalRequired"] == 1

        assert client.delete("/api/configuration/service-types?serviceType=OTRO", headers=headers).status_code == 200
        assert client.delete("/api/configuration/service-types?serviceType=OTRO", headers=headers).status_code == 404

    def test_service_types_admin_only(self, client, users):
        assert client.get("/api/configuration/service-types", headers=auth(users.employee)).status_code == 403


class TestEmployees:
    def test_client_cannot_list_employees(self, client, users):
        assert client.get("/api/employees/available", headers=auth(users.client)).status_code == 403
        assert client.get("/api/employees/available").status_code == 401

    def test_available_are_active_sorted(self, client, repo, users):
        make_user(repo, email="z@sst.com", name="Zoe", role=Role.employee, active=False)
        r = client.get("/api/employees/available", headers=auth(users.admin))
        assert [e["name"] for e in r.json()["employees"]] == ["Beatriz", "Carlos"]

    def test_all_with_counts(self, client, repo, users):
        make_user(repo, email="z@sst.com", name="Abel", role=Role.employee, active=False)
        make_service(repo, client=users.client, employee=users.employee, status=Status.assigned)
        r = client.get("/api/employees/all", headers=auth(users.admin))
        body = r.json()
        assert [e["name"] for e in body["employees"]] == ["Beatriz", "Carlos", "Abel"]
        assert body["employees"][1]["servicesCount"] == 1
        assert (body["activeCount"], body["inactiveCount"]) == (2, 1)

    def test_toggle_and_stats(self, client, repo, users):
        headers = auth(users.admin)
        r = client.patch(f"/api/employees/{users.employee.id}/toggle", json={"active": False}, headers=headers)
        assert r.status_code == 200
        assert users.employee.is_active is False
        r = client.patch(f"/api/employees/{users.client.id}/toggle", json={"active": False}, headers=headers)
        assert r.status_code == 400

        make_service(repo, client=users.client, employee=users.employee, status=Status.in_progress)
        r = client.get(f"/api/employees/{users.employee.id}/stats", headers=headers)
        stats = r.json()["stats"]
        assert stats["totalServices"] == 1 and stats["inProgressServices"] == 1
        assert stats["servicesByType"] == {"COORDINADOR_ALTURAS": 1}


class TestUsers:
    def test_profile_patch_only_touches_sent_fields(self, client, users):
        r = client.patch("/api/users/profile", json={"name": "María José"}, headers=auth(users.client))
        assert r.status_code == 200
        assert r.json()["user"]["name"] == "María José"
        assert users.client.phone == "3000000000"

    def test_blank_name_is_rejected(self, client, users):
        r = client.patch("/api/users/profile", json={"name": "   "}, headers=auth(users.client))
        assert r.status_code == 400
        assert users.client.name == "María"

    def test_profile_values_are_trimmed(self, client, users):
        r = client.patch(
            "/api/users/profile", json={"name": "  Ana  ", "phone": " 3115550000 "}, headers=auth(users.client)
        )
        assert r.status_code == 200
        assert (users.client.name, users.client.phone) == ("Ana", "3115550000")

    def test_blank_phone_clears_it(self, client, users):
        client.patch("/api/users/profile", json={"phone": "  "}, headers=auth(users.client))
        assert users.client.phone is None

    def test_change_password_checks_current(self, client, users):
        headers = auth(users.client)
        r = client.post(
            "/api/users/change-password",
            json={"currentPassword": "wrong", "newPassword": "nuevo123"},
            headers=headers,
        )
        assert r.status_code == 400

    def test_register_employee(self, client, users):
        payload = {"name": "Luis", "email": "luis@sst.com", "password": "secreto1", "phone": "3101234567"}
        assert client.post("/api/users/register-employee", json=payload, headers=auth(users.client)).status_code == 403
        r = client.post("/api/users/register-employee", json=payload, headers=auth(users.admin))
        assert r.status_code == 201
        assert r.json()["employee"]["role"] == "EMPLEADO"

    def test_clients_list_newest_first(self, client, repo, users):
        users.client.created_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
        users.other_client.created_at = datetime(2026, 2, 1, tzinfo=timezone.utc)
        r = client.get("/api/users/clients", headers=auth(users.admin))
        assert [c["name"] for c in r.json()["clients"]] == ["Pedro", "María"]


def test_unexpected_error_is_generic_500(client, repo, users, monkeypatch):
    async def boom():
        raise RuntimeError("db exploded")

    monkeypatch.setattr(repo, "list_configurations", boom)
    r = client.get("/api/configuration/service-types", headers=auth(users.admin))
    assert r.status_code == 500
    assert r.json()["code"] == "UPSTREAM_FAILURE"
    assert "exploded" not in r.text
