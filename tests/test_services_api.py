from datetime import datetime, timedelta, timezone

from sstdesk.db.models import (
    ActivityLog,
    Notification,
    Service,
    ServiceDocument,
    ServiceStatusEnum as Status,
)
from tests.conftest import auth, make_service

REQUEST = {
    "serviceType": "COORDINADOR_ALTURAS",
    "description": "Trabajo en cubierta",
    "address": "Calle 1 # 2-3",
    "contactPerson": "Ana",
    "contactPhone": "3001112233",
    "suggestedDate": "2026-11-02T08:00:00+00:00",
}


class TestRequest:
    def test_client_creates_pending_service(self, client, repo, users, enqueued):
        r = client.post("/api/services/request", json=REQUEST, headers=auth(users.client))
        assert r.status_code == 201
        service = r.json()["service"]
        assert service["status"] == "PENDING"
        assert service["employeeId"] is None
        assert service["startDate"] == service["suggestedDate"]

        # адмін отримав нотифікацію, подія пішла в чергу
        notes = repo.all(Notification)
        assert [n.user_id for n in notes] == [users.admin.id]
        assert notes[0].type == "service_requested"
        assert enqueued[0][0] == "service.requested"

    def test_only_clients_request(self, client, users):
        r = client.post("/api/services/request", json=REQUEST, headers=auth(users.employee))
        assert r.status_code == 403

    def test_unknown_type_is_400(self, client, users):
        r = client.post(
            "/api/services/request",
            json={**REQUEST, "serviceType": "ASTRONAUTA"},
            headers=auth(users.client),
        )
        assert r.status_code == 400


class TestAssign:
    def test_admin_assigns(self, client, repo, users, enqueued):
        s = make_service(repo, client=users.client)
        r = client.post(
            "/api/services/assign",
            json={"serviceId": s.id, "employeeId": users.employee.id},
            headers=auth(users.admin),
        )
        assert r.status_code == 200
        assert s.status == Status.assigned
        assert s.employee_id == users.employee.id
        assert {n.user_id for n in repo.all(Notification)} == {users.employee.id, users.client.id}
        assert [e.action for e in repo.all(ActivityLog)] == ["assigned_service"]
        assert enqueued[-1][0] == "service.assigned"

    def test_second_assignment_conflicts(self, client, repo, users):
        s = make_service(repo, client=users.client, employee=users.employee, status=Status.assigned)
        r = client.post(
            "/api/services/assign",
            json={"serviceId": s.id, "employeeId": users.other_employee.id},
            headers=auth(users.admin),
        )
        assert r.status_code == 409
        assert r.json()["code"] == "INVALID_TRANSITION"
        assert s.employee_id == users.employee.id

    def test_inactive_employee_not_found(self, client, repo, users):
        users.employee.is_active = False
        s = make_service(repo, client=users.client)
        r = client.post(
            "/api/services/assign",
            json={"serviceId": s.id, "employeeId": users.employee.id},
            headers=auth(users.admin),
        )
        assert r.status_code == 404
        assert s.status == Status.pending

    def test_employee_cannot_assign(self, client, repo, users):
        s = make_service(repo, client=users.client)
        r = client.post(
            "/api/services/assign",
            json={"serviceId": s.id, "employeeId": users.employee.id},
            headers=auth(users.employee),
        )
        assert r.status_code == 403


class TestExecution:
    def test_start_and_complete(self, client, repo, users, enqueued):
        s = make_service(repo, client=users.client, employee=users.employee, status=Status.assigned)
        headers = auth(users.employee)

        r = client.post("/api/services/start", json={"serviceId": s.id}, headers=headers)
        assert r.status_code == 200
        assert r.json()["service"]["status"] == "IN_PROGRESS"

        r = client.post(
            "/api/services/complete",
            json={"serviceId": s.id, "observations": "Sin novedad"},
            headers=headers,
        )
        assert r.status_code == 200
        assert s.status == Status.completed
        assert s.completed_at is not None
        assert s.observations == "Sin novedad"
        assert [e for e, _ in enqueued] == ["service.started", "service.completed"]

    def test_complete_before_start_is_rejected(self, client, repo, users):
        s = make_service(repo, client=users.client, employee=users.employee, status=Status.assigned)
        r = client.post("/api/services/complete", json={"serviceId": s.id}, headers=auth(users.employee))
        assert r.status_code == 409
        assert s.status == Status.assigned
        assert s.completed_at is None

    def test_other_employee_cannot_start(self, client, repo, users):
        s = make_service(repo, client=users.client, employee=users.employee, status=Status.assigned)
        r = client.post("/api/services/start", json={"serviceId": s.id}, headers=auth(users.other_employee))
        assert r.status_code == 403
        assert s.status == Status.assigned


class TestListing:
    def test_employee_sees_only_own_assigned(self, client, repo, users):
        mine = make_service(repo, client=users.client, employee=users.employee, status=Status.assigned)
        make_service(repo, client=users.client, employee=users.other_employee, status=Status.assigned)
        make_service(repo, client=users.client)

        r = client.get("/api/services/my-services?status=ASSIGNED", headers=auth(users.employee))
        assert r.status_code == 200
        body = r.json()
        assert [s["id"] for s in body["services"]] == [mine.id]
        assert body["stats"]["total"] == 1

    def test_queue_sorted_by_start_date(self, client, repo, users):
        now = datetime.now(timezone.utc)
        late = make_service(repo, client=users.client, start_date=now + timedelta(days=5))
        soon = make_service(repo, client=users.client, start_date=now + timedelta(days=1))
        r = client.get("/api/services/my-services?status=PENDING", headers=auth(users.admin))
        assert [s["id"] for s in r.json()["services"]] == [soon.id, late.id]

    def test_history_is_fifty_newest(self, client, repo, users):
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        created = [
            make_service(
                repo,
                client=users.client,
                employee=users.employee,
                status=Status.completed,
                completed_at=base + timedelta(hours=i),
            )
            for i in range(60)
        ]
        r = client.get("/api/services/my-services?status=COMPLETED", headers=auth(users.client))
        ids = [s["id"] for s in r.json()["services"]]
        assert len(ids) == 50
        assert ids == [s.id for s in reversed(created)][:50]
        # лічильники рахують усе, не тільки показане
        assert r.json()["stats"]["completed"] == 60

    def test_foreign_service_looks_missing(self, client, repo, users):
        s = make_service(repo, client=users.client)
        assert client.get(f"/api/services/{s.id}", headers=auth(users.other_client)).status_code == 404
        r = client.get(f"/api/services/{s.id}", headers=auth(users.client))
        assert r.status_code == 200
        assert r.json()["service"]["documents"] == []


class TestDocumentation:
    def test_instances_are_numbered(self, client, repo, users):
        s = make_service(repo, client=users.client, employee=users.employee, status=Status.in_progress)
        headers = auth(users.employee)
        for expected in (1, 2):
            r = client.post(
                "/api/services/documents/create",
                json={"serviceId": s.id, "documentType": "ATS", "content": {"ok": True}},
                headers=headers,
            )
            assert r.status_code == 201
            assert r.json()["instance"]["instanceNumber"] == expected

        r = client.get(f"/api/services/documents/instances?serviceId={s.id}", headers=auth(users.client))
        assert r.json()["totalInstances"] == 2

    def test_documents_only_while_in_progress(self, client, repo, users):
        s = make_service(repo, client=users.client, employee=users.employee, status=Status.assigned)
        r = client.post(
            "/api/services/documents/create",
            json={"serviceId": s.id, "documentType": "ATS"},
            headers=auth(users.employee),
        )
        assert r.status_code == 409
        assert repo.all(ServiceDocument) == []

    def test_instances_need_service_id(self, client, users):
        r = client.get("/api/services/documents/instances", headers=auth(users.admin))
        assert r.status_code == 400

    def test_delete_instance_by_other_employee(self, client, repo, users):
        s = make_service(repo, client=users.client, employee=users.employee, status=Status.in_progress)
        doc = ServiceDocument(service_id=s.id, document_type="ATS", instance_number=1, content={})
        repo.add(doc)
        r = client.delete(
            f"/api/services/documents/instances?instanceId={doc.id}", headers=auth(users.other_employee)
        )
        assert r.status_code == 403
        r = client.delete(f"/api/services/documents/instances?instanceId={doc.id}", headers=auth(users.employee))
        assert r.status_code == 200
        assert repo.all(ServiceDocument) == []

    def test_inspection_upsert_and_progress(self, client, repo, users):
        s = make_service(repo, client=users.client, employee=users.employee, status=Status.in_progress)
        headers = auth(users.employee)
        for passed in (False, True):
            r = client.post(
                "/api/services/inspections/create",
                json={"serviceId": s.id, "inspectionType": "ARNES", "passed": passed},
                headers=headers,
            )
            assert r.status_code == 200
        assert r.json()["inspection"]["passed"] is True

        r = client.get(f"/api/services/{s.id}/progress", headers=headers)
        progress = r.json()["progress"]
        assert progress["totalRequired"] == 7
        assert progress["inspectionsProgress"] == 25
        assert progress["missingInspections"] == ["ESLINGA", "LINEA_VIDA", "ESCALERA"]

    def test_configured_service_uses_own_requirements(self, client, repo, users):
        s = make_service(repo, client=users.client)
        r = client.post(
            f"/api/services/{s.id}/configure",
            json={"requiredDocs": ["ATS"], "requiredInspections": [], "notes": "solo ATS"},
            headers=auth(users.admin),
        )
        assert r.status_code == 200
        r = client.get(f"/api/services/{s.id}/progress", headers=auth(users.admin))
        assert r.json()["progress"]["requiredDocuments"] == ["ATS"]
        assert "[CONFIG] solo ATS" in repo.all(Service)[0].observations
