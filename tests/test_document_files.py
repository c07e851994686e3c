import pytest

from sstdesk.core.config import settings
from sstdesk.db.models import ActivityLog, ServiceDocument, ServiceStatusEnum as Status
from tests.conftest import auth, make_service

PDF_BYTES = b"%PDF-1.4\n% informe firmado\n"


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path))
    return tmp_path


@pytest.fixture
def instance(repo, users):
    s = make_service(repo, client=users.client, employee=users.employee, status=Status.in_progress)
    doc = ServiceDocument(
        service_id=s.id,
        document_type="ATS",
        instance_number=1,
        content={"actividad": "Cambio de teja", "riesgos": ["Caída", "Corte"], "firmado": True},
    )
    repo.add(doc)
    return doc


def _upload(client, user, doc, *, content=PDF_BYTES, mime="application/pdf", document_type="ATS"):
    return client.post(
        "/api/services/documents/upload-file",
        data={"instanceId": doc.id, "documentType": document_type},
        files={"file": ("informe.pdf", content, mime)},
        headers=auth(user),
    )


class TestUpload:
    def test_assigned_employee_attaches_pdf(self, client, repo, users, instance, upload_dir):
        r = _upload(client, users.employee, instance)
        assert r.status_code == 200
        body = r.json()
        assert body["fileName"].startswith(f"ATS_{instance.id}_")
        assert body["fileUrl"] == f"/uploads/documents/{body['fileName']}"
        assert instance.file_url == body["fileUrl"]
        assert (upload_dir / body["fileName"]).read_bytes() == PDF_BYTES
        (log,) = [a for a in repo.all(ActivityLog) if a.action == "uploaded_document_file"]
        assert log.details["fileSize"] == len(PDF_BYTES)

        r = client.get(f"/api/services/documents/file?instanceId={instance.id}", headers=auth(users.client))
        assert r.status_code == 200
        assert r.content == PDF_BYTES

    def test_other_types_rejected(self, client, users, instance, upload_dir):
        r = _upload(client, users.employee, instance, mime="image/png")
        assert r.status_code == 400
        assert r.json()["detail"] == "Solo se permiten archivos .doc, .docx o .pdf"
        assert list(upload_dir.iterdir()) == []

    def test_size_limit(self, client, users, instance, upload_dir, monkeypatch):
        monkeypatch.setattr(settings, "max_upload_mb", 1)
        r = _upload(client, users.employee, instance, content=b"0" * (1024 * 1024 + 1))
        assert r.status_code == 400
        assert r.json()["detail"] == "El archivo no debe exceder 1MB"
        assert instance.file_url is None

    def test_only_assigned_employee(self, client, users, instance, upload_dir):
        r = _upload(client, users.other_employee, instance)
        assert r.status_code == 403
        assert _upload(client, users.client, instance).status_code == 403

    def test_type_must_match_instance(self, client, users, instance, upload_dir):
        r = _upload(client, users.employee, instance, document_type="PERMISO_TRABAJO")
        assert r.status_code == 400

    def test_missing_fields(self, client, users, upload_dir):
        r = client.post(
            "/api/services/documents/upload-file",
            files={"file": ("informe.pdf", PDF_BYTES, "application/pdf")},
            headers=auth(users.employee),
        )
        assert r.status_code == 400

    def test_external_url_is_not_served(self, client, users, instance, upload_dir):
        instance.file_url = "/uploads/documents/../../etc/passwd"
        r = client.get(f"/api/services/documents/file?instanceId={instance.id}", headers=auth(users.employee))
        assert r.status_code == 404

    def test_foreign_client_cannot_download(self, client, users, instance, upload_dir):
        _upload(client, users.employee, instance)
        r = client.get(f"/api/services/documents/file?instanceId={instance.id}", headers=auth(users.other_client))
        assert r.status_code == 404


class TestPdf:
    def test_single_instance(self, client, users, instance):
        r = client.post(
            "/api/services/documents/generate-pdf",
            json={"instanceId": instance.id, "documentLabel": "ATS Cubierta"},
            headers=auth(users.client),
        )
        assert r.status_code == 200
        assert r.headers["content-type"] == "application/pdf"
        assert r.content.startswith(b"%PDF")
        assert 'filename="ATS_Cubierta_' in r.headers["content-disposition"]

    def test_single_instance_hidden_from_others(self, client, users, instance):
        r = client.post(
            "/api/services/documents/generate-pdf",
            json={"instanceId": instance.id},
            headers=auth(users.other_client),
        )
        assert r.status_code == 404

    def test_consolidated(self, client, repo, users, instance):
        repo.add(ServiceDocument(service_id=instance.service_id, document_type="ATS", instance_number=2, content={}))
        r = client.post(
            "/api/services/documents/generate-pdf-from-template",
            json={"serviceId": instance.service_id, "documentType": "ATS", "documentLabel": "ATS"},
            headers=auth(users.employee),
        )
        assert r.status_code == 200
        assert r.content.startswith(b"%PDF")
        assert "ATS_CONSOLIDADO_" in r.headers["content-disposition"]

    def test_consolidated_without_instances(self, client, repo, users, instance):
        r = client.post(
            "/api/services/documents/generate-pdf-from-template",
            json={"serviceId": instance.service_id, "documentType": "PERMISO_ALTURAS"},
            headers=auth(users.admin),
        )
        assert r.status_code == 400
        assert r.json()["detail"] == "No hay instancias para este documento"
