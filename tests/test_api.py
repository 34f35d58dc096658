"""
Tests for the HTTP layer: authentication, authorization and error mapping
"""
import pytest

from app.models.audit_log import AuditLog
from app.models.document import Document
from app.models.enums import UserRole
from app.models.user import User

from conftest import PASSWORD


@pytest.fixture
def setup(make_opd, make_user, make_document):
    disdik = make_opd("DISDIK")
    dinkes = make_opd("DINKES")
    users = {
        "admin": make_user("admin", UserRole.ADMIN),
        "pengelola": make_user("pengelola_disdik", UserRole.PENGELOLA, disdik),
        "staf": make_user("staf_disdik", UserRole.STAF, disdik),
        "other": make_user("pengelola_dinkes", UserRole.PENGELOLA, dinkes),
    }
    own_private = make_document(disdik, users["pengelola"], "Data Guru", is_public=False)
    other_private = make_document(dinkes, users["other"], "Rekap Pasien", is_public=False)
    return {"disdik": disdik, "dinkes": dinkes, "users": users,
            "own_private": own_private, "other_private": other_private}


def _upload(client, headers, **form):
    data = {"title": "Surat Keputusan", "tags": "sk,2026", "is_public": "false"}
    data.update({k: str(v) for k, v in form.items()})
    files = {"file": ("sk.pdf", b"%PDF-1.4 isi dokumen", "application/pdf")}
    return client.post("/documents", data=data, files=files, headers=headers)


# --- auth ---

def test_login_returns_token(client, setup):
    """Test valid credentials return a usable bearer token"""
    response = client.post("/auth/login", json={"username": "staf_disdik", "password": PASSWORD})
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["role"] == "staf"
    assert "password_hash" not in body["user"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["username"] == "staf_disdik"


def test_login_wrong_password(client, setup):
    """Test a bad password is a 401"""
    response = client.post("/auth/login", json={"username": "staf_disdik", "password": "salah"})
    assert response.status_code == 401


def test_inactive_user_cannot_login_or_use_token(client, db, setup, headers):
    """Test a deactivated user loses access"""
    staf = setup["users"]["staf"]
    staf.is_active = False
    db.commit()

    response = client.post("/auth/login", json={"username": "staf_disdik", "password": PASSWORD})
    assert response.status_code == 401
    assert client.get("/auth/me", headers=headers(staf)).status_code == 401


def test_missing_token_rejected(client, setup):
    """Test protected routes need a bearer token"""
    assert client.get("/documents").status_code in (401, 403)


def test_garbage_token_rejected(client, setup):
    """Test an invalid token is a 401"""
    response = client.get("/documents", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


# --- documents ---

def test_list_documents_respects_include_private(client, setup, headers):
    """Test the include_private flag widens the staf view to their own OPD"""
    staf = setup["users"]["staf"]
    assert client.get("/documents", headers=headers(staf)).json() == []

    response = client.get("/documents", params={"include_private": True}, headers=headers(staf))
    assert [d["title"] for d in response.json()] == ["Data Guru"]


def test_get_document_forbidden_outside_scope(client, setup, headers):
    """Test reading another OPD's private document is a 403"""
    staf = setup["users"]["staf"]
    assert client.get(f"/documents/{setup['own_private'].id}", headers=headers(staf)).status_code == 200
    assert client.get(f"/documents/{setup['other_private'].id}", headers=headers(staf)).status_code == 403


def test_get_missing_document_is_404(client, setup, headers):
    """Test NotFoundError maps to 404"""
    response = client.get("/documents/9999", headers=headers(setup["users"]["admin"]))
    assert response.status_code == 404
    assert "9999" in response.json()["detail"]


def test_search_endpoint(client, setup, headers):
    """Test search returns items, total and the page window"""
    admin = setup["users"]["admin"]
    response = client.get(
        "/documents/search",
        params={"q": "rekap", "include_private": True, "limit": 1},
        headers=headers(admin),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["page"] == 1
    assert body["limit"] == 1
    assert body["items"][0]["title"] == "Rekap Pasien"


@pytest.mark.parametrize("params", [{"limit": 101}, {"limit": 0}, {"page": 0}])
def test_search_rejects_bad_pagination(client, setup, headers, params):
    """Test out-of-range pagination is a 422"""
    response = client.get("/documents/search", params=params, headers=headers(setup["users"]["admin"]))
    assert response.status_code == 422


def test_pengelola_uploads_to_own_opd(client, db, setup, headers, upload_dir):
    """Test an upload stores the file and defaults to the uploader's OPD"""
    pengelola = setup["users"]["pengelola"]
    response = _upload(client, headers(pengelola))
    assert response.status_code == 201
    body = response.json()
    assert body["opd_id"] == setup["disdik"].id
    assert body["uploaded_by"] == pengelola.id
    assert body["document_type"] == "pdf"
    assert body["file_name"] == "sk.pdf"
    assert body["file_size"] == len(b"%PDF-1.4 isi dokumen")
    assert (upload_dir / body["file_path"]).read_bytes() == b"%PDF-1.4 isi dokumen"

    logs = db.query(AuditLog).filter(AuditLog.entity_type == "document", AuditLog.action == "created").all()
    assert [log.entity_id for log in logs] == [str(body["id"])]


def test_pengelola_cannot_upload_to_other_opd(client, setup, headers, upload_dir):
    """Test pengelola upload is limited to their own OPD"""
    response = _upload(client, headers(setup["users"]["pengelola"]), opd_id=setup["dinkes"].id)
    assert response.status_code == 403
    assert not upload_dir.exists() or not any(upload_dir.iterdir())


def test_staf_cannot_upload(client, setup, headers):
    """Test staf has no upload capability"""
    assert _upload(client, headers(setup["users"]["staf"])).status_code == 403


def test_admin_uploads_to_any_opd(client, setup, headers):
    """Test admin may target any OPD but must name it"""
    admin = setup["users"]["admin"]
    assert _upload(client, headers(admin)).status_code == 422

    response = _upload(client, headers(admin), opd_id=setup["dinkes"].id, is_public="true")
    assert response.status_code == 201
    assert response.json()["is_public"] is True


def test_upload_unsupported_type(client, setup, headers):
    """Test files outside pdf/image/word/excel are rejected"""
    files = {"file": ("notes.txt", b"plain text", "text/plain")}
    response = client.post(
        "/documents",
        data={"title": "Catatan"},
        files=files,
        headers=headers(setup["users"]["pengelola"]),
    )
    assert response.status_code == 422


def test_upload_blank_title(client, setup, headers, upload_dir):
    """Test a whitespace-only title is a 422 and nothing is stored"""
    response = _upload(client, headers(setup["users"]["pengelola"]), title="   ")
    assert response.status_code == 422
    assert not upload_dir.exists() or not any(upload_dir.iterdir())


def test_download_document(client, setup, headers):
    """Test the stored bytes come back for a permitted reader"""
    pengelola = setup["users"]["pengelola"]
    document_id = _upload(client, headers(pengelola)).json()["id"]

    response = client.get(f"/documents/{document_id}/download", headers=headers(setup["users"]["staf"]))
    assert response.status_code == 200
    assert response.content == b"%PDF-1.4 isi dokumen"

    response = client.get(f"/documents/{document_id}/download", headers=headers(setup["users"]["other"]))
    assert response.status_code == 403


def test_edit_permissions(client, setup, headers):
    """Test only admin and the owning pengelola may edit"""
    document_id = setup["own_private"].id
    payload = {"description": "diperbarui"}

    assert client.patch(f"/documents/{document_id}", json=payload,
                        headers=headers(setup["users"]["staf"])).status_code == 403
    assert client.patch(f"/documents/{document_id}", json=payload,
                        headers=headers(setup["users"]["other"])).status_code == 403

    response = client.patch(f"/documents/{document_id}", json=payload,
                            headers=headers(setup["users"]["pengelola"]))
    assert response.status_code == 200
    assert response.json()["description"] == "diperbarui"
    assert response.json()["title"] == "Data Guru"


def test_pengelola_cannot_move_document_out_of_opd(client, setup, headers):
    """Test reassigning a document to another OPD needs rights on the target"""
    document_id = setup["own_private"].id
    response = client.patch(f"/documents/{document_id}", json={"opd_id": setup["dinkes"].id},
                            headers=headers(setup["users"]["pengelola"]))
    assert response.status_code == 403

    response = client.patch(f"/documents/{document_id}", json={"opd_id": setup["dinkes"].id},
                            headers=headers(setup["users"]["admin"]))
    assert response.status_code == 200
    assert response.json()["opd_id"] == setup["dinkes"].id


def test_edit_rejects_null_title(client, setup, headers):
    """Test clearing a required field is a validation error"""
    response = client.patch(f"/documents/{setup['own_private'].id}", json={"title": None},
                            headers=headers(setup["users"]["admin"]))
    assert response.status_code == 422


def test_delete_document_releases_file(client, db, setup, headers, upload_dir):
    """Test the owning pengelola deletes the row and its stored file"""
    pengelola = setup["users"]["pengelola"]
    body = _upload(client, headers(pengelola)).json()

    assert client.delete(f"/documents/{body['id']}", headers=headers(setup["users"]["staf"])).status_code == 403

    response = client.delete(f"/documents/{body['id']}", headers=headers(pengelola))
    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert db.query(Document).filter(Document.id == body["id"]).count() == 0
    assert not (upload_dir / body["file_path"]).exists()


# --- OPDs ---

def test_opd_management_is_admin_only(client, setup, headers):
    """Test non-admins cannot create OPDs"""
    payload = {"name": "Dinas Sosial", "code": "DINSOS"}
    assert client.post("/opds", json=payload, headers=headers(setup["users"]["pengelola"])).status_code == 403

    response = client.post("/opds", json=payload, headers=headers(setup["users"]["admin"]))
    assert response.status_code == 201
    assert response.json()["code"] == "DINSOS"


def test_duplicate_opd_code_is_409(client, setup, headers):
    """Test ConflictError maps to 409"""
    response = client.post("/opds", json={"name": "Dinas Pendidikan Baru", "code": "DISDIK"},
                           headers=headers(setup["users"]["admin"]))
    assert response.status_code == 409


def test_delete_opd_reports_reason(client, setup, headers):
    """Test a blocked deletion carries the reason"""
    response = client.delete(f"/opds/{setup['disdik'].id}", headers=headers(setup["users"]["admin"]))
    assert response.status_code == 409
    assert response.json()["reason"] == "has_users"


def test_delete_empty_opd(client, setup, make_opd, headers):
    """Test an OPD with no dependents can be deleted"""
    empty = make_opd("DINSOS")
    response = client.delete(f"/opds/{empty.id}", headers=headers(setup["users"]["admin"]))
    assert response.status_code == 200
    assert client.get(f"/opds/{empty.id}", headers=headers(setup["users"]["staf"])).status_code == 404


# --- users ---

def test_user_management_is_admin_only(client, setup, headers):
    """Test pengelola cannot list users"""
    assert client.get("/users", headers=headers(setup["users"]["pengelola"])).status_code == 403
    response = client.get("/users", headers=headers(setup["users"]["admin"]))
    assert response.status_code == 200
    assert len(response.json()) == 4


def test_create_user_conflict(client, setup, headers):
    """Test a duplicate username is a 409"""
    payload = {
        "username": "staf_disdik",
        "email": "baru@bkpsdm.go.id",
        "password": "rahasia123",
        "full_name": "Staf Baru",
        "role": "staf",
        "opd_id": setup["disdik"].id,
    }
    response = client.post("/users", json=payload, headers=headers(setup["users"]["admin"]))
    assert response.status_code == 409


def test_soft_delete_user(client, db, setup, headers):
    """Test deleting a user deactivates it and admins cannot delete themselves"""
    admin = setup["users"]["admin"]
    staf = setup["users"]["staf"]

    assert client.delete(f"/users/{admin.id}", headers=headers(admin)).status_code == 400

    response = client.delete(f"/users/{staf.id}", headers=headers(admin))
    assert response.status_code == 200
    db.expire_all()
    assert db.query(User).filter(User.id == staf.id).one().is_active is False


# --- audit logs ---

def test_audit_logs_admin_only(client, setup, headers):
    """Test audit entries are recorded and visible to admins only"""
    admin = setup["users"]["admin"]
    client.post("/opds", json={"name": "Dinas Sosial", "code": "DINSOS"}, headers=headers(admin))

    assert client.get("/audit-logs", headers=headers(setup["users"]["pengelola"])).status_code == 403

    response = client.get("/audit-logs", params={"entity_type": "opd"}, headers=headers(admin))
    assert response.status_code == 200
    entries = response.json()
    assert len(entries) == 1
    assert entries[0]["action"] == "created"
    assert entries[0]["actor_username"] == "admin"
