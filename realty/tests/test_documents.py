import os

from realty.config import settings
from realty.models.document import Document

from conftest import make_pdf_bytes


def _upload(client, headers, property_id, content=None, content_type="application/pdf", name="plan.pdf"):
    return client.post(
        "/documents/upload",
        data={"property_id": property_id},
        files={"document": (name, content if content is not None else make_pdf_bytes(), content_type)},
        headers=headers,
    )


def test_upload_list_and_serve(client, admin_headers, create_property):
    prop = create_property()
    res = _upload(client, admin_headers, prop["id"])
    assert res.status_code == 201, res.text
    doc = res.json()["data"]
    assert doc["filename"] == "plan.pdf"
    assert doc["size"] == len(make_pdf_bytes())
    assert doc["url"] == f"/documents/serve/{doc['id']}"

    listed = client.get(f"/documents/property/{prop['id']}").json()["data"]
    assert [d["id"] for d in listed] == [doc["id"]]

    served = client.get(doc["url"])
    assert served.status_code == 200
    assert served.headers["content-type"] == "application/pdf"
    assert served.headers["content-disposition"].startswith("inline")
    assert served.content == make_pdf_bytes()

    assert client.get(f"/documents/{doc['id']}").status_code == 200


def test_property_detail_lists_documents(client, admin_headers, create_property):
    prop = create_property()
    doc = _upload(client, admin_headers, prop["id"]).json()["data"]
    detail = client.get(f"/properties/{prop['id']}").json()["data"]
    assert detail["documents"] == [doc]


def test_upload_stored_under_property_folder(client, admin_headers, create_property, db_session):
    prop = create_property()
    doc = _upload(client, admin_headers, prop["id"]).json()["data"]
    row = db_session.get(Document, doc["id"])
    assert row.file_path.startswith(f"/uploads/properties/{prop['property_code']}/")
    assert row.filename.endswith(".pdf")
    folder = os.path.join(settings.UPLOADS_DIR, "properties", prop["property_code"])
    assert os.path.isfile(os.path.join(folder, row.filename))


def test_upload_rejects_non_pdf_mime(client, admin_headers, create_property):
    prop = create_property()
    res = _upload(client, admin_headers, prop["id"], content_type="text/plain")
    assert res.status_code == 400
    assert res.json()["error"] == "Only PDF files are allowed"


def test_upload_rejects_fake_pdf(client, admin_headers, create_property):
    prop = create_property()
    res = _upload(client, admin_headers, prop["id"], content=b"MZ not a pdf")
    assert res.status_code == 400


def test_upload_rejects_large_pdf(client, admin_headers, create_property, monkeypatch):
    monkeypatch.setattr(settings, "MAX_DOCUMENT_SIZE", 8)
    prop = create_property()
    res = _upload(client, admin_headers, prop["id"])
    assert res.status_code == 400
    assert "limit" in res.json()["error"]


def test_upload_unknown_property(client, admin_headers):
    res = _upload(client, admin_headers, "missing")
    assert res.status_code == 400


def test_serve_missing_document(client):
    assert client.get("/documents/serve/missing").status_code == 404


def test_serve_missing_file_is_404(client, admin_headers, create_property, db_session):
    prop = create_property()
    doc = _upload(client, admin_headers, prop["id"]).json()["data"]
    row = db_session.get(Document, doc["id"])
    os.remove(os.path.join(settings.UPLOADS_DIR, "properties", prop["property_code"], row.filename))
    res = client.get(doc["url"])
    assert res.status_code == 404
    assert res.json()["error"] == "File not found"


def test_delete_document(client, admin_headers, create_property, db_session):
    prop = create_property()
    doc = _upload(client, admin_headers, prop["id"]).json()["data"]
    filename = db_session.get(Document, doc["id"]).filename
    res = client.delete(f"/documents/{doc['id']}", headers=admin_headers)
    assert res.status_code == 200, res.text
    assert res.json()["data"]["deleted_files"] == 1
    assert client.get(f"/documents/property/{prop['id']}").json()["data"] == []
    folder = os.path.join(settings.UPLOADS_DIR, "properties", prop["property_code"])
    assert not os.path.exists(os.path.join(folder, filename))


def test_delete_unknown_document(client, admin_headers):
    assert client.delete("/documents/missing", headers=admin_headers).status_code == 404


def test_deleting_property_removes_documents(client, admin_headers, create_property, db_session):
    prop = create_property()
    _upload(client, admin_headers, prop["id"])
    res = client.delete(f"/properties/{prop['id']}", headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["deleted_files"] == 1
    assert db_session.query(Document).count() == 0
