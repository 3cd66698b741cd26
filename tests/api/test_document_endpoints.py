import pytest
from uuid import uuid4

from grindflow.core.config import settings
from grindflow.core.exceptions import DocumentAccessDeniedError, StorageError, ValidationError
from grindflow.dependencies import get_document_service
from grindflow.main import app


@pytest.fixture
def documents(document_service):
    app.dependency_overrides[get_document_service] = lambda: document_service
    return document_service


def test_list_documents(test_client, authenticated, documents):
    documents.list_documents.return_value = [
        {"id": "doc-1", "file_name": "notes.pdf", "publicUrl": "https://cdn.example/notes.pdf"}
    ]

    response = test_client.get("/api/v1/documents")

    assert response.status_code == 200
    assert response.json()["rows"][0]["file_name"] == "notes.pdf"
    documents.list_documents.assert_awaited_once_with(authenticated.id)


def test_list_documents_requires_auth(test_client, documents):
    response = test_client.get("/api/v1/documents")

    assert response.status_code == 401


def test_delete_document(test_client, authenticated, documents):
    document_id = uuid4()
    documents.delete_document.return_value = {"success": True, "removedFromStorage": True}

    response = test_client.delete(f"/api/v1/documents/{document_id}")

    assert response.status_code == 200
    assert response.json() == {"success": True, "removedFromStorage": True}
    documents.delete_document.assert_awaited_once_with(document_id, authenticated.id)


def test_delete_document_of_another_user(test_client, authenticated, documents):
    documents.delete_document.side_effect = DocumentAccessDeniedError("Forbidden")

    response = test_client.delete(f"/api/v1/documents/{uuid4()}")

    assert response.status_code == 403


def test_text_status(test_client, authenticated, documents, sample_document):
    documents.get_text_status.return_value = {"status": "ready", "length": 42, "short_text": "Processes and threads"}

    response = test_client.get(f"/api/v1/text/{sample_document.id}")

    assert response.status_code == 200
    assert response.json() == {"status": "ready", "length": 42, "short_text": "Processes and threads"}


def test_upload_pdf(test_client, authenticated, documents):
    documents.upload_document.return_value = {
        "fileName": "notes.pdf",
        "path": "1700000000000-notes.pdf",
        "size": 8,
        "bucket": "documents",
        "publicUrl": "https://test.supabase.co/storage/v1/object/public/documents/1700000000000-notes.pdf",
        "db": {"inserted": True, "id": "doc-1"},
        "durationMs": 12,
    }

    response = test_client.post(
        "/api/v1/upload",
        files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
    )

    assert response.status_code == 200
    assert response.json()["path"] == "1700000000000-notes.pdf"
    documents.upload_document.assert_awaited_once_with(authenticated.id, "notes.pdf", b"%PDF-1.4", "application/pdf")


def test_upload_without_file(test_client, authenticated, documents):
    response = test_client.post("/api/v1/upload")

    assert response.status_code == 400
    assert response.json() == {"error": "No file provided"}


def test_upload_rejects_non_pdf(test_client, authenticated, documents):
    documents.upload_document.side_effect = ValidationError("Only PDF files are allowed")

    response = test_client.post(
        "/api/v1/upload",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Only PDF files are allowed"}


def test_upload_too_large(test_client, authenticated, documents, monkeypatch):
    monkeypatch.setattr(settings.supabase, "upload_size_limit", 4)

    response = test_client.post(
        "/api/v1/upload",
        files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
    )

    assert response.status_code == 413
    documents.upload_document.assert_not_called()


def test_upload_storage_failure(test_client, authenticated, documents):
    documents.upload_document.side_effect = StorageError("Upload failed: bucket missing")

    response = test_client.post(
        "/api/v1/upload",
        files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Upload failed: bucket missing"}
