import pytest
from unittest.mock import AsyncMock
from uuid import uuid4

from grindflow.core.exceptions import DocumentNotFoundError
from grindflow.dependencies import get_public_library_service
from grindflow.main import app


@pytest.fixture
def library():
    service = AsyncMock()
    app.dependency_overrides[get_public_library_service] = lambda: service
    return service


def test_list_is_public(test_client, library):
    library.list_entries.return_value = [{"id": "entry-1", "subject": "Operating Systems"}]

    response = test_client.get("/api/v1/public-library")

    assert response.status_code == 200
    assert response.json() == {"rows": [{"id": "entry-1", "subject": "Operating Systems"}]}


def test_submit_entry(test_client, authenticated, library):
    document_id = uuid4()
    library.submit.return_value = "entry-1"

    response = test_client.post(
        "/api/v1/public-library/submit",
        json={"document_id": str(document_id), "subject": "Operating Systems", "unit": 3, "score": 85},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "id": "entry-1"}
    user_id, submitted_id, fields = library.submit.call_args.args
    assert user_id == authenticated.id
    assert submitted_id == document_id
    assert fields["unit"] == "3"
    assert fields["subject"] == "Operating Systems"


def test_submit_without_subject(test_client, authenticated, library):
    response = test_client.post("/api/v1/public-library/submit", json={"document_id": str(uuid4())})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing document_id or subject"}
    library.submit.assert_not_called()


def test_submit_requires_auth(test_client, library):
    response = test_client.post(
        "/api/v1/public-library/submit",
        json={"document_id": str(uuid4()), "subject": "Networks"},
    )

    assert response.status_code == 401


def test_view_url(test_client, library):
    document_id = uuid4()
    library.get_view_url.return_value = "https://test.supabase.co/storage/v1/object/sign/documents/a.pdf?token=abc"

    response = test_client.get("/api/v1/public-library/view", params={"id": str(document_id)})

    assert response.status_code == 200
    assert response.json()["url"].endswith("token=abc")
    library.get_view_url.assert_awaited_once_with(document_id)


def test_view_unshared_document(test_client, library):
    library.get_view_url.side_effect = DocumentNotFoundError("Document not found")

    response = test_client.get("/api/v1/public-library/view", params={"id": str(uuid4())})

    assert response.status_code == 404


def test_download_sets_attachment_header(test_client, library):
    library.download.return_value = (b"%PDF-1.4 content", "OS notes.pdf")

    response = test_client.get("/api/v1/public-library/download", params={"id": str(uuid4())})

    assert response.status_code == 200
    assert response.content == b"%PDF-1.4 content"
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == "attachment; filename*=UTF-8''OS%20notes.pdf"


def test_download_requires_id(test_client, library):
    response = test_client.get("/api/v1/public-library/download")

    assert response.status_code == 400
