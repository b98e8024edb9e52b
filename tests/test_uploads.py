"""Tests for the document upload endpoint."""

import re

from paygate.config import settings


def test_upload_document(client, upload_dir):
    response = client.post(
        "/upload/document",
        files={"document": ("scan.pdf", b"%PDF-1.4 test", "application/pdf")},
    )

    assert response.status_code == 200
    data = response.json()
    assert re.fullmatch(r"document-\d+-\d+\.pdf", data["filename"])
    assert data["originalname"] == "scan.pdf"
    assert data["mimetype"] == "application/pdf"
    assert data["size"] == 13
    assert data["path"] == f"/uploads/{data['filename']}"
    assert (upload_dir / data["filename"]).read_bytes() == b"%PDF-1.4 test"


def test_upload_names_are_unique(client, upload_dir):
    names = {
        client.post(
            "/upload/document", files={"document": ("a.txt", b"x", "text/plain")}
        ).json()["filename"]
        for _ in range(5)
    }

    assert len(names) == 5


def test_upload_missing_file(client):
    response = client.post("/upload/document", data={"name": "no file"})

    assert response.status_code == 400
    assert response.json() == {"detail": "No file uploaded"}


def test_upload_too_large(client, upload_dir, monkeypatch):
    monkeypatch.setattr(settings, "max_upload_bytes", 10)

    response = client.post(
        "/upload/document",
        files={"document": ("big.bin", b"x" * 11, "application/octet-stream")},
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "File too large"}
    assert list(upload_dir.iterdir()) == []


def test_uploaded_file_is_attached_reference(client, mailer, upload_dir, monkeypatch):
    monkeypatch.setattr(settings, "contact_require_payment", False)
    filename = client.post(
        "/upload/document", files={"document": ("scan.pdf", b"data", "application/pdf")}
    ).json()["filename"]

    client.post(
        "/mail",
        data={"name": "Jane", "uploadedFilename": filename, "uploadedOriginalName": "scan.pdf"},
    )

    assert mailer.sent[0].uploaded_filename == filename
