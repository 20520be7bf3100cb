from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from s3_storage.api.uploads import create_upload_router, install_exception_handlers
from s3_storage.core.exceptions import UploadRejectedError
from s3_storage.integrations.object_storage_client import ObjectStorageClient, StorageConfig
from s3_storage.services.s3_storage import S3Storage
from tests.fakes import FakeS3Client


def _app(fake_s3: FakeS3Client, **options) -> FastAPI:
    options.setdefault("bucket", "b")
    storage = S3Storage(s3=ObjectStorageClient(StorageConfig(), s3_client=fake_s3), **options)
    app = FastAPI()
    app.include_router(create_upload_router(storage))
    install_exception_handlers(app)
    return app


@pytest.fixture
def client(fake_s3):
    return TestClient(_app(fake_s3, key=lambda context, file: f"uploads/{file.originalname}"))


def test_upload_returns_stored_file(client, fake_s3):
    response = client.post("/files", files={"file": ("hello.txt", b"hello world", "text/plain")})

    assert response.status_code == 201
    data = response.json()
    assert data["bucket"] == "b"
    assert data["key"] == "uploads/hello.txt"
    assert data["fieldname"] == "file"
    assert data["originalname"] == "hello.txt"
    assert data["mimetype"] == "text/plain"
    assert data["size"] == 11
    assert data["etag"]
    assert fake_s3.objects[("b", "uploads/hello.txt")] == b"hello world"


def test_upload_without_file_is_rejected(client, fake_s3):
    response = client.post("/files", data={"note": "no file here"})

    assert response.status_code == 400
    assert response.json() == {"detail": "No file uploaded in field 'file'"}
    assert fake_s3.calls == []


def test_option_rejection_maps_to_bad_request(fake_s3):
    def content_type(context, file, callback):
        callback(UploadRejectedError(f"{file.originalname} is not an image"))

    client = TestClient(_app(fake_s3, content_type=content_type))

    response = client.post("/files", files={"file": ("notes.txt", b"text", "text/plain")})

    assert response.status_code == 400
    assert response.json() == {"detail": "notes.txt is not an image"}
    assert fake_s3.calls == []


def test_backend_failure_maps_to_bad_gateway():
    fake_s3 = FakeS3Client(fail_on={"put_object": ConnectionError("backend down")})
    client = TestClient(_app(fake_s3, key="k1"))

    response = client.post("/files", files={"file": ("a.bin", b"\x00\x01", "application/octet-stream")})

    assert response.status_code == 502
    data = response.json()
    assert data["bucket"] == "b"
    assert data["key"] == "k1"
    assert "Failed to upload" in data["detail"]
    assert data["code"] == "upload_failed"


def test_delete_removes_object(client, fake_s3):
    fake_s3.objects[("b", "uploads/dir/a.txt")] = b"data"

    response = client.delete("/files/b/uploads/dir/a.txt")

    assert response.status_code == 204
    assert fake_s3.called("delete_object") == [{"Bucket": "b", "Key": "uploads/dir/a.txt"}]
    assert fake_s3.objects == {}


def test_delete_failure_maps_to_bad_gateway():
    fake_s3 = FakeS3Client(fail_on={"delete_object": ConnectionError("backend down")})
    client = TestClient(_app(fake_s3))

    response = client.delete("/files/b/k1")

    assert response.status_code == 502
    assert "Failed to delete" in response.json()["detail"]
    assert response.json()["code"] == "delete_failed"
