"""
Unit tests for the MinIO adapter in ``files.storage``.

The MinIO client is a ``MagicMock``; no network access.
"""

from __future__ import annotations

from datetime import timedelta
from unittest import mock

import pytest
from minio.commonconfig import CopySource
from minio.error import MinioException, S3Error
from urllib3.exceptions import MaxRetryError, ProtocolError

from core.domain.exceptions import StorageError
from files.storage import MinioBlobStore, bucket_for


class _MissingObject(S3Error):
    """S3 ``NoSuchKey`` without building a real HTTP response."""

    code = "NoSuchKey"

    def __init__(self):
        Exception.__init__(self, "NoSuchKey")


@pytest.fixture()
def client():
    return mock.MagicMock()


@pytest.fixture()
def store(client):
    return MinioBlobStore(client)


class TestMinioBlobStore:

    def test_put_streams_bytes_with_content_type(self, store, client):
        assert store.put("reports", "temp/x/a.png", b"abc", "image/png") == "temp/x/a.png"

        args, kwargs = client.put_object.call_args
        assert args[0:2] == ("reports", "temp/x/a.png")
        assert args[2].read() == b"abc"
        assert args[3] == 3
        assert kwargs["content_type"] == "image/png"

    def test_get_reads_and_releases(self, store, client):
        response = client.get_object.return_value
        response.read.return_value = b"data"

        assert store.get("reports", "k") == b"data"
        response.close.assert_called_once()
        response.release_conn.assert_called_once()

    def test_copy_uses_server_side_copy(self, store, client):
        store.copy("reports", "temp/x/a.png", "reports/1/2/a.png")

        args, _ = client.copy_object.call_args
        assert args[0:2] == ("reports", "reports/1/2/a.png")
        assert isinstance(args[2], CopySource)
        assert args[2].object_name == "temp/x/a.png"

    def test_exists_true(self, store):
        assert store.exists("reports", "k") is True

    def test_exists_false_on_missing_key(self, store, client):
        client.stat_object.side_effect = _MissingObject()
        assert store.exists("reports", "k") is False

    @pytest.mark.parametrize("method,args", [
        ("put", ("reports", "k", b"x", "image/png")),
        ("get", ("reports", "k")),
        ("copy", ("reports", "a", "b")),
        ("delete", ("reports", "k")),
        ("exists", ("reports", "k")),
        ("presign", ("reports", "k", timedelta(minutes=5))),
    ])
    def test_client_errors_become_storage_errors(self, store, client, method, args):
        for name in ("put_object", "get_object", "copy_object", "remove_object",
                     "stat_object", "presigned_get_object"):
            getattr(client, name).side_effect = MinioException("boom")

        with pytest.raises(StorageError):
            getattr(store, method)(*args)

    @pytest.mark.parametrize("error", [
        MaxRetryError(None, "/reports/b", "connection reset"),
        ProtocolError("Connection aborted."),
        ConnectionResetError(104, "Connection reset by peer"),
    ])
    def test_transport_errors_become_storage_errors(self, store, client, error):
        client.copy_object.side_effect = error

        with pytest.raises(StorageError) as excinfo:
            store.copy("reports", "a", "b")
        assert excinfo.value.__cause__ is error

    def test_read_failure_becomes_storage_error_and_releases(self, store, client):
        response = client.get_object.return_value
        response.read.side_effect = ProtocolError("Connection broken")

        with pytest.raises(StorageError):
            store.get("reports", "k")
        response.close.assert_called_once()
        response.release_conn.assert_called_once()

    def test_presign_uses_external_client(self, client):
        external = mock.MagicMock()
        external.presigned_get_object.return_value = "https://cdn.example/reports/k?sig"
        store = MinioBlobStore(client, presign_client=external)

        ttl = timedelta(days=7)
        assert store.presign("reports", "k", ttl) == "https://cdn.example/reports/k?sig"
        external.presigned_get_object.assert_called_once_with("reports", "k", expires=ttl)
        client.presigned_get_object.assert_not_called()

    def test_ensure_bucket_creates_missing(self, store, client):
        client.bucket_exists.return_value = False
        assert store.ensure_bucket("reports") is True
        client.make_bucket.assert_called_once_with("reports")

    def test_ensure_bucket_existing(self, store, client):
        client.bucket_exists.return_value = True
        assert store.ensure_bucket("reports") is False
        client.make_bucket.assert_not_called()


def test_bucket_for_category(settings):
    settings.MINIO_REPORT_BUCKET = "r-bucket"
    settings.MINIO_PROFILE_BUCKET = "p-bucket"
    assert bucket_for("report") == "r-bucket"
    assert bucket_for("profile") == "p-bucket"
