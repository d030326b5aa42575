"""
Service-level tests for ``files.services.FileStagingService``.

The blob store is the in-memory double from the root conftest, except in
the rollback tests, which use a ``MagicMock`` store to count calls.
"""

from __future__ import annotations

from datetime import timedelta
from unittest import mock

import pytest
from django.utils import timezone
from urllib3.exceptions import MaxRetryError

from core.domain.exceptions import (
    DomainError,
    StagedFileExpired,
    StagedFileMissingFromStore,
    StagedFileNotFound,
    StorageError,
)
from files.models import StagedFile
from files.services import FileStagingService, sanitize_filename

MB = 1024 * 1024


# ════════════════════════════════════════════════════════════════════
#  Upload validation
# ════════════════════════════════════════════════════════════════════

class TestValidateUpload:

    def test_accepts_png_under_limit(self):
        FileStagingService.validate_upload("photo.png", "image/png", 4 * MB)

    def test_rejects_oversized_file(self):
        with pytest.raises(DomainError, match="5MB"):
            FileStagingService.validate_upload("photo.png", "image/png", 6 * MB)

    def test_accepts_exactly_five_megabytes(self):
        FileStagingService.validate_upload("photo.png", "image/png", 5 * MB)

    def test_rejects_non_image_type(self):
        with pytest.raises(DomainError, match="application/pdf"):
            FileStagingService.validate_upload("doc.pdf", "application/pdf", 1024)

    def test_rejects_extension_mismatch(self):
        with pytest.raises(DomainError, match="extension"):
            FileStagingService.validate_upload("a.txt", "image/png", 1024)

    @pytest.mark.parametrize("filename,mime_type", [
        ("photo.jpg", "image/jpeg"),
        ("photo.jpeg", "image/jpeg"),
        ("photo.jpeg", "image/jpg"),
        ("PHOTO.JPG", "image/jpg"),
    ])
    def test_jpg_and_jpeg_are_interchangeable(self, filename, mime_type):
        FileStagingService.validate_upload(filename, mime_type, 1024)


def test_sanitize_filename_replaces_unsafe_characters():
    assert sanitize_filename("my photo (1).png") == "my_photo__1_.png"
    assert sanitize_filename("../etc/passwd") == ".._etc_passwd"


# ════════════════════════════════════════════════════════════════════
#  Staging
# ════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestStageUpload:

    def test_stores_blob_and_record(self, blob_store, stage_photo):
        staged = stage_photo("pot hole.png")

        assert staged.staged_key == f"temp/{staged.file_id}/pot_hole.png"
        assert staged.original_name == "pot hole.png"
        assert blob_store.exists("reports", staged.staged_key)
        remaining = staged.expires_at - staged.created_at
        assert timedelta(hours=23, minutes=59) < remaining <= timedelta(hours=24, seconds=1)

    def test_profile_uploads_go_to_profile_bucket(self, blob_store, stage_photo):
        staged = stage_photo("me.png", category="profile")
        assert blob_store.exists("profile-photos", staged.staged_key)
        assert not blob_store.exists("reports", staged.staged_key)

    def test_unknown_category_rejected(self, blob_store):
        with pytest.raises(DomainError, match="Invalid upload type"):
            FileStagingService.stage_upload(b"x", "a.png", "image/png", 1, "avatar")
        assert blob_store.objects == {}

    def test_invalid_upload_stores_nothing(self, blob_store):
        with pytest.raises(DomainError):
            FileStagingService.stage_upload(b"x", "a.pdf", "application/pdf", 1)
        assert blob_store.objects == {}
        assert not StagedFile.objects.exists()


# ════════════════════════════════════════════════════════════════════
#  Lookup and validation of staged ids
# ════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestValidateStaged:

    def test_returns_records_in_order(self, stage_photo):
        first, second = stage_photo("a.png"), stage_photo("b.png")
        result = FileStagingService.validate_staged([second.file_id, first.file_id])
        assert [s.pk for s in result] == [second.pk, first.pk]

    def test_unknown_id(self, blob_store):
        with pytest.raises(StagedFileNotFound):
            FileStagingService.validate_staged(["5f0c7a43-6f3e-4d8b-9a51-0d8e2f7b9c11"])

    def test_malformed_id_is_not_found(self, blob_store):
        with pytest.raises(StagedFileNotFound):
            FileStagingService.get_staged("not-a-uuid")

    def test_expired(self, stage_photo):
        staged = stage_photo()
        StagedFile.objects.filter(pk=staged.pk).update(
            expires_at=timezone.now() - timedelta(seconds=1),
        )
        with pytest.raises(StagedFileExpired):
            FileStagingService.validate_staged([staged.file_id])

    def test_blob_missing_from_store(self, blob_store, stage_photo):
        staged = stage_photo()
        blob_store.delete("reports", staged.staged_key)
        with pytest.raises(StagedFileMissingFromStore):
            FileStagingService.validate_staged([staged.file_id])

    def test_first_failure_aborts_batch(self, stage_photo):
        good = stage_photo()
        with pytest.raises(StagedFileNotFound):
            FileStagingService.validate_staged(
                [good.file_id, "5f0c7a43-6f3e-4d8b-9a51-0d8e2f7b9c11"],
            )


# ════════════════════════════════════════════════════════════════════
#  Promotion
# ════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestPromoteMany:

    def test_moves_blobs_and_consumes_records(self, blob_store, stage_photo):
        a, b = stage_photo("a.png"), stage_photo("b.png")

        keys = FileStagingService.promote_many([
            (a.file_id, "reports/1/9/a.png"),
            (b.file_id, "reports/1/9/b.png"),
        ])

        assert keys == ["reports/1/9/a.png", "reports/1/9/b.png"]
        assert blob_store.keys("reports") == ["reports/1/9/a.png", "reports/1/9/b.png"]
        assert not StagedFile.objects.exists()

    def test_third_copy_failure_rolls_back_first_two(self, monkeypatch, stage_photo):
        staged = [stage_photo(name) for name in ("a.png", "b.png", "c.png")]
        moves = [(s.file_id, f"reports/1/9/{s.original_name}") for s in staged]

        store = mock.MagicMock()
        store.copy.side_effect = [None, None, StorageError("copy failed")]
        monkeypatch.setattr("files.services.get_blob_store", lambda: store)

        with pytest.raises(StorageError):
            FileStagingService.promote_many(moves)

        assert store.copy.call_count == 3
        # Only the two promoted copies are deleted, newest first.
        assert store.delete.call_args_list == [
            mock.call("reports", "reports/1/9/b.png"),
            mock.call("reports", "reports/1/9/a.png"),
        ]
        assert StagedFile.objects.count() == 3

    def test_unexpected_copy_error_still_rolls_back(self, monkeypatch, stage_photo):
        staged = [stage_photo(name) for name in ("a.png", "b.png", "c.png")]
        moves = [(s.file_id, f"reports/1/9/{s.original_name}") for s in staged]

        store = mock.MagicMock()
        store.copy.side_effect = [None, None, MaxRetryError(None, "/", "connection reset")]
        monkeypatch.setattr("files.services.get_blob_store", lambda: store)

        with pytest.raises(MaxRetryError):
            FileStagingService.promote_many(moves)

        assert store.delete.call_args_list == [
            mock.call("reports", "reports/1/9/b.png"),
            mock.call("reports", "reports/1/9/a.png"),
        ]
        assert StagedFile.objects.count() == 3

    def test_failed_batch_can_be_retried(self, blob_store, stage_photo):
        a, b = stage_photo("a.png"), stage_photo("b.png")
        moves = [(a.file_id, "reports/1/9/a.png"), (b.file_id, "reports/1/9/b.png")]

        blob_store.fail_copy_on.add("/b.png")
        with pytest.raises(StorageError):
            FileStagingService.promote_many(moves)
        assert blob_store.keys("reports") == sorted([a.staged_key, b.staged_key])

        blob_store.fail_copy_on.clear()
        assert FileStagingService.promote_many(moves) == ["reports/1/9/a.png", "reports/1/9/b.png"]

    def test_record_consumed_concurrently_rolls_back(self, blob_store, stage_photo):
        a = stage_photo("a.png")
        with mock.patch(
            "files.services.StagedFile.objects.filter",
        ) as filter_mock:
            filter_mock.return_value.delete.return_value = (0, {})
            with pytest.raises(StagedFileNotFound):
                FileStagingService.promote_many([(a.file_id, "reports/1/9/a.png")])

        assert not blob_store.exists("reports", "reports/1/9/a.png")
        assert blob_store.exists("reports", a.staged_key)

    def test_unknown_id_copies_nothing(self, blob_store):
        with pytest.raises(StagedFileNotFound):
            FileStagingService.promote_many(
                [("5f0c7a43-6f3e-4d8b-9a51-0d8e2f7b9c11", "reports/1/9/a.png")],
            )
        assert blob_store.objects == {}


# ════════════════════════════════════════════════════════════════════
#  Deletion and sweep
# ════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestDeleteAndSweep:

    def test_delete_staged_removes_blob_and_record(self, blob_store, stage_photo):
        staged = stage_photo()
        FileStagingService.delete_staged(staged.file_id)
        assert blob_store.objects == {}
        assert not StagedFile.objects.exists()

    def test_delete_unknown_is_noop(self, blob_store):
        FileStagingService.delete_staged("5f0c7a43-6f3e-4d8b-9a51-0d8e2f7b9c11")

    def test_delete_keeps_going_when_store_fails(self, monkeypatch, stage_photo):
        staged = stage_photo()
        store = mock.MagicMock()
        store.delete.side_effect = StorageError("down")
        monkeypatch.setattr("files.services.get_blob_store", lambda: store)

        FileStagingService.delete_staged(staged.file_id)
        assert not StagedFile.objects.exists()

    def test_sweep_removes_only_expired(self, blob_store, stage_photo):
        fresh, stale = stage_photo("fresh.png"), stage_photo("stale.png")
        StagedFile.objects.filter(pk=stale.pk).update(
            expires_at=timezone.now() - timedelta(hours=1),
        )

        assert FileStagingService.sweep_expired() == 1
        assert list(StagedFile.objects.values_list("pk", flat=True)) == [fresh.pk]
        assert blob_store.keys() == [fresh.staged_key]

    def test_sweep_skips_failures(self, monkeypatch, stage_photo):
        a, b = stage_photo("a.png"), stage_photo("b.png")
        StagedFile.objects.update(expires_at=timezone.now() - timedelta(hours=1))

        store = mock.MagicMock()
        store.delete.side_effect = [StorageError("down"), None]
        monkeypatch.setattr("files.services.get_blob_store", lambda: store)

        assert FileStagingService.sweep_expired() == 1
        assert StagedFile.objects.count() == 1
