"""
Files app Service Layer.

This module is the **single source of truth** for the staged-upload
lifecycle.  Views must remain thin: validate input via serializers, call a
service method, and return the result wrapped in a DRF ``Response``.

Architecture
------------
- ``FileStagingService`` — validate and stage uploads, check staged ids,
  promote batches to permanent keys, delete and sweep staged files.
- ``PromotionBatch``     — the per-batch promotion state machine used by
  ``FileStagingService.promote_many``.

Promotion model
---------------
The blob store and the database are not jointly transactional, so a batch
is promoted as an explicit compensating sequence instead of a transaction::

    PENDING ──copy──▶ COPIED ──commit──▶ COMMITTED
                         │
                         └──failure──▶ ROLLED_BACK  (permanent copy deleted)

1. *Copy phase*: every move is copied from its staged key to its permanent
   key.  Any failure rolls back the moves already copied, in reverse order.
2. *Commit phase*: all staging records of the batch are deleted in one
   database transaction; a failure here still rolls every copy back.
3. *Cleanup*: the staged blobs are deleted best-effort.

Until step 2 succeeds the staging records and staged blobs are untouched,
so a failed batch can be retried with the same file ids.
"""

from __future__ import annotations

import enum
import logging
import re
import uuid
from datetime import timedelta
from typing import Any, Iterable, Sequence

from django.db import DatabaseError, transaction
from django.utils import timezone

from core.constants import (
    ALLOWED_UPLOAD_MIME_TYPES,
    MAX_UPLOAD_SIZE_BYTES,
    STAGED_FILE_TTL_HOURS,
    STAGED_KEY_PREFIX,
)
from core.domain.exceptions import (
    DomainError,
    StagedFileExpired,
    StagedFileMissingFromStore,
    StagedFileNotFound,
    StorageError,
)

from .models import StagedFile, UploadCategory
from .storage import bucket_for, get_blob_store

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")

# Extensions that are interchangeable for the same MIME subtype.
_EXTENSION_ALIASES: dict[str, str] = {"jpg": "jpeg"}


def sanitize_filename(filename: str) -> str:
    """Replace every character outside ``[a-zA-Z0-9.-]`` with ``_``."""
    return _UNSAFE_FILENAME_CHARS.sub("_", filename)


def staged_key_for(file_id: uuid.UUID | str, filename: str) -> str:
    return f"{STAGED_KEY_PREFIX}/{file_id}/{sanitize_filename(filename)}"


# ═══════════════════════════════════════════════════════════════════
#  Promotion state machine
# ═══════════════════════════════════════════════════════════════════


class MoveState(enum.Enum):
    PENDING = "pending"
    COPIED = "copied"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class _Move:
    """One staged file on its way to a permanent key."""

    __slots__ = ("staged", "permanent_key", "state")

    def __init__(self, staged: StagedFile, permanent_key: str) -> None:
        self.staged = staged
        self.permanent_key = permanent_key
        self.state = MoveState.PENDING

    @property
    def bucket(self) -> str:
        return bucket_for(self.staged.category)


class PromotionBatch:
    """
    Promotes a batch of staged files with all-or-nothing semantics.

    See the module docstring for the state diagram.
    """

    def __init__(self, moves: Sequence[_Move], store: Any) -> None:
        self.moves = list(moves)
        self.store = store

    def run(self) -> list[str]:
        try:
            for move in self.moves:
                self.store.copy(move.bucket, move.staged.staged_key, move.permanent_key)
                move.state = MoveState.COPIED
            self._commit()
        except Exception:
            # Whatever interrupted the batch, no permanent copy may outlive it.
            self._rollback()
            raise

        self._cleanup()
        return [move.permanent_key for move in self.moves]

    def _commit(self) -> None:
        ids = [move.staged.pk for move in self.moves]
        with transaction.atomic():
            deleted, _ = StagedFile.objects.filter(pk__in=ids).delete()
            if deleted != len(ids):
                # Another request consumed part of this batch in the meantime.
                raise StagedFileNotFound(
                    "One or more staged files were consumed by a concurrent request."
                )
        for move in self.moves:
            move.state = MoveState.COMMITTED

    def _rollback(self) -> None:
        for move in reversed(self.moves):
            if move.state is not MoveState.COPIED:
                continue
            try:
                self.store.delete(move.bucket, move.permanent_key)
            except StorageError:
                logger.warning(
                    "Rollback could not delete promoted object %s",
                    move.permanent_key,
                    exc_info=True,
                )
            move.state = MoveState.ROLLED_BACK

    def _cleanup(self) -> None:
        for move in self.moves:
            try:
                self.store.delete(move.bucket, move.staged.staged_key)
            except StorageError:
                logger.warning(
                    "Could not delete staged object %s after promotion",
                    move.staged.staged_key,
                    exc_info=True,
                )


# ═══════════════════════════════════════════════════════════════════
#  File Staging Service
# ═══════════════════════════════════════════════════════════════════


class FileStagingService:
    """
    Stages uploads under temporary keys and turns them into permanent,
    entity-linked objects.
    """

    # ── Validation ───────────────────────────────────────────────────

    @staticmethod
    def validate_upload(filename: str, mime_type: str, size: int) -> None:
        """
        Reject oversized files, non-image MIME types, and filenames whose
        extension disagrees with the declared MIME type.

        Raises ``DomainError`` naming the failed check.
        """
        if size > MAX_UPLOAD_SIZE_BYTES:
            raise DomainError(
                f"File size exceeds maximum allowed size of "
                f"{MAX_UPLOAD_SIZE_BYTES // (1024 * 1024)}MB."
            )

        if mime_type not in ALLOWED_UPLOAD_MIME_TYPES:
            raise DomainError(
                f"File type {mime_type} is not allowed. "
                f"Allowed types: {', '.join(ALLOWED_UPLOAD_MIME_TYPES)}."
            )

        extension = filename.rsplit(".", 1)[-1].lower()
        mime_subtype = mime_type.split("/", 1)[1]
        if _EXTENSION_ALIASES.get(extension, extension) != _EXTENSION_ALIASES.get(mime_subtype, mime_subtype):
            raise DomainError("File extension does not match file type.")

    # ── Staging ──────────────────────────────────────────────────────

    @staticmethod
    def stage_upload(
        data: bytes,
        filename: str,
        mime_type: str,
        size: int,
        category: str = UploadCategory.REPORT,
    ) -> StagedFile:
        """
        Store an upload under ``temp/{file_id}/{sanitized_filename}`` and
        record it with a 24-hour expiry.

        Parameters
        ----------
        data : bytes
            Raw file content.
        filename : str
            Client-supplied filename (sanitized for the key, kept verbatim
            on the record).
        mime_type : str
            Declared content type.
        size : int
            Declared size in bytes.
        category : str
            ``"report"`` or ``"profile"``; selects the bucket.

        Returns
        -------
        StagedFile
            The persisted staging record (metadata only).
        """
        if category not in UploadCategory.values:
            raise DomainError(
                f"Invalid upload type '{category}'. "
                f"Allowed: {', '.join(UploadCategory.values)}."
            )
        FileStagingService.validate_upload(filename, mime_type, size)

        file_id = uuid.uuid4()
        staged_key = staged_key_for(file_id, filename)
        store = get_blob_store()
        bucket = bucket_for(category)
        store.put(bucket, staged_key, data, mime_type)

        try:
            staged = StagedFile.objects.create(
                file_id=file_id,
                original_name=filename,
                staged_key=staged_key,
                category=category,
                size=size,
                mime_type=mime_type,
                expires_at=timezone.now() + timedelta(hours=STAGED_FILE_TTL_HOURS),
            )
        except DatabaseError:
            # No record means the sweep would never find this blob.
            try:
                store.delete(bucket, staged_key)
            except StorageError:
                logger.warning("Could not remove orphaned staged object %s", staged_key, exc_info=True)
            raise
        logger.info(
            "Staged %s upload %s (%d bytes, %s) at %s",
            category,
            staged.file_id,
            size,
            mime_type,
            staged_key,
        )
        return staged

    @staticmethod
    def get_staged(file_id: uuid.UUID | str) -> StagedFile:
        """Return the staging record for ``file_id`` or raise ``StagedFileNotFound``."""
        try:
            return StagedFile.objects.get(file_id=uuid.UUID(str(file_id)))
        except (ValueError, StagedFile.DoesNotExist):
            raise StagedFileNotFound(f"Temp file with ID {file_id} not found.")

    @staticmethod
    def validate_staged(file_ids: Iterable[uuid.UUID | str]) -> list[StagedFile]:
        """
        Check that every id names a live staged file whose blob is still
        in the store.  The first failure aborts the whole batch.

        Raises
        ------
        StagedFileNotFound
            No staging record for an id.
        StagedFileExpired
            The record is past ``expires_at``.
        StagedFileMissingFromStore
            The record exists but the blob does not.
        """
        store = get_blob_store()
        now = timezone.now()
        staged_files: list[StagedFile] = []

        for file_id in file_ids:
            staged = FileStagingService.get_staged(file_id)
            if staged.expires_at < now:
                raise StagedFileExpired(f"Temp file with ID {file_id} has expired.")
            if not store.exists(bucket_for(staged.category), staged.staged_key):
                raise StagedFileMissingFromStore(
                    f"Temp file with ID {file_id} not found in storage."
                )
            staged_files.append(staged)

        return staged_files

    # ── Promotion ────────────────────────────────────────────────────

    @staticmethod
    def promote_many(moves: Sequence[tuple[uuid.UUID | str, str]]) -> list[str]:
        """
        Promote staged files to permanent keys, all or nothing.

        Parameters
        ----------
        moves : sequence of ``(file_id, permanent_key)``
            Processed in order.

        Returns
        -------
        list[str]
            The permanent keys, in the order given.

        Raises
        ------
        StagedFileNotFound, StorageError
            The batch failed.  Copies made by this call have been deleted
            (best effort), and staging records are left intact.
        """
        batch = PromotionBatch(
            [_Move(FileStagingService.get_staged(file_id), key) for file_id, key in moves],
            get_blob_store(),
        )
        keys = batch.run()
        logger.info("Promoted %d staged file(s): %s", len(keys), ", ".join(keys))
        return keys

    # ── Deletion ─────────────────────────────────────────────────────

    @staticmethod
    def delete_staged(file_id: uuid.UUID | str) -> None:
        """
        Best-effort delete of a staged blob and its record.

        A blob-store failure is logged and the record is removed anyway;
        an unknown id is a no-op.
        """
        try:
            staged = FileStagingService.get_staged(file_id)
        except StagedFileNotFound:
            return

        try:
            get_blob_store().delete(bucket_for(staged.category), staged.staged_key)
        except StorageError:
            logger.warning(
                "Failed to delete staged object %s from storage",
                staged.staged_key,
                exc_info=True,
            )
        staged.delete()
        logger.info("Deleted staged file %s", file_id)

    @staticmethod
    def sweep_expired() -> int:
        """
        Delete every staged file past its expiry, blob first then record.

        Individual failures are logged and skipped.

        Returns
        -------
        int
            Number of staged files fully removed.
        """
        store = get_blob_store()
        expired = StagedFile.objects.filter(expires_at__lt=timezone.now())
        cleaned = 0

        for staged in expired:
            try:
                store.delete(bucket_for(staged.category), staged.staged_key)
                staged.delete()
            except (StorageError, DatabaseError):
                logger.exception("Failed to clean up staged file %s", staged.staged_key)
                continue
            cleaned += 1
            logger.info("Cleaned up expired staged file %s", staged.staged_key)

        logger.info("Staged-file sweep removed %d expired file(s)", cleaned)
        return cleaned
