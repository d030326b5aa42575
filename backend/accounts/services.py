"""
Accounts app Service Layer.

Architecture
------------
- ``CitizenProfileService`` — citizen profile updates that touch storage.
"""

from __future__ import annotations

import logging
import uuid

from core.domain.exceptions import CitizenNotFound, DomainError, StorageError
from files.models import UploadCategory
from files.services import FileStagingService
from files.storage import bucket_for, get_blob_store

from .models import Citizen

logger = logging.getLogger(__name__)


def profile_photo_key(citizen_id: int, filename: str) -> str:
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else "jpg"
    return f"citizens/{citizen_id}/profile.{extension}"


class CitizenProfileService:

    @staticmethod
    def set_profile_photo(citizen_id: int, file_id: uuid.UUID | str) -> Citizen:
        """
        Promote a ``profile`` staged upload to the citizen's profile photo.

        The new key replaces the old one on the citizen row; a previous
        photo stored under a different key is removed best-effort.

        Raises
        ------
        CitizenNotFound
        DomainError
            The staged file was uploaded for a report, not a profile.
        StagedFileNotFound, StagedFileExpired, StorageError
            Propagated from the staging service.
        """
        try:
            citizen = Citizen.objects.get(pk=citizen_id)
        except Citizen.DoesNotExist:
            raise CitizenNotFound("Citizen not found.")

        (staged,) = FileStagingService.validate_staged([file_id])
        if staged.category != UploadCategory.PROFILE:
            raise DomainError(f"File {staged.file_id} was not uploaded as a profile photo.")

        new_key = profile_photo_key(citizen.pk, staged.original_name)
        (new_key,) = FileStagingService.promote_many([(staged.file_id, new_key)])

        old_key = citizen.profile_photo_key
        citizen.profile_photo_key = new_key
        citizen.save(update_fields=["profile_photo_key", "updated_at"])

        if old_key and old_key != new_key:
            try:
                get_blob_store().delete(bucket_for(UploadCategory.PROFILE), old_key)
            except StorageError:
                logger.warning("Could not delete previous profile photo %s", old_key, exc_info=True)

        logger.info("Citizen #%d profile photo set to %s", citizen.pk, new_key)
        return citizen
