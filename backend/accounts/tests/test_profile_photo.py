"""
Tests for citizen profile photos: service and ``PUT /api/accounts/me/profile-photo/``.
"""

from __future__ import annotations

import pytest
from django.urls import reverse
from rest_framework import status

from accounts.services import CitizenProfileService, profile_photo_key
from core.domain.exceptions import CitizenNotFound, DomainError, StagedFileNotFound
from files.models import StagedFile
from files.services import FileStagingService


def test_profile_photo_key_keeps_extension():
    assert profile_photo_key(7, "Me At The Beach.JPG") == "citizens/7/profile.jpg"
    assert profile_photo_key(7, "noext") == "citizens/7/profile.jpg"


@pytest.mark.django_db
class TestSetProfilePhoto:

    def test_promotes_into_profile_bucket(self, create_citizen, blob_store, stage_photo):
        citizen = create_citizen()
        staged = stage_photo("me.png", category="profile")

        citizen = CitizenProfileService.set_profile_photo(citizen.pk, staged.file_id)

        assert citizen.profile_photo_key == f"citizens/{citizen.pk}/profile.png"
        assert blob_store.keys("profile-photos") == [citizen.profile_photo_key]
        assert not StagedFile.objects.exists()

    def test_replacing_removes_old_photo(self, create_citizen, blob_store, stage_photo):
        citizen = create_citizen()
        CitizenProfileService.set_profile_photo(citizen.pk, stage_photo("me.png", category="profile").file_id)
        jpg = FileStagingService.stage_upload(b"jpg", "me.jpg", "image/jpeg", 3, "profile")

        citizen = CitizenProfileService.set_profile_photo(citizen.pk, jpg.file_id)

        assert citizen.profile_photo_key == f"citizens/{citizen.pk}/profile.jpg"
        assert not blob_store.exists("profile-photos", f"citizens/{citizen.pk}/profile.png")

    def test_report_upload_is_rejected(self, create_citizen, blob_store, stage_photo):
        citizen = create_citizen()
        staged = stage_photo("me.png", category="report")

        with pytest.raises(DomainError, match="profile photo"):
            CitizenProfileService.set_profile_photo(citizen.pk, staged.file_id)
        assert StagedFile.objects.count() == 1

    def test_unknown_citizen(self, blob_store, stage_photo):
        staged = stage_photo("me.png", category="profile")
        with pytest.raises(CitizenNotFound):
            CitizenProfileService.set_profile_photo(999_999, staged.file_id)

    def test_unknown_file(self, create_citizen, blob_store):
        with pytest.raises(StagedFileNotFound):
            CitizenProfileService.set_profile_photo(
                create_citizen().pk, "5f0c7a43-6f3e-4d8b-9a51-0d8e2f7b9c11",
            )


@pytest.mark.django_db
def test_profile_photo_endpoint(api_client, create_citizen, blob_store, stage_photo):
    citizen = create_citizen()
    staged = stage_photo("me.png", category="profile")
    api_client.force_authenticate(citizen.user)

    resp = api_client.put(
        reverse("accounts:profile-photo"), {"file_id": str(staged.file_id)}, format="json",
    )

    assert resp.status_code == status.HTTP_200_OK, resp.data
    assert resp.data["profile_photo_key"] == f"citizens/{citizen.pk}/profile.png"
