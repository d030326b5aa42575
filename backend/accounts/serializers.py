"""
Accounts app serializers.
"""

from __future__ import annotations

from rest_framework import serializers

from .models import Citizen


class ProfilePhotoSerializer(serializers.Serializer):
    """Request body for ``PUT /api/accounts/me/profile-photo/``."""

    file_id = serializers.UUIDField(
        help_text="Id of a staged upload made with type=profile.",
    )


class CitizenSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source="user.username", read_only=True)
    email = serializers.EmailField(source="user.email", read_only=True)

    class Meta:
        model = Citizen
        fields = [
            "id",
            "username",
            "email",
            "email_notifications",
            "profile_photo_key",
        ]
        read_only_fields = fields
