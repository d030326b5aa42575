"""
Accounts app views.

Views are intentionally thin: parse input via a serializer, delegate to
a service, serialize the result.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from core.domain.exceptions import CitizenNotFound

from .serializers import CitizenSerializer, ProfilePhotoSerializer
from .services import CitizenProfileService


def citizen_id_for(user) -> int:
    """PK of the ``Citizen`` profile behind ``user``."""
    profile = getattr(user, "citizen_profile", None)
    if profile is None:
        raise CitizenNotFound("The authenticated user has no citizen profile.")
    return profile.pk


class ProfilePhotoView(APIView):
    """
    PUT /api/accounts/me/profile-photo/ → promote a staged profile upload.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Set profile photo",
        description="Attach a staged upload (type=profile) as the citizen's profile photo.",
        request=ProfilePhotoSerializer,
        responses={
            200: OpenApiResponse(response=CitizenSerializer, description="Profile photo updated."),
            404: OpenApiResponse(description="Unknown citizen or staged file."),
            410: OpenApiResponse(description="Staged file expired."),
        },
        tags=["Accounts"],
    )
    def put(self, request: Request) -> Response:
        serializer = ProfilePhotoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        citizen = CitizenProfileService.set_profile_photo(
            citizen_id_for(request.user),
            serializer.validated_data["file_id"],
        )
        return Response(CitizenSerializer(citizen).data, status=status.HTTP_200_OK)
