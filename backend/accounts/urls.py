"""
Accounts app URL configuration.

Included in the project-level ``urls.py`` as::

    path('api/accounts/', include('accounts.urls')),

Endpoint Map
------------
    PUT    /me/profile-photo/           → ProfilePhotoView
"""

from django.urls import path

from .views import ProfilePhotoView

app_name = "accounts"

urlpatterns = [
    path("me/profile-photo/", ProfilePhotoView.as_view(), name="profile-photo"),
]
