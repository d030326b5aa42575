"""
Files app URL configuration.

  POST   /api/files/upload/      → stage an upload
  DELETE /api/files/{file_id}/   → discard a staged upload
"""

from rest_framework.routers import DefaultRouter

from .views import StagedFileViewSet

router = DefaultRouter()
router.register(
    prefix=r"files",
    viewset=StagedFileViewSet,
    basename="staged-file",
)

urlpatterns = router.urls
