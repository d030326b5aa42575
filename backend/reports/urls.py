"""
Reports app URL configuration.

All routes are registered under the ``/api/reports/`` prefix.

Route Hierarchy
---------------
  /api/reports/                        → list / create
  /api/reports/{id}/                   → retrieve
  /api/reports/assigned/               → reports routed to the current officer
  /api/reports/mine/                   → reports filed by the current citizen
  /api/reports/by-office/              → reports handled by the caller's office

  ── Workflow @actions ───────────────────────────────────────────
  PATCH /api/reports/{id}/status/         → validated status transition
  GET   /api/reports/{id}/next-statuses/  → reachable statuses for the caller
"""

from rest_framework.routers import DefaultRouter

from .views import ReportViewSet

router = DefaultRouter()
router.register(
    prefix=r"reports",
    viewset=ReportViewSet,
    basename="report",
)

urlpatterns = router.urls
