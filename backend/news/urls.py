"""
News app URL configuration.

All routes are registered under the ``/api/news/`` prefix.

Route Hierarchy
---------------
  /api/news/                                 → list / create
  /api/news/statistics/                      → dashboard counters
  /api/news/court-submission/                → court files an advisory or communique
  /api/news/public/                          → published items (anonymous)
  /api/news/public/{slug}/                   → one published item (anonymous)
  /api/news/{id}/                            → retrieve / partial_update / destroy

  ── Workflow @actions ───────────────────────────────────────────
  POST /api/news/{id}/submit-to-director/
  POST /api/news/{id}/approve-director/
  POST /api/news/{id}/approve-president/
  POST /api/news/{id}/reject/
  GET  /api/news/{id}/history/
"""

from rest_framework.routers import DefaultRouter

from .views import NewsViewSet

router = DefaultRouter()
router.register(r"news", NewsViewSet, basename="news")

urlpatterns = router.urls
