"""
Case files app URL configuration.

All routes are registered under the ``/api/case-files/`` prefix.

Route Hierarchy
---------------
  /api/case-files/                          → list / create
  /api/case-files/statistics/               → dashboard counters
  /api/case-files/{id}/                     → retrieve / partial_update / destroy

  ── Workflow @actions (resource-level RPC) ──────────────────────
  POST /api/case-files/{id}/submit/         → judge submits to Appeals President
  POST /api/case-files/{id}/approve/        → approve at the current level
  POST /api/case-files/{id}/reject/         → reject back to the creator
  POST /api/case-files/{id}/return/         → return one level for revision
  GET  /api/case-files/{id}/history/        → approval ledger

  ── Document @actions ───────────────────────────────────────────
  GET|POST   /api/case-files/{id}/documents/           → list / upload
  GET|DELETE /api/case-files/{id}/documents/{doc_id}/  → retrieve / delete
"""

from rest_framework.routers import DefaultRouter

from .views import CaseFileViewSet

router = DefaultRouter()
router.register(r"case-files", CaseFileViewSet, basename="case-file")

urlpatterns = router.urls
