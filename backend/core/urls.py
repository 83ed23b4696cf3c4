"""
Core app URL configuration.

URL prefix (registered in ``backend/urls.py``)::

    path('api/core/', include('core.urls'))

Endpoint summary
----------------
GET  /api/core/constants/                         System choice enumerations.
GET  /api/core/notifications/                     Inbox of the authenticated user.
GET  /api/core/notifications/unread-count/        Unread counter.
POST /api/core/notifications/read-multiple/       Mark several as read.
GET  /api/core/notifications/{id}/                Retrieve one.
POST /api/core/notifications/{id}/read/           Mark one as read.
DEL  /api/core/notifications/{id}/                Soft delete.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

app_name = "core"

# ── Router for ViewSet-based endpoints ───────────────────────────────
router = DefaultRouter()
router.register(
    prefix=r"notifications",
    viewset=views.NotificationViewSet,
    basename="notification",
)

urlpatterns = [
    # ── System Constants / Enums ─────────────────────────────────────
    path(
        "constants/",
        views.SystemConstantsView.as_view(),
        name="system-constants",
    ),

    # ── Notifications (router-generated URLs) ────────────────────────
    path("", include(router.urls)),
]
