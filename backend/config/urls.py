from __future__ import annotations

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/notifiers/", include("notifiers.urls")),
    path("api/events/", include("events.urls")),
]
