"""
URL routing for cluster events API.
"""

from django.urls import path

from . import views

app_name = "events"

urlpatterns = [
    path("", views.ClusterEventListView.as_view(), name="event-list"),
]
