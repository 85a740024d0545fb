"""
URL routing for notifiers API.
"""

from django.urls import path

from . import views

app_name = "notifiers"

urlpatterns = [
    path("", views.NotifierListCreateView.as_view(), name="notifier-list"),
    path("<int:pk>/", views.NotifierDetailView.as_view(), name="notifier-detail"),
    path("reconcile/", views.ReconcileView.as_view(), name="reconcile"),
    path("engine/", views.EngineStatusView.as_view(), name="engine-status"),
    path("channels/", views.ChannelsView.as_view(), name="channels"),
]
