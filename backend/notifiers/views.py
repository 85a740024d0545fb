"""
API views for notifiers and the reconcile engine.
"""

import logging

from django.db.utils import IntegrityError
from rest_framework import status
from rest_framework.exceptions import ValidationError as DrfValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from config.domain_exceptions import NotFoundError, ValidationError
from notifications.handlers import get_all_handlers_metadata
from scheduler import get_scheduler_status

from .models import Notifier
from .runtime import get_engine_status, run_cycle
from .serializers import ChannelMetadataSerializer, NotifierSerializer

logger = logging.getLogger(__name__)


class NotifierListCreateView(APIView):
    """List all notifiers or create a new one."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        """List all notifiers."""
        serializer = NotifierSerializer(Notifier.objects.all(), many=True)
        return Response(serializer.data)

    def post(self, request):
        """Create a new notifier."""
        serializer = NotifierSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            notifier = serializer.save()
        except IntegrityError:
            raise DrfValidationError({"name": ["A notifier with this name already exists."]})
        return Response(NotifierSerializer(notifier).data, status=status.HTTP_201_CREATED)


class NotifierDetailView(APIView):
    """Retrieve, update, or delete a notifier."""

    permission_classes = [IsAuthenticated]

    def get_object(self, pk) -> Notifier:
        try:
            return Notifier.objects.get(pk=pk)
        except Notifier.DoesNotExist:
            raise NotFoundError("Notifier not found.")

    def get(self, request, pk):
        return Response(NotifierSerializer(self.get_object(pk)).data)

    def put(self, request, pk):
        """Update a notifier."""
        serializer = NotifierSerializer(self.get_object(pk), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            notifier = serializer.save()
        except IntegrityError:
            raise DrfValidationError({"name": ["A notifier with this name already exists."]})
        return Response(NotifierSerializer(notifier).data)

    # PATCH uses the same logic as PUT (both support partial updates)
    patch = put

    def delete(self, request, pk):
        self.get_object(pk).delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class ReconcileView(APIView):
    """Run one reconcile cycle now and return its summary."""

    permission_classes = [IsAuthenticated]

    def post(self, request):
        timeout = request.data.get("timeout_seconds") if isinstance(request.data, dict) else None
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                raise ValidationError("timeout_seconds must be a positive number.")

        result = run_cycle(timeout_sec=timeout)
        return Response(result.as_dict())


class EngineStatusView(APIView):
    """Engine counters, dedup size, limiter tokens and scheduler health."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        payload = get_engine_status()
        scheduler_status = get_scheduler_status()
        payload["scheduler"] = {
            "running": scheduler_status["running"],
            "tasks": {
                name: task
                for name, task in scheduler_status["tasks"].items()
                if name.startswith("notifiers_")
            },
        }
        return Response(payload)


class ChannelsView(APIView):
    """List available channel tags with their config schemas."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        serializer = ChannelMetadataSerializer(get_all_handlers_metadata(), many=True)
        return Response(serializer.data)
