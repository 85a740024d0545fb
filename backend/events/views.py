"""
API views for cluster events.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from config.domain_exceptions import ValidationError
from config.pagination import EnvelopePagination

from .ingest import ingest_events
from .models import ClusterEvent
from .serializers import ClusterEventSerializer


class ClusterEventListView(GenericAPIView):
    """
    GET /api/events/ - Paginated stored events (filter by namespace/type/reason).
    POST /api/events/ - Ingest Kubernetes Event objects, lists, EventLists or watch envelopes.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = EnvelopePagination
    serializer_class = ClusterEventSerializer

    def get_queryset(self):
        qs = ClusterEvent.objects.all().order_by("-last_timestamp", "-id")
        for param in ("namespace", "type", "reason"):
            value = self.request.query_params.get(param)
            if value:
                qs = qs.filter(**{param: value})
        return qs

    def get(self, request):
        qs = self.get_queryset()
        page = self.paginate_queryset(qs)
        if page is None:
            return Response(self.get_serializer(qs, many=True).data)
        return self.get_paginated_response(self.get_serializer(page, many=True).data)

    def post(self, request):
        if not isinstance(request.data, (dict, list)) or not request.data:
            raise ValidationError("Expected a Kubernetes Event object, a list of events or an EventList.")

        result = ingest_events(request.data)
        if result.upserted == 0 and result.deleted == 0 and result.rejected:
            raise ValidationError("No valid events in payload (each needs metadata.uid, a namespace and a type).")
        return Response(result.as_dict(), status=status.HTTP_202_ACCEPTED)
