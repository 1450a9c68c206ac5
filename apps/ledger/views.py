"""
Ledger views - read-only audit trail.
"""
from rest_framework import viewsets

from apps.authz.permissions import IsClinicalStaff
from .models import LifecycleEvent
from .serializers import LifecycleEventSerializer


class LifecycleEventViewSet(viewsets.ReadOnlyModelViewSet):
    """
    GET /api/v1/ledger/events/?entity_type=episode&entity_id=EP-...
    GET /api/v1/ledger/events/?event_type=CARE_REQUEST_APPROVED

    Events are returned oldest first so an entity's history reads top-down.
    """
    serializer_class = LifecycleEventSerializer
    permission_classes = [IsClinicalStaff]

    def get_queryset(self):
        queryset = LifecycleEvent.objects.all()
        for param in ('entity_type', 'entity_id', 'event_type', 'actor_type'):
            value = self.request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{param: value})
        return queryset.order_by('created_at')
