"""
Notifications views - the current user's in-app inbox and the admin
failure log.
"""
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.authz.permissions import IsAdminRole
from apps.core.exceptions import PipelineError, pipeline_error_response
from .models import Notification, NotificationFailure, NotificationFailureStatusChoices
from .retries import retry_failure
from .serializers import NotificationFailureSerializer, NotificationSerializer


class NotificationViewSet(viewsets.ReadOnlyModelViewSet):
    """
    GET /api/v1/notifications/ - Own notifications (?unread=true)
    POST /api/v1/notifications/{id}/read/ - Mark one as read
    """
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        queryset = Notification.objects.filter(recipient=self.request.user)
        if self.request.query_params.get('unread', 'false').lower() == 'true':
            queryset = queryset.filter(is_read=False)
        return queryset

    @action(detail=True, methods=['post'])
    def read(self, request, pk=None):
        notification = self.get_object()
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=['is_read'])
        return Response(self.get_serializer(notification).data)


class NotificationFailureViewSet(viewsets.ReadOnlyModelViewSet):
    """
    GET /api/v1/notifications/failures/ - Failed sends (?status=pending)
    POST /api/v1/notifications/failures/{id}/retry/ - Retry one now
    """
    serializer_class = NotificationFailureSerializer
    permission_classes = [IsAdminRole]

    def get_queryset(self):
        queryset = NotificationFailure.objects.all()
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    @action(detail=True, methods=['post'])
    def retry(self, request, pk=None):
        failure = self.get_object()
        if failure.status != NotificationFailureStatusChoices.PENDING:
            return pipeline_error_response(PipelineError(
                f'Notification failure is {failure.status}',
                code='NOT_RETRYABLE',
            ))

        result = retry_failure(failure)
        if result is None:
            return pipeline_error_response(PipelineError(
                'Notification could not be retried now',
                code='RETRY_NOT_STARTED',
            ))

        failure.refresh_from_db()
        return Response(
            {'delivered': result.delivered, **self.get_serializer(failure).data},
            status=status.HTTP_200_OK,
        )
