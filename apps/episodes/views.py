"""
Episode views - conversions, episodes, continuations.
"""
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.permissions import CanOpenEpisodes, IsClinicalStaff
from apps.core.exceptions import (
    PipelineError,
    pipeline_error_response,
    unexpected_error_response,
)
from apps.core.observability.correlation import set_request_user
from apps.ledger.models import EntityTypeChoices
from apps.ledger.services import actor_for_user, record_lifecycle_event
from .guards import ValidationFailed
from .models import Episode, PendingEpisodeContinuation
from .serializers import (
    ConversionRequestSerializer,
    EpisodeIntakeSnapshotSerializer,
    EpisodeSerializer,
    PendingEpisodeContinuationSerializer,
)
from .services import (
    approve_care_request,
    cancel_continuation,
    close_episode,
    complete_continuation_setup,
    convert_intake_to_episode,
)


class ConversionView(APIView):
    """
    POST {"sourceRecordId": "<uuid>"}

    200 {success: true, episodeId, patientId, message}
    4xx {success: false, error, code}
    500 {success: false, error, code: INTERNAL_ERROR}
    """
    permission_classes = [CanOpenEpisodes]
    conversion = None

    def post(self, request):
        set_request_user(request.user)
        serializer = ConversionRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return pipeline_error_response(ValidationFailed('sourceRecordId must be a valid id'))

        source_record_id = serializer.validated_data['sourceRecordId']
        try:
            result = self.conversion(source_record_id, actor_user=request.user)
        except PipelineError as e:
            return pipeline_error_response(e)
        except Exception as e:
            return unexpected_error_response(
                e, self.__class__.__name__, source_record_id=str(source_record_id)
            )
        return Response(result.as_response_data(), status=status.HTTP_200_OK)


class ApproveCareRequestView(ConversionView):
    """POST /api/v1/episodes/conversions/approve-care-request/"""
    conversion = staticmethod(approve_care_request)


class ConvertIntakeView(ConversionView):
    """POST /api/v1/episodes/conversions/convert-intake/"""
    conversion = staticmethod(convert_intake_to_episode)


class CompleteContinuationView(ConversionView):
    """POST /api/v1/episodes/conversions/complete-continuation/"""
    conversion = staticmethod(complete_continuation_setup)


class EpisodeViewSet(viewsets.ReadOnlyModelViewSet):
    """
    GET /api/v1/episodes/?status=ACTIVE&clinician=<uuid>&patient=<uuid>
    GET /api/v1/episodes/{id}/
    GET /api/v1/episodes/{id}/snapshots/
    POST /api/v1/episodes/{id}/close/ (admin or clinician)
    """
    serializer_class = EpisodeSerializer
    permission_classes = [IsClinicalStaff]
    lookup_value_regex = '[^/]+'

    def get_queryset(self):
        queryset = Episode.objects.select_related('clinician', 'patient')
        for param, lookup in (('status', 'status'), ('clinician', 'clinician_id'), ('patient', 'patient_id')):
            value = self.request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{lookup: value})
        return queryset

    def get_permissions(self):
        if self.action == 'close':
            return [CanOpenEpisodes()]
        return super().get_permissions()

    @action(detail=True, methods=['get'])
    def snapshots(self, request, pk=None):
        episode = self.get_object()
        serializer = EpisodeIntakeSnapshotSerializer(episode.intake_snapshots.all(), many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['post'])
    def close(self, request, pk=None):
        set_request_user(request.user)
        try:
            episode = close_episode(pk, actor_user=request.user)
        except PipelineError as e:
            return pipeline_error_response(e)
        return Response(EpisodeSerializer(episode).data)


class PendingEpisodeContinuationViewSet(mixins.CreateModelMixin, viewsets.ReadOnlyModelViewSet):
    """
    GET /api/v1/episodes/continuations/?status=PENDING&source_episode=EP-...
    POST /api/v1/episodes/continuations/
    POST /api/v1/episodes/continuations/{id}/cancel/

    Setup is completed through /api/v1/episodes/conversions/complete-continuation/.
    """
    serializer_class = PendingEpisodeContinuationSerializer
    permission_classes = [CanOpenEpisodes]

    def get_queryset(self):
        queryset = PendingEpisodeContinuation.objects.select_related('source_episode', 'clinician')
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        source_episode = self.request.query_params.get('source_episode')
        if source_episode:
            queryset = queryset.filter(source_episode_id=source_episode)
        return queryset

    def perform_create(self, serializer):
        set_request_user(self.request.user)
        continuation = serializer.save(created_by=self.request.user)
        record_lifecycle_event(
            EntityTypeChoices.CONTINUATION,
            continuation.id,
            'CONTINUATION_CREATED',
            actor=actor_for_user(self.request.user),
            metadata={
                'source_episode_id': continuation.source_episode_id,
                'continuation_source': continuation.continuation_source,
            },
        )

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        set_request_user(request.user)
        continuation = self.get_object()
        try:
            continuation = cancel_continuation(continuation.id, actor_user=request.user)
        except PipelineError as e:
            return pipeline_error_response(e)
        return Response(self.get_serializer(continuation).data)
