"""
Intake views - staff triage of care requests, intake forms and pending episodes.
"""
from rest_framework import mixins, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authz.permissions import IsClinicalStaff
from apps.core.exceptions import PipelineError, pipeline_error_response
from apps.core.observability.correlation import set_request_user
from apps.ledger.models import EntityTypeChoices
from apps.ledger.services import actor_for_user, record_lifecycle_event
from .models import CareRequest, IntakeForm, PendingEpisode
from .serializers import (
    ArchiveSerializer,
    AssignClinicianSerializer,
    CareRequestSerializer,
    ClarificationSerializer,
    IntakeFormSerializer,
    PendingEpisodeSerializer,
)
from .services import archive_care_request, assign_clinician, request_clarification, start_review

class CareRequestViewSet(viewsets.ReadOnlyModelViewSet):
    """
    GET /api/v1/intake/care-requests/?status=SUBMITTED
    POST /api/v1/intake/care-requests/{id}/assign/ {clinician_id}
    POST /api/v1/intake/care-requests/{id}/start-review/
    POST /api/v1/intake/care-requests/{id}/request-clarification/ {message}
    POST /api/v1/intake/care-requests/{id}/archive/ {reason}

    Approval lives under /api/v1/episodes/conversions/approve-care-request/.
    """
    serializer_class = CareRequestSerializer
    permission_classes = [IsClinicalStaff]

    def get_queryset(self):
        queryset = CareRequest.objects.select_related('assigned_clinician')
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        clinician_id = self.request.query_params.get('assigned_clinician')
        if clinician_id:
            queryset = queryset.filter(assigned_clinician_id=clinician_id)
        return queryset

    def _run_transition(self, request, operation, serializer_class=None, **kwargs):
        set_request_user(request.user)
        if serializer_class is not None:
            serializer = serializer_class(data=request.data)
            serializer.is_valid(raise_exception=True)
            kwargs.update(serializer.validated_data)
        try:
            care_request = operation(self.kwargs['pk'], actor=actor_for_user(request.user), **kwargs)
        except PipelineError as e:
            return pipeline_error_response(e)
        return Response(CareRequestSerializer(care_request).data)

    @action(detail=True, methods=['post'])
    def assign(self, request, pk=None):
        return self._run_transition(request, assign_clinician, AssignClinicianSerializer)

    @action(detail=True, methods=['post'], url_path='start-review')
    def start_review(self, request, pk=None):
        return self._run_transition(request, start_review)

    @action(detail=True, methods=['post'], url_path='request-clarification')
    def request_clarification(self, request, pk=None):
        return self._run_transition(request, request_clarification, ClarificationSerializer)

    @action(detail=True, methods=['post'])
    def archive(self, request, pk=None):
        return self._run_transition(request, archive_care_request, ArchiveSerializer)


class IntakeFormViewSet(viewsets.ReadOnlyModelViewSet):
    """
    GET /api/v1/intake/intake-forms/?status=submitted
    """
    serializer_class = IntakeFormSerializer
    permission_classes = [IsClinicalStaff]

    def get_queryset(self):
        queryset = IntakeForm.objects.all()
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset


class PendingEpisodeViewSet(mixins.CreateModelMixin, viewsets.ReadOnlyModelViewSet):
    """
    GET /api/v1/intake/pending-episodes/
    POST /api/v1/intake/pending-episodes/ {patient_name, clinician, body_region}

    The response carries the access code the patient enters on the intake form.
    """
    serializer_class = PendingEpisodeSerializer
    permission_classes = [IsClinicalStaff]
    queryset = PendingEpisode.objects.all()

    def perform_create(self, serializer):
        set_request_user(self.request.user)
        pending = serializer.save()
        record_lifecycle_event(
            EntityTypeChoices.PENDING_EPISODE,
            pending.id,
            'PENDING_EPISODE_CREATED',
            actor=actor_for_user(self.request.user),
            metadata={'clinician_id': str(pending.clinician_id) if pending.clinician_id else None},
        )
