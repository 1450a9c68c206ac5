"""
Public funnel API.

CRITICAL RULES:
- NO authentication, throttled per IP
- Responses never echo submitted clinical data
- PHI is never logged
"""
import time

from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle

from apps.core.exceptions import PipelineError, pipeline_error_response, validation_error_response
from apps.core.observability import get_sanitized_logger, metrics
from apps.core.observability.events import log_domain_event
from apps.ledger.models import ActorTypeChoices
from apps.ledger.services import Actor
from .serializers import (
    CareRequestSubmitSerializer,
    IntakeFormSubmitSerializer,
    LeadCheckpointSerializer,
    LeadCreateSerializer,
)
from .services import advance_lead_checkpoint, create_lead, submit_care_request, submit_intake_form

logger = get_sanitized_logger(__name__)

PATIENT_ACTOR = Actor(ActorTypeChoices.PATIENT)


class LeadHourlyThrottle(AnonRateThrottle):
    """Lead submissions per IP per hour."""
    scope = 'lead_submissions'


class LeadBurstThrottle(AnonRateThrottle):
    """Burst protection for lead submissions."""
    scope = 'lead_burst'


class IntakeSubmissionThrottle(AnonRateThrottle):
    """Care-request and intake-form submissions per IP."""
    scope = 'intake_submissions'


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([LeadBurstThrottle, LeadHourlyThrottle])
def create_lead_view(request):
    """
    POST /public/leads/

    full_name required; email or phone required. Responds 201 {success, lead_id}.
    """
    start_time = time.time()

    serializer = LeadCreateSerializer(data=request.data)
    if not serializer.is_valid():
        metrics.public_leads_requests_total.labels(result='rejected').inc()
        logger.warning(
            'Public lead rejected - validation error',
            extra={
                'error_fields': sorted(serializer.errors.keys()),
                'duration_ms': int((time.time() - start_time) * 1000),
            }
        )
        return validation_error_response(serializer.errors)

    lead = create_lead(serializer.validated_data, actor=PATIENT_ACTOR)
    metrics.public_leads_requests_total.labels(result='accepted').inc()
    log_domain_event(
        'public.lead.created',
        entity_type='Lead',
        entity_id=str(lead.id),
        pillar_origin=lead.pillar_origin,
        duration_ms=int((time.time() - start_time) * 1000),
    )
    return Response({'success': True, 'lead_id': str(lead.id)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([IntakeSubmissionThrottle])
def lead_checkpoint_view(request, lead_id):
    """
    POST /public/leads/{lead_id}/checkpoint/ {checkpoint}

    Moving backwards (or repeating) is accepted and reported as advanced=false.
    """
    serializer = LeadCheckpointSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    try:
        advanced = advance_lead_checkpoint(lead_id, serializer.validated_data['checkpoint'], actor=PATIENT_ACTOR)
    except PipelineError as e:
        return pipeline_error_response(e)
    return Response({'success': True, 'lead_id': str(lead_id), 'advanced': advanced})


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([IntakeSubmissionThrottle])
def submit_care_request_view(request):
    """POST /public/care-requests/ {payload, lead_id?}"""
    serializer = CareRequestSubmitSerializer(data=request.data)
    if not serializer.is_valid():
        metrics.public_intake_submissions_total.labels(kind='care_request', result='rejected').inc()
        return validation_error_response(serializer.errors)
    care_request = submit_care_request(
        serializer.validated_data['payload'],
        lead=serializer.validated_data.get('lead'),
    )
    return Response(
        {'success': True, 'care_request_id': str(care_request.id)},
        status=status.HTTP_201_CREATED
    )


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([IntakeSubmissionThrottle])
def submit_intake_form_view(request):
    """POST /public/intake-forms/"""
    serializer = IntakeFormSubmitSerializer(data=request.data)
    if not serializer.is_valid():
        metrics.public_intake_submissions_total.labels(kind='intake_form', result='rejected').inc()
        return validation_error_response(serializer.errors)
    raw_payload = request.data.dict() if hasattr(request.data, 'dict') else dict(request.data)
    intake_form = submit_intake_form(serializer.validated_data, raw_payload)
    return Response(
        {'success': True, 'intake_form_id': str(intake_form.id)},
        status=status.HTTP_201_CREATED
    )
