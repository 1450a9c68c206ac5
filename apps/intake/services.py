"""
Intake services - funnel checkpoints and care-request triage.

Every status change is a conditional UPDATE filtered on the statuses the
transition is allowed from; zero rows affected means the record was not
in an allowed state (or another request moved it first).
"""
import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone
from rest_framework import status

from apps.core.exceptions import PipelineError
from apps.core.observability import metrics
from apps.core.observability.events import log_domain_event, log_guard_rejection
from apps.ledger.models import EntityTypeChoices
from apps.ledger.services import Actor, SYSTEM_ACTOR, record_lifecycle_event
from .models import (
    CHECKPOINT_ORDER,
    CareRequest,
    CareRequestStatusChoices,
    IntakeForm,
    Lead,
    LeadCheckpointChoices,
)
from .payloads import IntakePayload

logger = logging.getLogger(__name__)

CHECKPOINT_TIMESTAMP_FIELDS = {
    LeadCheckpointChoices.SEVERITY_CHECKED: 'severity_checked_at',
    LeadCheckpointChoices.INTAKE_STARTED: 'intake_started_at',
    LeadCheckpointChoices.INTAKE_COMPLETED: 'intake_completed_at',
    LeadCheckpointChoices.EPISODE_OPENED: 'episode_opened_at',
}

_OPEN_STATUSES = {
    CareRequestStatusChoices.SUBMITTED,
    CareRequestStatusChoices.ASSIGNED,
    CareRequestStatusChoices.IN_REVIEW,
    CareRequestStatusChoices.CLARIFICATION_REQUESTED,
}

# target status -> statuses it may be entered from
TRIAGE_TRANSITIONS = {
    CareRequestStatusChoices.ASSIGNED: _OPEN_STATUSES,
    CareRequestStatusChoices.IN_REVIEW: _OPEN_STATUSES - {CareRequestStatusChoices.IN_REVIEW},
    CareRequestStatusChoices.CLARIFICATION_REQUESTED: _OPEN_STATUSES - {CareRequestStatusChoices.CLARIFICATION_REQUESTED},
    CareRequestStatusChoices.ARCHIVED: _OPEN_STATUSES,
}


class TriageError(PipelineError):
    """Care-request triage precondition violation."""
    code = 'INVALID_STATE'


class InvalidCheckpointError(PipelineError):
    code = 'INVALID_CHECKPOINT'
    http_status = status.HTTP_400_BAD_REQUEST


# ============================================================================
# Lead funnel
# ============================================================================

def create_lead(validated_data, actor: Actor = SYSTEM_ACTOR) -> Lead:
    """Create a lead at the 'started' checkpoint and record LEAD_CREATED."""
    lead = Lead.objects.create(**validated_data)
    record_lifecycle_event(
        EntityTypeChoices.LEAD,
        lead.id,
        'LEAD_CREATED',
        actor=actor,
        metadata={
            'utm_source': lead.utm_source,
            'utm_campaign': lead.utm_campaign,
            'origin_cta': lead.origin_cta,
            'pillar_origin': lead.pillar_origin,
        },
    )
    return lead


def advance_lead_checkpoint(lead_id, checkpoint: str, actor: Actor = SYSTEM_ACTOR) -> bool:
    """
    Move a lead forward to ``checkpoint``.

    Returns:
        True if the lead advanced, False if it was already at or past the
        checkpoint (or does not exist). Never moves a lead backwards.

    Raises:
        InvalidCheckpointError: unknown checkpoint name
    """
    if checkpoint not in CHECKPOINT_ORDER:
        raise InvalidCheckpointError(f'Unknown checkpoint: {checkpoint}')

    earlier = CHECKPOINT_ORDER[:CHECKPOINT_ORDER.index(checkpoint)]
    now = timezone.now()
    changes = {'checkpoint_status': checkpoint, 'updated_at': now}
    timestamp_field = CHECKPOINT_TIMESTAMP_FIELDS.get(checkpoint)
    if timestamp_field:
        changes[timestamp_field] = now

    advanced = Lead.objects.filter(pk=lead_id, checkpoint_status__in=earlier).update(**changes)

    if advanced:
        record_lifecycle_event(
            EntityTypeChoices.LEAD,
            lead_id,
            f'LEAD_CHECKPOINT_{str(checkpoint).upper()}',
            actor=actor,
        )
    log_domain_event(
        'lead.checkpoint_advanced' if advanced else 'lead.checkpoint_unchanged',
        entity_type='Lead',
        entity_id=str(lead_id),
        result='success' if advanced else 'duplicate',
        checkpoint=str(checkpoint),
    )
    return bool(advanced)


# ============================================================================
# Public submissions
# ============================================================================

@transaction.atomic
def submit_care_request(payload, lead: Optional[Lead] = None, clinic=None) -> CareRequest:
    """Create a SUBMITTED care request holding the payload exactly as received."""
    care_request = CareRequest.objects.create(
        intake_payload=payload,
        lead=lead,
        clinic=clinic,
    )
    parsed = IntakePayload.from_dict(payload)
    record_lifecycle_event(
        EntityTypeChoices.CARE_REQUEST,
        care_request.id,
        'CARE_REQUEST_SUBMITTED',
        metadata={
            'lead_id': str(lead.id) if lead else None,
            'payload_version': parsed.version,
            'complaint_count': len(parsed.complaints),
        },
    )
    metrics.public_intake_submissions_total.labels(kind='care_request', result='accepted').inc()
    return care_request


@transaction.atomic
def submit_intake_form(validated_data, raw_payload) -> IntakeForm:
    """
    Create an intake form and move its lead to 'intake_completed'.

    ``raw_payload`` is the submission as received, kept alongside the typed
    columns.
    """
    validated_data = dict(validated_data)
    if validated_data.get('email'):
        validated_data['email'] = validated_data['email'].strip().lower()
    intake_form = IntakeForm.objects.create(payload=raw_payload, **validated_data)

    record_lifecycle_event(
        EntityTypeChoices.INTAKE_FORM,
        intake_form.id,
        'INTAKE_FORM_SUBMITTED',
        metadata={'lead_id': str(intake_form.lead_id) if intake_form.lead_id else None},
    )
    if intake_form.lead_id:
        advance_lead_checkpoint(intake_form.lead_id, LeadCheckpointChoices.INTAKE_COMPLETED)

    metrics.public_intake_submissions_total.labels(kind='intake_form', result='accepted').inc()
    return intake_form


# ============================================================================
# Care-request triage
# ============================================================================

def _transition_care_request(care_request_id, target_status, actor: Actor, extra_changes=None, metadata=None):
    allowed = TRIAGE_TRANSITIONS[target_status]
    changes = {'status': target_status, 'updated_at': timezone.now()}
    changes.update(extra_changes or {})

    updated = CareRequest.objects.filter(
        pk=care_request_id, status__in=allowed
    ).update(**changes)

    if not updated:
        current = CareRequest.objects.filter(pk=care_request_id).values_list('status', flat=True).first()
        if current is None:
            raise TriageError(
                'Care request not found',
                code='NOT_FOUND',
                http_status=status.HTTP_404_NOT_FOUND,
            )
        log_guard_rejection(
            'care_request_triage', 'INVALID_STATE', 'CareRequest', care_request_id,
            from_status=current, to_status=str(target_status),
        )
        raise TriageError(f'Care request is {current} and cannot move to {target_status}')

    record_lifecycle_event(
        EntityTypeChoices.CARE_REQUEST,
        care_request_id,
        f'STATUS_CHANGED_TO_{target_status}',
        actor=actor,
        metadata=metadata or {},
    )
    return CareRequest.objects.select_related('assigned_clinician').get(pk=care_request_id)


@transaction.atomic
def assign_clinician(care_request_id, clinician, actor: Actor = SYSTEM_ACTOR) -> CareRequest:
    """Assign (or reassign) a clinician; status becomes ASSIGNED."""
    care_request = _transition_care_request(
        care_request_id,
        CareRequestStatusChoices.ASSIGNED,
        actor,
        extra_changes={'assigned_clinician': clinician},
        metadata={'clinician_id': str(clinician.id)},
    )
    record_lifecycle_event(
        EntityTypeChoices.CARE_REQUEST,
        care_request_id,
        'CLINICIAN_ASSIGNED',
        actor=actor,
        metadata={'clinician_id': str(clinician.id)},
    )
    return care_request


@transaction.atomic
def start_review(care_request_id, actor: Actor = SYSTEM_ACTOR) -> CareRequest:
    return _transition_care_request(care_request_id, CareRequestStatusChoices.IN_REVIEW, actor)


@transaction.atomic
def request_clarification(care_request_id, message: str, actor: Actor = SYSTEM_ACTOR) -> CareRequest:
    return _transition_care_request(
        care_request_id,
        CareRequestStatusChoices.CLARIFICATION_REQUESTED,
        actor,
        extra_changes={'clarification_message': message},
    )


@transaction.atomic
def archive_care_request(care_request_id, reason: str, actor: Actor = SYSTEM_ACTOR) -> CareRequest:
    return _transition_care_request(
        care_request_id,
        CareRequestStatusChoices.ARCHIVED,
        actor,
        extra_changes={'archive_reason': reason},
        metadata={'has_reason': bool(reason)},
    )
