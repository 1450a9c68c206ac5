"""
Conversion orchestrator: care request, intake form or continuation -> Episode.

All three flows share one shape, run inside a single transaction:

    guard -> resolve identity -> create episode (with back-reference)
      -> snapshot (non-fatal) -> access grant (non-fatal)
      -> claim source record (conditional UPDATE)
      -> ledger events (non-fatal)

The episode insert and the source claim commit together. If the claim
loses a race the whole transaction rolls back, so no orphan episode and no
"converted" source without an episode can exist. Notifications are queued
with notify_on_commit and go through the notification gate, so a
rolled-back conversion never notifies and a failed notification, or a
failure while preparing one, never changes the result.
"""
from contextlib import contextmanager
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from apps.authz.models import RoleChoices
from apps.core.observability import metrics
from apps.core.observability.events import (
    log_consistency_checkpoint,
    log_domain_event,
    log_enrichment_failure,
    log_guard_rejection,
)
from apps.core.observability.tracing import trace_span
from apps.intake.models import LeadCheckpointChoices
from apps.intake.payloads import PAYLOAD_VERSION, IntakePayload
from apps.intake.services import advance_lead_checkpoint
from apps.ledger.models import EntityTypeChoices
from apps.ledger.services import Actor, actor_for_user, record_lifecycle_event
from apps.notifications.gate import notify, notify_on_commit
from apps.patients.services import resolve_patient_account
from .guards import (
    FLOW_CARE_REQUEST,
    FLOW_CONTINUATION,
    FLOW_INTAKE_FORM,
    AlreadyConverted,
    ConversionError,
    InvalidState,
    claim_care_request,
    claim_continuation,
    claim_intake_form,
    claim_pending_episode,
    find_pending_episode,
    get_episode_or_not_found,
    load_care_request_for_approval,
    load_continuation_for_setup,
    load_intake_form_for_conversion,
    resolve_intake_clinician,
)
from .models import (
    OPEN_EPISODE_STATUSES,
    ContinuationStatusChoices,
    Episode,
    EpisodeIntakeSnapshot,
    EpisodeStatusChoices,
    PatientEpisodeAccess,
    PendingEpisodeContinuation,
)

DEFAULT_CARE_REQUEST_REGION = 'Neurological'
CARE_REQUEST_EPISODE_TYPE = 'Neurological'
DEFAULT_INTAKE_REGION = 'General'


class ConversionResult(NamedTuple):
    episode_id: str
    patient_id: Optional[str]
    created: bool
    message: str

    def as_response_data(self):
        return {
            'success': True,
            'episodeId': self.episode_id,
            'patientId': self.patient_id,
            'message': self.message,
        }


class LedgerEntry(NamedTuple):
    entity_type: str
    entity_id: Any
    event_type: str
    metadata: Dict[str, Any] = {}


@contextmanager
def _conversion(flow: str, **attributes):
    """Trace, time and count one conversion attempt."""
    with trace_span(f'conversion.{flow}', attributes=attributes):
        with metrics.conversion_duration_seconds.labels(flow=flow).time():
            try:
                yield
            except ConversionError:
                metrics.conversions_total.labels(flow=flow, result='rejected').inc()
                raise
            except Exception:
                metrics.conversions_total.labels(flow=flow, result='failure').inc()
                raise


def _enrich(flow: str, step: str, episode: Episode, func, *args, **kwargs) -> bool:
    """Run a non-essential write in its own savepoint. Returns whether it landed."""
    try:
        with transaction.atomic():
            func(*args, **kwargs)
    except Exception as e:
        log_enrichment_failure(flow, step, 'Episode', episode.id, e)
        return False
    return True


def store_intake_snapshot(episode, payload, payload_version=PAYLOAD_VERSION, created_by=None, **source):
    return EpisodeIntakeSnapshot.objects.create(
        episode=episode,
        payload=payload,
        payload_version=payload_version,
        created_by=created_by if created_by is not None and created_by.is_authenticated else None,
        **source
    )


def grant_patient_access(patient, episode):
    access, _ = PatientEpisodeAccess.objects.update_or_create(
        patient=patient,
        episode=episode,
        defaults={'is_active': True},
    )
    return access


def _record_ledger(entries: List[LedgerEntry], actor: Actor):
    for entry in entries:
        record_lifecycle_event(
            entry.entity_type,
            entry.entity_id,
            entry.event_type,
            actor=actor,
            metadata=entry.metadata,
        )


def _advance_lead(lead_id):
    advance_lead_checkpoint(lead_id, LeadCheckpointChoices.EPISODE_OPENED)


def _episode_context(episode: Episode) -> Dict[str, Any]:
    context = {
        'episode_id': episode.id,
        'episode_type': episode.episode_type,
        'body_region': episode.body_region,
        'clinician_name': episode.clinician_name,
        'patient_name': episode.patient_name,
    }
    if episode.clinic is not None:
        context.update(episode.clinic.template_context())
    else:
        context['clinic_name'] = 'our clinic'
    return context


def _identity_events(resolved, episode, source_key, source_id) -> List[LedgerEntry]:
    entries = []
    if resolved.created:
        entries.append(LedgerEntry(
            EntityTypeChoices.PATIENT, resolved.patient.id, 'PATIENT_CREATED',
            {source_key: str(source_id)},
        ))
    entries.append(LedgerEntry(
        EntityTypeChoices.EPISODE, episode.id, 'EPISODE_CREATED',
        {source_key: str(source_id), 'patient_id': str(resolved.patient.id)},
    ))
    return entries


# ============================================================================
# Care request approval
# ============================================================================

def approve_care_request(care_request_id, actor_user=None) -> ConversionResult:
    """
    Approve a care request and open its episode.

    Raises:
        SourceNotFound, AlreadyApproved, InvalidState, MissingClinician
        Any database error from identity resolution or the episode insert
    """
    flow = FLOW_CARE_REQUEST
    actor = actor_for_user(actor_user)

    with _conversion(flow, care_request_id=str(care_request_id)):
        with transaction.atomic():
            care_request = load_care_request_for_approval(care_request_id)
            payload = IntakePayload.from_dict(care_request.intake_payload)
            clinician = care_request.assigned_clinician

            resolved = resolve_patient_account(
                payload.email,
                fallback_name=payload.patient_name,
                fallback_phone=payload.phone,
                extra_fields={'date_of_birth': payload.date_of_birth},
            )

            episode = Episode.objects.create(
                patient=resolved.patient,
                patient_name=payload.patient_name,
                date_of_birth=payload.date_of_birth,
                clinician=clinician,
                clinician_name=clinician.display_name,
                clinic=care_request.clinic or clinician.clinic,
                body_region=payload.first_complaint_region() or DEFAULT_CARE_REQUEST_REGION,
                episode_type=CARE_REQUEST_EPISODE_TYPE,
                status=EpisodeStatusChoices.ACTIVE,
                date_of_service=timezone.localdate(),
                diagnosis=payload.chief_complaint,
                injury_date=payload.injury_date,
                injury_mechanism=payload.injury_mechanism,
                medical_history=payload.medical_history,
                medications=payload.current_medications,
                pain_level=payload.pain_level,
                source_care_request=care_request,
            )

            checks = {
                'snapshot_stored': _enrich(
                    flow, 'snapshot', episode, store_intake_snapshot,
                    episode, care_request.intake_payload, payload.version, actor_user,
                    care_request=care_request,
                ),
                'access_granted': _enrich(
                    flow, 'access_grant', episode, grant_patient_access, resolved.patient, episode
                ),
            }

            claim_care_request(care_request.id, resolved.patient, episode)

            if care_request.lead_id:
                checks['lead_advanced'] = _enrich(flow, 'lead_checkpoint', episode, _advance_lead, care_request.lead_id)

            entries = _identity_events(resolved, episode, 'care_request_id', care_request.id)
            if checks['access_granted']:
                entries.append(LedgerEntry(
                    EntityTypeChoices.EPISODE, episode.id, 'PATIENT_ACCESS_GRANTED',
                    {'patient_id': str(resolved.patient.id)},
                ))
            entries.append(LedgerEntry(
                EntityTypeChoices.CARE_REQUEST, care_request.id, 'CARE_REQUEST_APPROVED',
                {'episode_id': episode.id, 'patient_id': str(resolved.patient.id),
                 'clinician_id': str(clinician.id)},
            ))
            _record_ledger(entries, actor)

            notify_on_commit(flow, notify_care_request_approved, episode, care_request.id, clinician)

    metrics.conversions_total.labels(flow=flow, result='success').inc()
    log_consistency_checkpoint(
        'care_request_conversion',
        entity_ids={'episode_id': episode.id, 'care_request_id': str(care_request.id)},
        checks_passed=checks,
    )
    log_domain_event(
        'care_request.approved',
        entity_type='Episode',
        entity_id=episode.id,
        entity_ids={'care_request_id': str(care_request.id), 'patient_id': str(resolved.patient.id)},
        patient_created=resolved.created,
    )
    return ConversionResult(episode.id, str(resolved.patient.id), True, 'Care request approved')


def notify_care_request_approved(episode, care_request_id, clinician):
    context = _episode_context(episode)
    context['care_request_id'] = str(care_request_id)

    notify(
        'in_app', clinician.user, 'new_episode_assigned', context,
        entity_type='Episode', entity_id=episode.id, step='clinician_notification',
    )
    for address in settings.CARE_TEAM_NOTIFICATION_EMAILS:
        notify(
            'email', address, 'care_request_approved', context,
            entity_type='Episode', entity_id=episode.id, step='care_team_notification',
        )


# ============================================================================
# Intake form conversion
# ============================================================================

def derive_intake_region(intake_form, pending_episode) -> Tuple[str, str]:
    """
    Return (body_region, episode_type) for an intake conversion.

    The first complaint's region wins; otherwise the pending episode's
    region, the first word of the chief complaint, then 'General'.
    """
    pending_region = pending_episode.body_region if pending_episode else ''
    chief_words = (intake_form.chief_complaint or '').split()
    region = pending_region or (chief_words[0] if chief_words else '') or DEFAULT_INTAKE_REGION

    complaints = intake_form.complaints if isinstance(intake_form.complaints, list) else []
    if complaints and isinstance(complaints[0], dict):
        complaint_region = complaints[0].get('region') or complaints[0].get('bodyRegion')
        if complaint_region:
            region = str(complaint_region).strip()

    return region, pending_region or DEFAULT_INTAKE_REGION


def _intake_snapshot_payload(intake_form):
    if intake_form.payload:
        return intake_form.payload
    return {
        'patient_name': intake_form.patient_name,
        'email': intake_form.email,
        'phone': intake_form.phone,
        'date_of_birth': intake_form.date_of_birth.isoformat() if intake_form.date_of_birth else None,
        'chief_complaint': intake_form.chief_complaint,
        'complaints': intake_form.complaints,
    }


def convert_intake_to_episode(intake_form_id, actor_user=None) -> ConversionResult:
    """
    Convert an intake form into an episode. Safe to call repeatedly.

    An already-converted form answers with its existing episode and writes
    nothing.

    Raises:
        SourceNotFound, MissingClinician
        Any database error from identity resolution or the episode insert
    """
    flow = FLOW_INTAKE_FORM
    actor = actor_for_user(actor_user)

    with _conversion(flow, intake_form_id=str(intake_form_id)):
        try:
            with transaction.atomic():
                intake_form = load_intake_form_for_conversion(intake_form_id)
                pending = find_pending_episode(intake_form)
                clinician = resolve_intake_clinician(intake_form, pending)

                resolved = resolve_patient_account(
                    intake_form.email,
                    fallback_name=intake_form.patient_name,
                    fallback_phone=intake_form.phone,
                    extra_fields={'date_of_birth': intake_form.date_of_birth},
                )
                body_region, episode_type = derive_intake_region(intake_form, pending)

                episode = Episode.objects.create(
                    patient=resolved.patient,
                    patient_name=intake_form.patient_name,
                    date_of_birth=intake_form.date_of_birth,
                    clinician=clinician,
                    clinician_name=clinician.display_name,
                    clinic=(pending.clinic if pending else None) or intake_form.clinic or clinician.clinic,
                    body_region=body_region,
                    episode_type=episode_type,
                    status=EpisodeStatusChoices.ACTIVE_CONSERVATIVE_CARE,
                    date_of_service=timezone.localdate(),
                    diagnosis=intake_form.chief_complaint,
                    injury_date=intake_form.injury_date,
                    injury_mechanism=intake_form.injury_mechanism,
                    medical_history=intake_form.medical_history,
                    medications=intake_form.current_medications,
                    pain_level=intake_form.pain_level,
                    referring_physician=intake_form.referring_physician,
                    insurance_provider=intake_form.insurance_provider,
                    emergency_contact_name=intake_form.emergency_contact_name,
                    emergency_contact_phone=intake_form.emergency_contact_phone,
                    source_intake_form=intake_form,
                )

                checks = {
                    'snapshot_stored': _enrich(
                        flow, 'snapshot', episode, store_intake_snapshot,
                        episode, _intake_snapshot_payload(intake_form), PAYLOAD_VERSION, actor_user,
                        intake_form=intake_form,
                    ),
                    'access_granted': _enrich(
                        flow, 'access_grant', episode, grant_patient_access, resolved.patient, episode
                    ),
                }

                claim_intake_form(intake_form.id, episode)

                pending_converted = False
                if pending is not None:
                    pending_converted = claim_pending_episode(pending.id, episode)
                    if not pending_converted:
                        log_guard_rejection(flow, 'PENDING_EPISODE_TAKEN', 'PendingEpisode', pending.id)
                if intake_form.lead_id:
                    checks['lead_advanced'] = _enrich(flow, 'lead_checkpoint', episode, _advance_lead, intake_form.lead_id)

                entries = _identity_events(resolved, episode, 'intake_form_id', intake_form.id)
                if checks['access_granted']:
                    entries.append(LedgerEntry(
                        EntityTypeChoices.EPISODE, episode.id, 'PATIENT_ACCESS_GRANTED',
                        {'patient_id': str(resolved.patient.id)},
                    ))
                entries.append(LedgerEntry(
                    EntityTypeChoices.INTAKE_FORM, intake_form.id, 'INTAKE_FORM_CONVERTED',
                    {'episode_id': episode.id, 'patient_id': str(resolved.patient.id)},
                ))
                if pending_converted:
                    entries.append(LedgerEntry(
                        EntityTypeChoices.PENDING_EPISODE, pending.id, 'PENDING_EPISODE_CONVERTED',
                        {'episode_id': episode.id},
                    ))
                _record_ledger(entries, actor)

                patient_email = resolved.patient.email
                notify_on_commit(flow, notify_intake_converted, episode, clinician, patient_email)
        except AlreadyConverted as converted:
            metrics.conversions_total.labels(flow=flow, result='duplicate').inc()
            return ConversionResult(
                converted.episode_id,
                _patient_id_for(converted.episode_id),
                False,
                'Already converted',
            )

    metrics.conversions_total.labels(flow=flow, result='success').inc()
    log_consistency_checkpoint(
        'intake_form_conversion',
        entity_ids={'episode_id': episode.id, 'intake_form_id': str(intake_form.id)},
        checks_passed=checks,
    )
    log_domain_event(
        'intake_form.converted',
        entity_type='Episode',
        entity_id=episode.id,
        entity_ids={'intake_form_id': str(intake_form.id), 'patient_id': str(resolved.patient.id)},
        pending_episode_matched=pending is not None,
        patient_created=resolved.created,
    )
    return ConversionResult(episode.id, str(resolved.patient.id), True, 'Episode created')


def _patient_id_for(episode_id) -> Optional[str]:
    patient_id = Episode.objects.filter(pk=episode_id).values_list('patient_id', flat=True).first()
    return str(patient_id) if patient_id else None


def _admin_users():
    return get_user_model().objects.filter(
        is_active=True,
        user_roles__role__name=RoleChoices.ADMIN,
    ).distinct()


def notify_intake_converted(episode, clinician, patient_email):
    """Patient welcome/scheduling emails, clinician and admin in-app notices."""
    context = _episode_context(episode)
    clinic = episode.clinic
    target = {'entity_type': 'Episode', 'entity_id': episode.id}

    welcome_subject, welcome_body = clinic.welcome_templates() if clinic else (None, None)
    notify(
        'email', patient_email, 'patient_welcome',
        dict(context, subject_template=welcome_subject, body_template=welcome_body),
        step='patient_welcome', **target
    )
    if clinic is not None and clinic.scheduling_email_enabled:
        scheduling_subject, scheduling_body = clinic.scheduling_templates()
        notify(
            'email', patient_email, 'patient_scheduling',
            dict(context, subject_template=scheduling_subject, body_template=scheduling_body),
            step='patient_scheduling', **target
        )

    notify('in_app', clinician.user, 'new_episode_created', context, step='clinician_notification', **target)
    for admin in _admin_users():
        notify('in_app', admin, 'patient_ready_for_scheduling', context, step='admin_notification', **target)


# ============================================================================
# Continuation setup
# ============================================================================

def _continuation_snapshot_payload(continuation):
    return {
        'source_episode_id': continuation.source_episode_id,
        'continuation_source': continuation.continuation_source,
        'documented_complaint_ref': continuation.documented_complaint_ref,
        'primary_complaint': continuation.primary_complaint,
        'body_region': continuation.body_region,
        'category': continuation.category,
        'transition_reason': continuation.transition_reason,
        'outcome_tools_suggestion': continuation.outcome_tools_suggestion,
        'notes': continuation.notes,
    }


def complete_continuation_setup(continuation_id, actor_user=None) -> ConversionResult:
    """
    Open the continuation's new episode for the source episode's patient.

    Raises:
        SourceNotFound, InvalidState, MissingClinician
    """
    flow = FLOW_CONTINUATION
    actor = actor_for_user(actor_user)

    with _conversion(flow, continuation_id=str(continuation_id)):
        try:
            with transaction.atomic():
                continuation = load_continuation_for_setup(continuation_id)
                source = continuation.source_episode
                clinician = continuation.clinician or source.clinician
                body_region = continuation.body_region or source.body_region

                episode = Episode.objects.create(
                    patient=source.patient,
                    patient_name=source.patient_name,
                    date_of_birth=source.date_of_birth,
                    clinician=clinician,
                    clinician_name=clinician.display_name,
                    clinic=continuation.clinic or source.clinic,
                    body_region=body_region,
                    episode_type=continuation.category or source.episode_type,
                    status=EpisodeStatusChoices.ACTIVE,
                    date_of_service=timezone.localdate(),
                    diagnosis=continuation.primary_complaint,
                    medical_history=source.medical_history,
                    medications=source.medications,
                    referring_physician=source.referring_physician,
                    insurance_provider=source.insurance_provider,
                    emergency_contact_name=source.emergency_contact_name,
                    emergency_contact_phone=source.emergency_contact_phone,
                    source_continuation=continuation,
                )

                checks = {
                    'snapshot_stored': _enrich(
                        flow, 'snapshot', episode, store_intake_snapshot,
                        episode, _continuation_snapshot_payload(continuation), PAYLOAD_VERSION, actor_user,
                        continuation=continuation,
                    ),
                    'access_granted': _enrich(
                        flow, 'access_grant', episode, grant_patient_access, source.patient, episode
                    ),
                }

                claim_continuation(continuation.id, episode, actor_user)

                entries = [LedgerEntry(
                    EntityTypeChoices.EPISODE, episode.id, 'EPISODE_CREATED',
                    {'continuation_id': str(continuation.id), 'source_episode_id': source.id},
                )]
                if checks['access_granted']:
                    entries.append(LedgerEntry(
                        EntityTypeChoices.EPISODE, episode.id, 'PATIENT_ACCESS_GRANTED',
                        {'patient_id': str(source.patient_id)},
                    ))
                entries.append(LedgerEntry(
                    EntityTypeChoices.CONTINUATION, continuation.id, 'CONTINUATION_SETUP_COMPLETED',
                    {'episode_id': episode.id, 'source_episode_id': source.id},
                ))
                _record_ledger(entries, actor)

                notify_on_commit(flow, notify_continuation_ready, episode, clinician)
        except AlreadyConverted as converted:
            metrics.conversions_total.labels(flow=flow, result='duplicate').inc()
            return ConversionResult(
                converted.episode_id,
                _patient_id_for(converted.episode_id),
                False,
                'Continuation already set up',
            )

    metrics.conversions_total.labels(flow=flow, result='success').inc()
    log_consistency_checkpoint(
        'continuation_setup',
        entity_ids={'episode_id': episode.id, 'continuation_id': str(continuation.id)},
        checks_passed=checks,
    )
    return ConversionResult(episode.id, str(source.patient_id), True, 'Continuation episode created')


def notify_continuation_ready(episode, clinician):
    notify(
        'in_app', clinician.user, 'continuation_episode_ready', _episode_context(episode),
        entity_type='Episode', entity_id=episode.id, step='clinician_notification',
    )


# ============================================================================
# Episode close
# ============================================================================

@transaction.atomic
def close_episode(episode_id, actor_user=None) -> Episode:
    """
    Close an open episode. Closing a closed episode is a no-op success.

    Raises:
        SourceNotFound (code EPISODE_NOT_FOUND)
    """
    now = timezone.now()
    closed = Episode.objects.filter(
        pk=episode_id,
        status__in=OPEN_EPISODE_STATUSES,
    ).update(status=EpisodeStatusChoices.CLOSED, closed_at=now, updated_at=now)

    episode = get_episode_or_not_found(episode_id)
    if closed:
        record_lifecycle_event(
            EntityTypeChoices.EPISODE,
            episode.id,
            'EPISODE_CLOSED',
            actor=actor_for_user(actor_user),
        )
    log_domain_event(
        'episode.closed' if closed else 'episode.close_repeated',
        entity_type='Episode',
        entity_id=episode.id,
        result='success' if closed else 'duplicate',
    )
    return episode


@transaction.atomic
def cancel_continuation(continuation_id, actor_user=None) -> PendingEpisodeContinuation:
    """
    Cancel a pending continuation.

    Raises:
        InvalidState: setup already completed or already cancelled
    """
    cancelled = PendingEpisodeContinuation.objects.filter(
        pk=continuation_id,
        status=ContinuationStatusChoices.PENDING,
    ).update(status=ContinuationStatusChoices.CANCELLED, updated_at=timezone.now())

    continuation = PendingEpisodeContinuation.objects.get(pk=continuation_id)
    if not cancelled:
        log_guard_rejection(FLOW_CONTINUATION, 'INVALID_STATE', 'PendingEpisodeContinuation', continuation_id)
        raise InvalidState(f'Continuation is {continuation.status} and cannot be cancelled')

    record_lifecycle_event(
        EntityTypeChoices.CONTINUATION,
        continuation.id,
        'CONTINUATION_CANCELLED',
        actor=actor_for_user(actor_user),
    )
    return continuation
