"""
Conversion guards.

Two kinds of checks protect every conversion:

1. Read-time preconditions (load_*): give the caller a precise error code
   before any write happens.
2. Conditional claims (claim_*): a single UPDATE filtered on the states the
   transition is allowed from. Zero rows affected means another request
   got there first; the caller's transaction must not commit its episode.

Only the claim decides who wins a race. The read-time checks exist for
error reporting.
"""
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone
from rest_framework import status

from apps.authz.models import Clinician, RoleChoices
from apps.core.exceptions import PipelineError
from apps.core.observability.events import log_guard_rejection
from apps.intake.models import (
    APPROVABLE_CARE_REQUEST_STATUSES,
    CareRequest,
    CareRequestStatusChoices,
    IntakeForm,
    IntakeFormStatusChoices,
    PendingEpisode,
    PendingEpisodeStatusChoices,
)
from .models import ContinuationStatusChoices, Episode, PendingEpisodeContinuation

FLOW_CARE_REQUEST = 'care_request'
FLOW_INTAKE_FORM = 'intake_form'
FLOW_CONTINUATION = 'continuation'


class ConversionError(PipelineError):
    """Precondition violation in a conversion flow."""
    code = 'CONVERSION_FAILED'


class ValidationFailed(ConversionError):
    code = 'VALIDATION_ERROR'
    http_status = status.HTTP_400_BAD_REQUEST
    default_message = 'Invalid request'


class SourceNotFound(ConversionError):
    code = 'NOT_FOUND'
    http_status = status.HTTP_404_NOT_FOUND
    default_message = 'Source record not found'


class MissingClinician(ConversionError):
    code = 'MISSING_CLINICIAN'
    http_status = status.HTTP_400_BAD_REQUEST
    default_message = 'No clinician assigned'


class AlreadyApproved(ConversionError):
    code = 'ALREADY_APPROVED'
    default_message = 'Care request already approved'


class InvalidState(ConversionError):
    code = 'INVALID_STATE'
    default_message = 'Source record is not in a convertible state'


class AlreadyConverted(Exception):
    """
    The source record already produced an episode.

    Not an error for the caller: conversion retries answer with the
    existing episode.
    """

    def __init__(self, episode_id):
        self.episode_id = episode_id
        super().__init__(f'Already converted to {episode_id}')


def _reject(flow, error, entity_type, entity_id, **extra):
    log_guard_rejection(flow, error.code, entity_type, entity_id, **extra)
    return error


def _get_or_not_found(queryset, pk, flow, entity_type, code=None):
    try:
        return queryset.get(pk=pk)
    except (queryset.model.DoesNotExist, DjangoValidationError, ValueError):
        error = SourceNotFound(f'{queryset.model._meta.verbose_name} not found', code=code)
        raise _reject(flow, error, entity_type, pk)


# ============================================================================
# Care request approval
# ============================================================================

def load_care_request_for_approval(care_request_id) -> CareRequest:
    """
    Load a care request and check it can be approved.

    Raises:
        SourceNotFound: no such care request
        AlreadyApproved: status APPROVED_FOR_CARE
        InvalidState: ARCHIVED (or any other non-approvable status)
        MissingClinician: no clinician assigned
    """
    care_request = _get_or_not_found(
        CareRequest.objects.select_related('assigned_clinician__user', 'clinic'),
        care_request_id,
        FLOW_CARE_REQUEST,
        'CareRequest',
    )
    if care_request.status == CareRequestStatusChoices.APPROVED_FOR_CARE:
        raise _reject(
            FLOW_CARE_REQUEST,
            AlreadyApproved(f'Care request already approved (episode {care_request.episode_id})'),
            'CareRequest', care_request.id,
        )
    if care_request.status not in APPROVABLE_CARE_REQUEST_STATUSES:
        raise _reject(
            FLOW_CARE_REQUEST,
            InvalidState(f'Care request is {care_request.status} and cannot be approved'),
            'CareRequest', care_request.id,
        )
    if care_request.assigned_clinician_id is None:
        raise _reject(
            FLOW_CARE_REQUEST,
            MissingClinician('Assign a clinician before approving'),
            'CareRequest', care_request.id,
        )
    return care_request


def claim_care_request(care_request_id, patient, episode):
    """
    Mark the care request APPROVED_FOR_CARE and link patient and episode.

    Raises:
        AlreadyApproved / InvalidState: another request moved it first
    """
    now = timezone.now()
    claimed = CareRequest.objects.filter(
        pk=care_request_id,
        status__in=APPROVABLE_CARE_REQUEST_STATUSES,
        episode__isnull=True,
        assigned_clinician__isnull=False,
    ).update(
        status=CareRequestStatusChoices.APPROVED_FOR_CARE,
        patient=patient,
        episode=episode,
        approved_at=now,
        updated_at=now,
    )
    if claimed:
        return

    current = CareRequest.objects.filter(pk=care_request_id).values_list('status', flat=True).first()
    if current == CareRequestStatusChoices.APPROVED_FOR_CARE:
        error = AlreadyApproved('Care request was approved by a concurrent request')
    else:
        error = InvalidState(f'Care request moved to {current} during approval')
    raise _reject(FLOW_CARE_REQUEST, error, 'CareRequest', care_request_id, stage='claim')


# ============================================================================
# Intake form conversion
# ============================================================================

def load_intake_form_for_conversion(intake_form_id) -> IntakeForm:
    """
    Raises:
        SourceNotFound: no such intake form
        AlreadyConverted: converted_to_episode is already set
    """
    intake_form = _get_or_not_found(
        IntakeForm.objects.select_related('clinic'),
        intake_form_id,
        FLOW_INTAKE_FORM,
        'IntakeForm',
    )
    if intake_form.converted_to_episode_id:
        log_guard_rejection(FLOW_INTAKE_FORM, 'ALREADY_CONVERTED', 'IntakeForm', intake_form.id)
        raise AlreadyConverted(intake_form.converted_to_episode_id)
    return intake_form


def claim_intake_form(intake_form_id, episode):
    """
    Set converted_to_episode if still empty.

    Raises:
        AlreadyConverted: a concurrent conversion set it first; carries the
            winner's episode id
    """
    now = timezone.now()
    claimed = IntakeForm.objects.filter(
        pk=intake_form_id,
        converted_to_episode__isnull=True,
    ).update(
        converted_to_episode=episode,
        converted_at=now,
        status=IntakeFormStatusChoices.CONVERTED,
        updated_at=now,
    )
    if claimed:
        return

    winner = IntakeForm.objects.filter(pk=intake_form_id).values_list('converted_to_episode_id', flat=True).first()
    log_guard_rejection(FLOW_INTAKE_FORM, 'ALREADY_CONVERTED', 'IntakeForm', intake_form_id, stage='claim')
    raise AlreadyConverted(winner)


def find_pending_episode(intake_form):
    """Match an open pending episode by access code, else by patient name."""
    pending = PendingEpisode.objects.select_related('clinician__user', 'clinic').filter(
        status=PendingEpisodeStatusChoices.INTAKE_PENDING
    ).order_by('created_at')
    if intake_form.access_code:
        match = pending.filter(access_code__iexact=intake_form.access_code).first()
        if match:
            return match
    return pending.filter(patient_name__iexact=intake_form.patient_name.strip()).first()


def claim_pending_episode(pending_episode_id, episode) -> bool:
    """Mark the pending episode converted. False if another intake took it."""
    now = timezone.now()
    return bool(PendingEpisode.objects.filter(
        pk=pending_episode_id,
        status=PendingEpisodeStatusChoices.INTAKE_PENDING,
    ).update(
        status=PendingEpisodeStatusChoices.CONVERTED,
        converted_episode=episode,
        converted_at=now,
        updated_at=now,
    ))


def default_admin_clinician():
    """First active clinician profile whose user holds the admin role."""
    return Clinician.objects.select_related('user', 'clinic').filter(
        is_active=True,
        user__is_active=True,
        user__user_roles__role__name=RoleChoices.ADMIN,
    ).order_by('created_at').first()


def resolve_intake_clinician(intake_form, pending_episode):
    clinician = pending_episode.clinician if pending_episode else None
    if clinician is None:
        clinician = default_admin_clinician()
    if clinician is None:
        raise _reject(
            FLOW_INTAKE_FORM,
            MissingClinician('No clinician available to assign episode'),
            'IntakeForm', intake_form.id,
        )
    return clinician


# ============================================================================
# Continuation setup
# ============================================================================

def load_continuation_for_setup(continuation_id) -> PendingEpisodeContinuation:
    """
    Raises:
        SourceNotFound: no such continuation
        AlreadyConverted: setup already completed
        InvalidState: continuation cancelled
        MissingClinician: neither the continuation nor its source episode has one
    """
    continuation = _get_or_not_found(
        PendingEpisodeContinuation.objects.select_related(
            'source_episode__patient', 'source_episode__clinician__user', 'clinician__user', 'clinic'
        ),
        continuation_id,
        FLOW_CONTINUATION,
        'PendingEpisodeContinuation',
    )
    if continuation.status == ContinuationStatusChoices.SETUP_COMPLETE:
        log_guard_rejection(FLOW_CONTINUATION, 'ALREADY_CONVERTED', 'PendingEpisodeContinuation', continuation.id)
        raise AlreadyConverted(continuation.created_episode_id)
    if continuation.status != ContinuationStatusChoices.PENDING:
        raise _reject(
            FLOW_CONTINUATION,
            InvalidState(f'Continuation is {continuation.status}'),
            'PendingEpisodeContinuation', continuation.id,
        )
    if continuation.clinician_id is None and continuation.source_episode.clinician_id is None:
        raise _reject(FLOW_CONTINUATION, MissingClinician(), 'PendingEpisodeContinuation', continuation.id)
    return continuation


def claim_continuation(continuation_id, episode, user=None):
    """
    Mark the continuation SETUP_COMPLETE with its new episode.

    Raises:
        AlreadyConverted: a concurrent setup completed it first
        InvalidState: it was cancelled meanwhile
    """
    now = timezone.now()
    claimed = PendingEpisodeContinuation.objects.filter(
        pk=continuation_id,
        status=ContinuationStatusChoices.PENDING,
    ).update(
        status=ContinuationStatusChoices.SETUP_COMPLETE,
        created_episode=episode,
        completed_at=now,
        completed_by=user if user is not None and user.is_authenticated else None,
        updated_at=now,
    )
    if claimed:
        return

    row = PendingEpisodeContinuation.objects.filter(pk=continuation_id).values('status', 'created_episode_id').first()
    if row and row['status'] == ContinuationStatusChoices.SETUP_COMPLETE:
        log_guard_rejection(FLOW_CONTINUATION, 'ALREADY_CONVERTED', 'PendingEpisodeContinuation', continuation_id, stage='claim')
        raise AlreadyConverted(row['created_episode_id'])
    raise _reject(
        FLOW_CONTINUATION,
        InvalidState('Continuation was cancelled during setup'),
        'PendingEpisodeContinuation', continuation_id, stage='claim',
    )


def get_episode_or_not_found(episode_id, flow='episode') -> Episode:
    return _get_or_not_found(
        Episode.objects.select_related('patient', 'clinician__user', 'clinic'),
        episode_id,
        flow,
        'Episode',
        code='EPISODE_NOT_FOUND',
    )
