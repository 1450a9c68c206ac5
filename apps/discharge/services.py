"""
Patient discharge letter workflow: draft -> confirm -> send.

Rules:
- EPISODE_NOT_CLOSED: every action requires a CLOSED episode
- ALREADY_SENT: a sent letter is never drafted, confirmed or sent again
- confirm and send are conditional updates, so two concurrent sends
  deliver one email

Blocked attempts are recorded in the lifecycle ledger. These functions do
not run in a surrounding transaction so the BLOCKED_* events persist when
the action raises.
"""
from django.utils import timezone
from rest_framework import status

from apps.core.exceptions import PipelineError
from apps.core.observability import get_sanitized_logger, metrics
from apps.core.observability.tracing import trace_span
from apps.episodes.models import Episode, EpisodeStatusChoices
from apps.ledger.models import EntityTypeChoices
from apps.ledger.services import actor_for_user, record_lifecycle_event
from apps.notifications.gate import notify, notify_on_commit
from .letters import build_draft_letter
from .models import DischargeLetterStatusChoices, DischargeLetterTask

logger = get_sanitized_logger(__name__)

EVENT_PREFIX = 'PATIENT_EPISODE_DISCHARGE_LETTER'


class DischargeLetterError(PipelineError):
    """Discharge letter precondition violation."""
    code = 'DISCHARGE_LETTER_ERROR'


def _user_or_none(user):
    return user if user is not None and getattr(user, 'is_authenticated', False) else None


def _record(episode_id, suffix, actor_user, **metadata):
    record_lifecycle_event(
        EntityTypeChoices.EPISODE,
        episode_id,
        f'{EVENT_PREFIX}_{suffix}',
        actor=actor_for_user(actor_user),
        metadata=metadata,
    )


def _blocked(action, episode_id, actor_user, error, suffix=None, **metadata):
    metrics.discharge_letter_actions_total.labels(action=action, result='blocked').inc()
    if suffix:
        _record(episode_id, suffix, actor_user, attempted_action=action, **metadata)
    logger.warning(
        'Discharge letter action blocked',
        extra={
            'event': 'discharge_letter.blocked',
            'action': action,
            'code': error.code,
            'episode_id': str(episode_id),
        }
    )
    return error


def _already_sent(action, episode_id, actor_user, task):
    return _blocked(
        action, episode_id, actor_user,
        DischargeLetterError('Patient discharge letter has already been sent', code='ALREADY_SENT'),
        suffix='BLOCKED_ALREADY_SENT',
        task_id=str(task.id),
    )


def _load_closed_episode(episode_id, action, actor_user) -> Episode:
    episode = Episode.objects.select_related('patient', 'clinic').filter(pk=episode_id).first()
    if episode is None:
        raise _blocked(
            action, episode_id, actor_user,
            DischargeLetterError('Episode not found', code='EPISODE_NOT_FOUND',
                                 http_status=status.HTTP_404_NOT_FOUND),
        )
    if episode.status != EpisodeStatusChoices.CLOSED:
        raise _blocked(
            action, episode.id, actor_user,
            DischargeLetterError(
                'Episode must be closed before a patient discharge letter',
                code='EPISODE_NOT_CLOSED',
            ),
            suffix='BLOCKED_NOT_CLOSED',
            current_status=episode.status,
        )
    return episode


def get_letter_task(episode_id):
    return DischargeLetterTask.objects.filter(episode_id=episode_id).first()


def generate_draft(episode_id, actor_user=None) -> DischargeLetterTask:
    """
    Build (or rebuild) the letter draft.

    Raises:
        DischargeLetterError: EPISODE_NOT_FOUND, EPISODE_NOT_CLOSED, ALREADY_SENT
    """
    action = 'draft'
    with trace_span('discharge_letter.draft', attributes={'episode_id': str(episode_id)}):
        episode = _load_closed_episode(episode_id, action, actor_user)
        letter = build_draft_letter(episode)
        now = timezone.now()

        task, created = DischargeLetterTask.objects.get_or_create(
            episode=episode,
            defaults={
                'status': DischargeLetterStatusChoices.DRAFT,
                'draft_letter': letter,
                'draft_generated_at': now,
            },
        )
        if not created:
            regenerated = DischargeLetterTask.objects.filter(pk=task.pk).exclude(
                status=DischargeLetterStatusChoices.SENT
            ).update(
                status=DischargeLetterStatusChoices.DRAFT,
                draft_letter=letter,
                draft_generated_at=now,
                confirmed_at=None,
                confirmed_by=None,
                updated_at=now,
            )
            if not regenerated:
                raise _already_sent(action, episode.id, actor_user, task)
            task.refresh_from_db()

    _record(episode.id, 'DRAFTED', actor_user, task_id=str(task.id), regenerated=not created,
            care_targets_count=len(letter['care_targets']))
    metrics.discharge_letter_actions_total.labels(action=action, result='success').inc()
    return task


def confirm_letter(episode_id, actor_user=None) -> DischargeLetterTask:
    """
    Clinician sign-off on the current draft.

    Raises:
        DischargeLetterError: EPISODE_NOT_FOUND, EPISODE_NOT_CLOSED, NO_DRAFT,
            ALREADY_SENT, ALREADY_CONFIRMED
    """
    action = 'confirm'
    episode = _load_closed_episode(episode_id, action, actor_user)
    task = get_letter_task(episode.id)
    if task is None:
        raise _blocked(
            action, episode.id, actor_user,
            DischargeLetterError('No draft exists to confirm', code='NO_DRAFT'),
        )

    now = timezone.now()
    confirmed = DischargeLetterTask.objects.filter(
        pk=task.pk,
        status=DischargeLetterStatusChoices.DRAFT,
    ).update(
        status=DischargeLetterStatusChoices.CONFIRMED,
        confirmed_at=now,
        confirmed_by=_user_or_none(actor_user),
        updated_at=now,
    )
    task.refresh_from_db()
    if not confirmed:
        if task.status == DischargeLetterStatusChoices.SENT:
            raise _already_sent(action, episode.id, actor_user, task)
        raise _blocked(
            action, episode.id, actor_user,
            DischargeLetterError('Letter is already confirmed', code='ALREADY_CONFIRMED'),
        )

    _record(episode.id, 'CONFIRMED', actor_user, task_id=str(task.id))
    metrics.discharge_letter_actions_total.labels(action=action, result='success').inc()
    return task


def send_letter(episode_id, actor_user=None) -> DischargeLetterTask:
    """
    Send the confirmed letter to the patient, once.

    The status moves to sent before the email is queued; the email goes
    through the notification gate after commit and its failure does not
    undo the send.

    Raises:
        DischargeLetterError: EPISODE_NOT_FOUND, EPISODE_NOT_CLOSED,
            ALREADY_SENT, CONFIRMATION_REQUIRED
    """
    action = 'send'
    episode = _load_closed_episode(episode_id, action, actor_user)
    task = get_letter_task(episode.id)
    confirmation_required = DischargeLetterError(
        'Letter must be confirmed by a clinician before sending',
        code='CONFIRMATION_REQUIRED',
    )
    if task is None:
        raise _blocked(action, episode.id, actor_user, confirmation_required)
    if task.status == DischargeLetterStatusChoices.SENT:
        raise _already_sent(action, episode.id, actor_user, task)

    recipient = episode.patient.email
    now = timezone.now()
    sent = DischargeLetterTask.objects.filter(
        pk=task.pk,
        status=DischargeLetterStatusChoices.CONFIRMED,
    ).update(
        status=DischargeLetterStatusChoices.SENT,
        sent_at=now,
        sent_by=_user_or_none(actor_user),
        sent_to=recipient or '',
        updated_at=now,
    )
    task.refresh_from_db()
    if not sent:
        if task.status == DischargeLetterStatusChoices.SENT:
            raise _already_sent(action, episode.id, actor_user, task)
        raise _blocked(action, episode.id, actor_user, confirmation_required)

    _record(episode.id, 'SENT', actor_user, task_id=str(task.id), has_recipient=bool(recipient))
    metrics.discharge_letter_actions_total.labels(action=action, result='success').inc()

    notify_on_commit('discharge_letter', notify_letter_sent, task, episode.id, recipient)
    return task


def notify_letter_sent(task, episode_id, recipient):
    context = {
        'letter': task.draft_letter.get('letter', {}),
        'clinic_name': task.draft_letter.get('clinic_name') or 'our clinic',
        'episode_id': episode_id,
    }
    notify(
        'email', recipient, 'patient_discharge_letter', context,
        entity_type='Episode', entity_id=episode_id, step='discharge_letter',
    )
