"""
Retry of recorded notification failures.

Each retry goes back through the gate's ``notify`` with failure recording
off; the outcome is written to the failure row instead. A row is claimed
with a conditional UPDATE on its retry_count, so two concurrent runs never
send the same failure twice.
"""
from datetime import timedelta
from typing import NamedTuple, Optional

from django.conf import settings
from django.db.models import F, Q
from django.utils import timezone

from apps.core.observability import get_sanitized_logger, metrics
from .gate import NotificationResult, notify
from .models import NotificationFailure, NotificationFailureStatusChoices

logger = get_sanitized_logger(__name__)


class RetrySummary(NamedTuple):
    attempted: int = 0
    delivered: int = 0
    failed: int = 0
    exhausted: int = 0


def next_retry_at(retry_count: int, now=None):
    now = now or timezone.now()
    return now + timedelta(seconds=settings.NOTIFICATION_RETRY_BACKOFF_SECONDS * 2 ** retry_count)


def due_failures(now=None, limit: int = 50):
    now = now or timezone.now()
    return NotificationFailure.objects.filter(
        status=NotificationFailureStatusChoices.PENDING,
        retry_count__lt=F('max_retries'),
    ).filter(
        Q(next_retry_at__isnull=True) | Q(next_retry_at__lte=now)
    ).order_by('created_at')[:limit]


def retry_failure(failure: NotificationFailure, now=None) -> Optional[NotificationResult]:
    """
    Send one recorded failure again.

    Returns the gate's result, or None when the row was not retried
    (notifications disabled, already resolved or exhausted, or claimed by
    a concurrent run).
    """
    if not settings.NOTIFICATIONS_ENABLED:
        return None

    now = now or timezone.now()
    attempts = failure.retry_count + 1
    claimed = NotificationFailure.objects.filter(
        pk=failure.pk,
        status=NotificationFailureStatusChoices.PENDING,
        retry_count=failure.retry_count,
    ).update(retry_count=attempts, last_retry_at=now, updated_at=now)
    if not claimed:
        return None

    result = notify(
        failure.channel,
        failure.recipient_ref,
        failure.template,
        failure.context,
        entity_type=failure.entity_type or None,
        entity_id=failure.entity_id or None,
        step=failure.step or None,
        record_failure=False,
    )

    updates = {'updated_at': timezone.now()}
    if result.delivered:
        updates.update(status=NotificationFailureStatusChoices.RESOLVED, resolved_at=updates['updated_at'])
        outcome = 'delivered'
    else:
        updates['error_type'] = result.error or ''
        if attempts >= failure.max_retries:
            updates['status'] = NotificationFailureStatusChoices.EXHAUSTED
            outcome = 'exhausted'
        else:
            updates['next_retry_at'] = next_retry_at(attempts, now)
            outcome = 'failed'
    NotificationFailure.objects.filter(pk=failure.pk).update(**updates)

    metrics.notification_retries_total.labels(channel=failure.channel, result=outcome).inc()
    logger.info(
        'Notification retry finished',
        extra={
            'event': 'notification.retried',
            'failure_id': str(failure.pk),
            'channel': failure.channel,
            'template': failure.template,
            'attempt': attempts,
            'result': outcome,
        }
    )
    return result


def retry_failed_notifications(now=None, limit: int = 50) -> RetrySummary:
    """Retry every failure that is due. Used by the management command."""
    now = now or timezone.now()
    attempted = delivered = failed = exhausted = 0
    for failure in list(due_failures(now, limit)):
        result = retry_failure(failure, now)
        if result is None:
            continue
        attempted += 1
        if result.delivered:
            delivered += 1
        elif failure.retry_count + 1 >= failure.max_retries:
            exhausted += 1
        else:
            failed += 1
    return RetrySummary(attempted, delivered, failed, exhausted)
