"""
Notification gate.

Every outbound notification goes through ``notify``. The gate never
raises: missing dispatchers, template errors and delivery failures are
logged with the entity and step that triggered them, counted, recorded
as a NotificationFailure for later retry, and returned as a
NotificationResult. A workflow's outcome never depends on whether its
notifications went out, and one failed target never blocks the next one.

Workflows queue their notifications with ``notify_on_commit`` so that the
work around the sends (building context, looking up recipients) is held
to the same rule.
"""
from typing import Any, Dict, NamedTuple, Optional

from django.conf import settings
from django.db import transaction
from django.utils.module_loading import import_string

from apps.core.observability import get_sanitized_logger, metrics
from apps.core.observability.tracing import trace_span
from .models import NotificationFailure

logger = get_sanitized_logger(__name__)


class UnknownChannelError(Exception):
    pass


class NotificationResult(NamedTuple):
    channel: str
    template: str
    delivered: bool
    skipped: bool = False
    error: Optional[str] = None


def get_dispatcher(channel: str):
    """Instantiate the dispatcher configured for ``channel``."""
    try:
        path = settings.NOTIFICATION_DISPATCHERS[channel]
    except KeyError:
        raise UnknownChannelError(channel)
    return import_string(path)()


def notify(
    channel: str,
    recipient,
    template: str,
    context: Optional[Dict[str, Any]] = None,
    *,
    entity_type: Optional[str] = None,
    entity_id: Any = None,
    step: Optional[str] = None,
    record_failure: bool = True,
) -> NotificationResult:
    """
    Dispatch one notification, never raising.

    Args:
        channel: 'email' | 'in_app' (keys of NOTIFICATION_DISPATCHERS)
        recipient: Email address or User (or user id), depending on channel
        template: Template id from the notification registry
        context: Template context
        entity_type / entity_id / step: Where in which workflow this send
            happened, for the failure log
        record_failure: Write a NotificationFailure row when dispatch fails.
            Retries pass False and update their own row instead.

    Returns:
        NotificationResult(delivered, skipped, error)
    """
    log_extra = {
        'channel': channel,
        'template': template,
        'entity_type': entity_type,
        'entity_id': str(entity_id) if entity_id is not None else None,
        'step': step,
    }

    if not settings.NOTIFICATIONS_ENABLED:
        return _skipped(channel, template, 'disabled', log_extra)

    if recipient in (None, ''):
        return _skipped(channel, template, 'no_recipient', log_extra)

    try:
        with trace_span('notification.dispatch', attributes={'channel': channel, 'template': template}):
            dispatcher = get_dispatcher(channel)
            # In-app rows share the request's connection; isolate them
            with transaction.atomic():
                dispatcher.dispatch(recipient, template, context or {})
    except Exception as e:
        metrics.notifications_total.labels(channel=channel, template=template, result='failed').inc()
        logger.error(
            'Notification dispatch failed',
            exc_info=True,
            extra={
                'event': 'notification.failed',
                'error_type': e.__class__.__name__,
                **log_extra,
            }
        )
        if record_failure:
            _record_failure(channel, recipient, template, context, e, log_extra)
        return NotificationResult(channel, template, delivered=False, error=e.__class__.__name__)

    metrics.notifications_total.labels(channel=channel, template=template, result='delivered').inc()
    logger.info('Notification delivered', extra={'event': 'notification.delivered', **log_extra})
    return NotificationResult(channel, template, delivered=True)


def notify_on_commit(flow: str, func, *args, **kwargs):
    """
    Run ``func(*args, **kwargs)`` once the current transaction commits.

    ``func`` is a workflow's notification step. Whatever it raises is
    logged and counted under ``flow`` and goes no further, so a committed
    conversion keeps its result.
    """
    def run():
        try:
            func(*args, **kwargs)
        except Exception as e:
            metrics.notification_step_failures_total.labels(flow=flow).inc()
            logger.error(
                'Notification step failed',
                exc_info=True,
                extra={
                    'event': 'notification.step_failed',
                    'flow': flow,
                    'step': getattr(func, '__name__', None),
                    'error_type': e.__class__.__name__,
                }
            )

    transaction.on_commit(run, robust=True)


def recipient_ref(recipient) -> str:
    """Email address as-is, users by primary key."""
    pk = getattr(recipient, 'pk', None)
    return str(pk) if pk is not None else str(recipient)


def _record_failure(channel, recipient, template, context, error, log_extra):
    try:
        with transaction.atomic():
            NotificationFailure.objects.create(
                channel=channel,
                template=template,
                recipient_ref=recipient_ref(recipient),
                context=context or {},
                entity_type=log_extra['entity_type'] or '',
                entity_id=log_extra['entity_id'] or '',
                step=log_extra['step'] or '',
                error_type=error.__class__.__name__,
                error_message=str(error)[:1000],
                max_retries=settings.NOTIFICATION_MAX_RETRIES,
            )
    except Exception as e:
        logger.error(
            'Could not record notification failure',
            exc_info=True,
            extra={'event': 'notification.failure_not_recorded', 'error_type': e.__class__.__name__, **log_extra}
        )


def _skipped(channel, template, reason, log_extra):
    metrics.notifications_total.labels(channel=channel, template=template, result='skipped').inc()
    logger.info(
        'Notification skipped',
        extra={'event': 'notification.skipped', 'reason': reason, **log_extra}
    )
    return NotificationResult(channel, template, delivered=False, skipped=True, error=reason)
