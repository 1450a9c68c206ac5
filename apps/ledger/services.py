"""
Lifecycle ledger writer.

Ledger writes are non-fatal: losing an audit row costs auditability, not
clinical correctness, so a failed write is logged and counted and the
calling workflow carries on. Each write runs in its own savepoint so a
failure cannot break the caller's transaction.
"""
from typing import Any, Dict, NamedTuple, Optional

from django.db import transaction

from apps.authz.models import RoleChoices
from apps.core.observability import get_sanitized_logger, metrics
from .models import ActorTypeChoices, LifecycleEvent

logger = get_sanitized_logger(__name__)


class Actor(NamedTuple):
    actor_type: str
    actor_id: Optional[str] = None


SYSTEM_ACTOR = Actor(ActorTypeChoices.SYSTEM)


def actor_for_user(user) -> Actor:
    """
    Map a request user to a ledger actor.

    Admin wins over clinician; any other authenticated user is staff;
    no user means a system-triggered transition (webhook, automation).
    """
    if user is None or not getattr(user, 'is_authenticated', False):
        return SYSTEM_ACTOR
    roles = set(user.user_roles.values_list('role__name', flat=True))
    if RoleChoices.ADMIN in roles:
        actor_type = ActorTypeChoices.ADMIN
    elif RoleChoices.CLINICIAN in roles:
        actor_type = ActorTypeChoices.CLINICIAN
    else:
        actor_type = ActorTypeChoices.STAFF
    return Actor(actor_type, str(user.id))


def record_lifecycle_event(
    entity_type: str,
    entity_id: Any,
    event_type: str,
    actor: Optional[Actor] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[LifecycleEvent]:
    """
    Append one lifecycle event.

    Args:
        entity_type: EntityTypeChoices value
        entity_id: Primary key of the entity (stringified)
        event_type: Event name, e.g. 'EPISODE_CREATED'
        actor: Actor tuple; defaults to system
        metadata: JSON-serialisable ids/flags (no PHI)

    Returns:
        The created LifecycleEvent, or None if the write failed.
    """
    actor = actor or SYSTEM_ACTOR
    try:
        with transaction.atomic():
            event = LifecycleEvent.objects.create(
                entity_type=entity_type,
                entity_id=str(entity_id),
                event_type=event_type,
                actor_type=actor.actor_type,
                actor_id=actor.actor_id,
                metadata=metadata or {},
            )
    except Exception as e:
        metrics.lifecycle_events_total.labels(event_type=event_type, result='failure').inc()
        logger.error(
            'Lifecycle event write failed',
            exc_info=True,
            extra={
                'event': 'lifecycle_event.write_failed',
                'event_type': event_type,
                'entity_type': entity_type,
                'entity_id': str(entity_id),
                'error_type': e.__class__.__name__,
            }
        )
        return None

    metrics.lifecycle_events_total.labels(event_type=event_type, result='success').inc()
    logger.info(
        'Lifecycle event recorded',
        extra={
            'event': 'lifecycle_event.recorded',
            'event_type': event_type,
            'entity_type': entity_type,
            'entity_id': str(entity_id),
            'actor_type': actor.actor_type,
        }
    )
    return event
