"""
Domain events logging helpers.

Structured, PHI-free log lines for business operations. These are
operational logs; the durable audit trail is the lifecycle ledger.
"""
from typing import Dict, Any, Optional
from .logging import get_sanitized_logger, sanitize_dict
from .metrics import metrics

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'episode.created', 'lead.checkpoint_advanced')
        entity_type: Type of entity (e.g., 'Episode', 'CareRequest')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, blocked, duplicate, ...)
        **extra_fields: Additional fields to log (will be sanitized)

    Example:
        log_domain_event(
            'episode.created',
            entity_type='Episode',
            entity_id=episode.id,
            entity_ids={'care_request_id': str(care_request.id)},
            flow='care_request',
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = str(entity_id)

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))

    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'duplicate', 'throttled']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_consistency_checkpoint(
    checkpoint_name: str,
    entity_ids: Dict[str, str],
    checks_passed: Dict[str, bool],
    **extra_fields
):
    """
    Log a consistency checkpoint event.

    Used after a conversion to record which enrichment steps landed.

    Example:
        log_consistency_checkpoint(
            'care_request_conversion',
            entity_ids={'episode_id': episode.id, 'care_request_id': str(cr.id)},
            checks_passed={'snapshot_stored': True, 'access_granted': True},
        )
    """
    all_passed = all(checks_passed.values())

    event_data = {
        'event': 'consistency_checkpoint',
        'checkpoint': checkpoint_name,
        'status': 'passed' if all_passed else 'failed',
        'checks': checks_passed,
    }
    event_data.update(entity_ids)
    event_data.update(sanitize_dict(extra_fields))

    if all_passed:
        logger.info(f'Checkpoint passed: {checkpoint_name}', extra=event_data)
    else:
        logger.error(f'Checkpoint FAILED: {checkpoint_name}', extra=event_data)


def log_guard_rejection(flow: str, code: str, entity_type: str, entity_id: Any, **extra):
    """Log and count a transition refused by a precondition guard."""
    metrics.conversion_guard_rejections_total.labels(flow=flow, code=code).inc()
    log_domain_event(
        f'{flow}.guard_rejected',
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        result='blocked',
        code=code,
        **extra
    )


def log_enrichment_failure(flow: str, step: str, entity_type: str, entity_id: Any, error: Exception):
    """Log and count a non-fatal enrichment step failure."""
    metrics.conversion_enrichment_failures_total.labels(flow=flow, step=step).inc()
    logger.error(
        f'Enrichment step failed: {step}',
        exc_info=error,
        extra={
            'event': f'{flow}.enrichment_failed',
            'flow': flow,
            'step': step,
            'entity_type': entity_type,
            'entity_id': str(entity_id),
            'error_type': error.__class__.__name__,
        }
    )
