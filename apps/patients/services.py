"""
Identity resolver: find-or-create exactly one PatientAccount per email.

Concurrency: two conversions for the same email may race. The unique
constraint on normalized email makes the second insert fail; that
failure is turned into a read of the winning row instead of an error.
"""
import logging
from typing import Any, Dict, NamedTuple, Optional

from django.db import IntegrityError, transaction

from apps.core.observability import metrics
from apps.core.observability.events import log_domain_event
from .models import PatientAccount

logger = logging.getLogger(__name__)

# Contact fields a later conversion may fill in when still blank
FILLABLE_FIELDS = ('phone', 'date_of_birth')

UNKNOWN_PATIENT_NAME = 'Unknown Patient'


class ResolvedPatient(NamedTuple):
    patient: PatientAccount
    created: bool


def resolve_patient_account(
    email: Optional[str],
    fallback_name: Optional[str] = None,
    fallback_phone: Optional[str] = None,
    extra_fields: Optional[Dict[str, Any]] = None,
) -> ResolvedPatient:
    """
    Resolve the PatientAccount for an email, creating it on first sight.

    Args:
        email: Contact email as submitted (any case/whitespace), may be None
        fallback_name: Name used only when a new account is created
        fallback_phone: Phone used when creating, or to fill a blank phone
        extra_fields: Additional contact fields (date_of_birth)

    Returns:
        ResolvedPatient(patient, created)

    Rules:
        1. No email => always create (no dedup possible, accepted behavior)
        2. Existing account => returned unchanged, except blank
           phone/date_of_birth are filled (first write wins)
        3. Insert conflict (concurrent resolver) => return the winner

    Raises:
        Any database error on the insert path. Callers treat that as fatal:
        no identity means no episode.
    """
    normalized = PatientAccount.normalize_email(email)
    contact = {'phone': fallback_phone or ''}
    for key, value in (extra_fields or {}).items():
        if key in FILLABLE_FIELDS and value not in (None, ''):
            contact[key] = value

    if normalized is None:
        patient = PatientAccount.objects.create(
            email=None,
            full_name=fallback_name or UNKNOWN_PATIENT_NAME,
            **contact
        )
        metrics.identity_resolutions_total.labels(result='anonymous').inc()
        log_domain_event(
            'patient_account.created',
            entity_type='PatientAccount',
            entity_id=str(patient.id),
            dedup='none',
        )
        return ResolvedPatient(patient, True)

    existing = PatientAccount.objects.filter(email=normalized).first()
    if existing is not None:
        _fill_blank_contact_fields(existing, contact)
        metrics.identity_resolutions_total.labels(result='existing').inc()
        return ResolvedPatient(existing, False)

    try:
        with transaction.atomic():
            patient = PatientAccount.objects.create(
                email=normalized,
                full_name=fallback_name or UNKNOWN_PATIENT_NAME,
                **contact
            )
    except IntegrityError:
        # Lost the race: another request inserted this email first
        winner = PatientAccount.objects.filter(email=normalized).first()
        if winner is None:
            # Some other constraint failed
            raise
        metrics.identity_resolutions_total.labels(result='conflict').inc()
        log_domain_event(
            'patient_account.insert_conflict',
            entity_type='PatientAccount',
            entity_id=str(winner.id),
            result='duplicate',
        )
        _fill_blank_contact_fields(winner, contact)
        return ResolvedPatient(winner, False)

    metrics.identity_resolutions_total.labels(result='created').inc()
    log_domain_event(
        'patient_account.created',
        entity_type='PatientAccount',
        entity_id=str(patient.id),
        dedup='email',
    )
    return ResolvedPatient(patient, True)


def _fill_blank_contact_fields(patient: PatientAccount, contact: Dict[str, Any]):
    """Fill blank contact fields with a conditional update per field."""
    blank_lookups = {'phone': {'phone': ''}, 'date_of_birth': {'date_of_birth__isnull': True}}
    for field in FILLABLE_FIELDS:
        value = contact.get(field)
        if value in (None, ''):
            continue
        updated = PatientAccount.objects.filter(
            pk=patient.pk, **blank_lookups[field]
        ).update(**{field: value})
        if updated:
            setattr(patient, field, value)
            logger.info(
                'Filled blank patient contact field',
                extra={'patient_id': str(patient.id), 'field': field}
            )
