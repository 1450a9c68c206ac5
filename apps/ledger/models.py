"""
Ledger models: lifecycle_event

The lifecycle ledger is the audit trail of every state transition in the
intake-to-episode pipeline: what happened, to which entity, by whom, when.
"""
import uuid
from django.db import models

from apps.core.immutability import AppendOnlyModel


class ActorTypeChoices(models.TextChoices):
    ADMIN = 'admin', 'Admin'
    CLINICIAN = 'clinician', 'Clinician'
    STAFF = 'staff', 'Staff'
    PATIENT = 'patient', 'Patient'
    SYSTEM = 'system', 'System'


class EntityTypeChoices(models.TextChoices):
    LEAD = 'lead', 'Lead'
    CARE_REQUEST = 'care_request', 'Care Request'
    INTAKE_FORM = 'intake_form', 'Intake Form'
    PENDING_EPISODE = 'pending_episode', 'Pending Episode'
    PATIENT = 'patient', 'Patient'
    EPISODE = 'episode', 'Episode'
    CONTINUATION = 'continuation', 'Pending Episode Continuation'


class LifecycleEvent(AppendOnlyModel):
    """
    Append-only ledger row.

    Fields:
    - entity_type / entity_id: the entity that transitioned (entity_id is a
      string because episode ids are not UUIDs)
    - event_type: e.g. EPISODE_CREATED, CARE_REQUEST_APPROVED
    - actor_type / actor_id: who triggered it (actor_id null for system)
    - metadata: ids and flags only, never PHI
    - created_at: when it was recorded

    BUSINESS RULE: never updated, never deleted.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    entity_type = models.CharField(max_length=40, choices=EntityTypeChoices.choices)
    entity_id = models.CharField(max_length=64)
    event_type = models.CharField(max_length=100)
    actor_type = models.CharField(
        max_length=20,
        choices=ActorTypeChoices.choices,
        default=ActorTypeChoices.SYSTEM
    )
    actor_id = models.CharField(max_length=64, null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'lifecycle_event'
        verbose_name = 'Lifecycle Event'
        verbose_name_plural = 'Lifecycle Events'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id'], name='idx_lifecycle_entity'),
            models.Index(fields=['event_type'], name='idx_lifecycle_event_type'),
            models.Index(fields=['created_at'], name='idx_lifecycle_created'),
        ]

    def __str__(self):
        return f"{self.event_type} {self.entity_type}:{self.entity_id}"
