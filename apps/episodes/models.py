"""
Episode models: episode, episode_intake_snapshot, patient_episode_access,
pending_episode_continuation

An Episode is the clinically owned unit of care. It is created exactly
once per successful conversion and never deleted; closing is a status.
"""
import uuid
from django.conf import settings
from django.db import models

from apps.core.immutability import AppendOnlyModel, ImmutableRecordError
from .identifiers import generate_episode_id


class EpisodeStatusChoices(models.TextChoices):
    ACTIVE = 'ACTIVE', 'Active'
    ACTIVE_CONSERVATIVE_CARE = 'ACTIVE_CONSERVATIVE_CARE', 'Active - Conservative Care'
    CLOSED = 'CLOSED', 'Closed'


OPEN_EPISODE_STATUSES = frozenset([
    EpisodeStatusChoices.ACTIVE,
    EpisodeStatusChoices.ACTIVE_CONSERVATIVE_CARE,
])

# Back-references to the record an episode was opened from
WRITE_ONCE_FIELDS = (
    'source_care_request_id',
    'source_intake_form_id',
    'source_continuation_id',
)


class EpisodeQuerySet(models.QuerySet):

    def update(self, **kwargs):
        locked = [
            name for name in kwargs
            if name in WRITE_ONCE_FIELDS or f'{name}_id' in WRITE_ONCE_FIELDS
        ]
        if locked:
            raise ImmutableRecordError(f'Episode back-references are write-once: {locked}')
        return super().update(**kwargs)


class Episode(models.Model):
    """
    Clinically owned episode of care.

    BUSINESS RULES:
    - id is generated in the application (EP-<ms>-<suffix>)
    - source_care_request / source_intake_form / source_continuation are
      set at creation and never changed
    - patient_name, date_of_birth and clinician_name are snapshots taken at
      creation; later edits to the patient or clinician do not rewrite them
    """
    id = models.CharField(primary_key=True, max_length=40, default=generate_episode_id, editable=False)

    patient = models.ForeignKey(
        'patients.PatientAccount',
        on_delete=models.PROTECT,
        related_name='episodes'
    )
    patient_name = models.CharField(max_length=255)
    date_of_birth = models.DateField(null=True, blank=True)

    clinician = models.ForeignKey(
        'authz.Clinician',
        on_delete=models.PROTECT,
        related_name='episodes'
    )
    clinician_name = models.CharField(max_length=255, blank=True)
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='episodes'
    )

    body_region = models.CharField(max_length=100)
    episode_type = models.CharField(max_length=100)
    status = models.CharField(
        max_length=32,
        choices=EpisodeStatusChoices.choices,
        default=EpisodeStatusChoices.ACTIVE
    )
    date_of_service = models.DateField(null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)

    # Clinical context copied from the source record
    diagnosis = models.TextField(blank=True)
    injury_date = models.DateField(null=True, blank=True)
    injury_mechanism = models.TextField(blank=True)
    medical_history = models.TextField(blank=True)
    medications = models.TextField(blank=True)
    pain_level = models.PositiveSmallIntegerField(null=True, blank=True)
    referring_physician = models.CharField(max_length=255, blank=True)
    insurance_provider = models.CharField(max_length=255, blank=True)
    emergency_contact_name = models.CharField(max_length=255, blank=True)
    emergency_contact_phone = models.CharField(max_length=50, blank=True)

    source_care_request = models.ForeignKey(
        'intake.CareRequest',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='source_episodes'
    )
    source_intake_form = models.ForeignKey(
        'intake.IntakeForm',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='source_episodes'
    )
    source_continuation = models.ForeignKey(
        'episodes.PendingEpisodeContinuation',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='opened_episodes'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = EpisodeQuerySet.as_manager()

    class Meta:
        db_table = 'episode'
        verbose_name = 'Episode'
        verbose_name_plural = 'Episodes'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='idx_episode_status'),
            models.Index(fields=['clinician', 'status'], name='idx_episode_clinician'),
            models.Index(fields=['patient'], name='idx_episode_patient'),
        ]

    def __str__(self):
        return f"Episode {self.id} ({self.status})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            self._check_write_once_fields()
        super().save(*args, **kwargs)

    def _check_write_once_fields(self):
        stored = type(self).objects.filter(pk=self.pk).values(*WRITE_ONCE_FIELDS).first()
        if stored is None:
            return
        for field in WRITE_ONCE_FIELDS:
            if stored[field] is not None and stored[field] != getattr(self, field):
                raise ImmutableRecordError(f'Episode {self.pk}: {field} is write-once')


class EpisodeIntakeSnapshot(AppendOnlyModel):
    """
    Exact copy of the payload an episode was opened from.

    Stored apart from the Episode so later episode edits cannot change the
    record of what was known at intake. Never updated, never deleted.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    episode = models.ForeignKey(
        Episode,
        on_delete=models.PROTECT,
        related_name='intake_snapshots'
    )
    care_request = models.ForeignKey(
        'intake.CareRequest',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='snapshots'
    )
    intake_form = models.ForeignKey(
        'intake.IntakeForm',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='snapshots'
    )
    continuation = models.ForeignKey(
        'episodes.PendingEpisodeContinuation',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='snapshots'
    )
    payload = models.JSONField(default=dict)
    payload_version = models.PositiveSmallIntegerField(default=1)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'episode_intake_snapshot'
        verbose_name = 'Episode Intake Snapshot'
        verbose_name_plural = 'Episode Intake Snapshots'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['episode'], name='idx_snapshot_episode'),
        ]

    def __str__(self):
        return f"Snapshot {self.id} for {self.episode_id}"


class PatientEpisodeAccess(models.Model):
    """Patient-portal access to one episode."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        'patients.PatientAccount',
        on_delete=models.PROTECT,
        related_name='episode_access'
    )
    episode = models.ForeignKey(
        Episode,
        on_delete=models.PROTECT,
        related_name='patient_access'
    )
    is_active = models.BooleanField(default=True)
    granted_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patient_episode_access'
        verbose_name = 'Patient Episode Access'
        verbose_name_plural = 'Patient Episode Access'
        constraints = [
            models.UniqueConstraint(fields=['patient', 'episode'], name='uniq_patient_episode_access'),
        ]

    def __str__(self):
        return f"{self.patient_id} -> {self.episode_id}"


class ContinuationSourceChoices(models.TextChoices):
    DOCUMENTED = 'documented', 'Documented Complaint'
    NEWLY_IDENTIFIED = 'newly_identified', 'Newly Identified'


class ContinuationStatusChoices(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    SETUP_COMPLETE = 'SETUP_COMPLETE', 'Setup Complete'
    CANCELLED = 'CANCELLED', 'Cancelled'


class PendingEpisodeContinuation(models.Model):
    """
    Staff request to continue care for another complaint with a new episode.

    BUSINESS RULE: created_episode goes null -> set exactly once, together
    with SETUP_COMPLETE.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    source_episode = models.ForeignKey(
        Episode,
        on_delete=models.PROTECT,
        related_name='continuations'
    )
    continuation_source = models.CharField(
        max_length=20,
        choices=ContinuationSourceChoices.choices,
        default=ContinuationSourceChoices.DOCUMENTED
    )
    documented_complaint_ref = models.CharField(max_length=255, blank=True)

    primary_complaint = models.TextField()
    body_region = models.CharField(max_length=100, blank=True)
    category = models.CharField(max_length=100, blank=True)
    transition_reason = models.TextField(blank=True)
    outcome_tools_suggestion = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)

    clinician = models.ForeignKey(
        'authz.Clinician',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='continuations'
    )
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='continuations'
    )

    status = models.CharField(
        max_length=20,
        choices=ContinuationStatusChoices.choices,
        default=ContinuationStatusChoices.PENDING
    )
    created_episode = models.OneToOneField(
        Episode,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='created_from_continuation'
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'pending_episode_continuation'
        verbose_name = 'Pending Episode Continuation'
        verbose_name_plural = 'Pending Episode Continuations'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='idx_continuation_status'),
            models.Index(fields=['source_episode'], name='idx_continuation_source'),
        ]

    def __str__(self):
        return f"Continuation {self.id} ({self.status})"
