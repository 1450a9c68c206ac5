"""
Intake models: lead, care_request, intake_form, pending_episode

These are the inbound records the conversion pipeline turns into
episodes. Each carries write-once references to the episode it produced.
"""
import secrets
import uuid
from django.db import models


# ============================================================================
# Lead (marketing / self-assessment funnel)
# ============================================================================

class LeadCheckpointChoices(models.TextChoices):
    """Funnel checkpoints, in order. A lead only moves forward."""
    STARTED = 'started', 'Started'
    SEVERITY_CHECKED = 'severity_checked', 'Severity Checked'
    INTAKE_STARTED = 'intake_started', 'Intake Started'
    INTAKE_COMPLETED = 'intake_completed', 'Intake Completed'
    EPISODE_OPENED = 'episode_opened', 'Episode Opened'


CHECKPOINT_ORDER = [
    LeadCheckpointChoices.STARTED,
    LeadCheckpointChoices.SEVERITY_CHECKED,
    LeadCheckpointChoices.INTAKE_STARTED,
    LeadCheckpointChoices.INTAKE_COMPLETED,
    LeadCheckpointChoices.EPISODE_OPENED,
]


class Lead(models.Model):
    """
    Unauthenticated prospective patient from a marketing/self-assessment funnel.

    BUSINESS RULES:
    - checkpoint_status advances monotonically along CHECKPOINT_ORDER
    - Never deleted
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    full_name = models.CharField(max_length=255)
    email = models.EmailField(max_length=255, blank=True)
    phone = models.CharField(max_length=50, blank=True)

    primary_concern = models.CharField(max_length=255, blank=True)
    system_category = models.CharField(max_length=100, blank=True)
    utm_source = models.CharField(max_length=255, blank=True)
    utm_medium = models.CharField(max_length=255, blank=True)
    utm_campaign = models.CharField(max_length=255, blank=True)
    utm_term = models.CharField(max_length=255, blank=True)
    utm_content = models.CharField(max_length=255, blank=True)
    origin_page = models.CharField(max_length=500, blank=True)
    origin_cta = models.CharField(max_length=255, blank=True)
    pillar_origin = models.CharField(max_length=100, blank=True)

    checkpoint_status = models.CharField(
        max_length=32,
        choices=LeadCheckpointChoices.choices,
        default=LeadCheckpointChoices.STARTED
    )
    severity_checked_at = models.DateTimeField(null=True, blank=True)
    intake_started_at = models.DateTimeField(null=True, blank=True)
    intake_completed_at = models.DateTimeField(null=True, blank=True)
    episode_opened_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'lead'
        verbose_name = 'Lead'
        verbose_name_plural = 'Leads'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['checkpoint_status', '-created_at'], name='idx_lead_checkpoint'),
            models.Index(fields=['email'], name='idx_lead_email'),
        ]

    def __str__(self):
        return f"Lead {self.id} ({self.checkpoint_status})"


# ============================================================================
# Care Request (staff-reviewed)
# ============================================================================

class CareRequestStatusChoices(models.TextChoices):
    SUBMITTED = 'SUBMITTED', 'Submitted'
    ASSIGNED = 'ASSIGNED', 'Assigned'
    IN_REVIEW = 'IN_REVIEW', 'In Review'
    CLARIFICATION_REQUESTED = 'CLARIFICATION_REQUESTED', 'Clarification Requested'
    APPROVED_FOR_CARE = 'APPROVED_FOR_CARE', 'Approved for Care'
    ARCHIVED = 'ARCHIVED', 'Archived'


# Statuses from which a care request with a clinician can be approved
APPROVABLE_CARE_REQUEST_STATUSES = frozenset([
    CareRequestStatusChoices.SUBMITTED,
    CareRequestStatusChoices.ASSIGNED,
    CareRequestStatusChoices.IN_REVIEW,
    CareRequestStatusChoices.CLARIFICATION_REQUESTED,
])


class CareRequest(models.Model):
    """
    Inbound request for care awaiting triage and approval.

    intake_payload is the request exactly as submitted; it is copied into
    an EpisodeIntakeSnapshot at approval.

    BUSINESS RULES:
    - Immutable once APPROVED_FOR_CARE or ARCHIVED
    - patient/episode are set exactly once, together with APPROVED_FOR_CARE
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    status = models.CharField(
        max_length=32,
        choices=CareRequestStatusChoices.choices,
        default=CareRequestStatusChoices.SUBMITTED
    )
    intake_payload = models.JSONField(default=dict)

    lead = models.ForeignKey(
        Lead,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='care_requests'
    )
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='care_requests'
    )
    assigned_clinician = models.ForeignKey(
        'authz.Clinician',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='assigned_care_requests'
    )

    patient = models.ForeignKey(
        'patients.PatientAccount',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='care_requests'
    )
    episode = models.OneToOneField(
        'episodes.Episode',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='approved_care_request'
    )
    approved_at = models.DateTimeField(null=True, blank=True)

    clarification_message = models.TextField(blank=True)
    archive_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'care_request'
        verbose_name = 'Care Request'
        verbose_name_plural = 'Care Requests'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='idx_care_request_status'),
            models.Index(fields=['assigned_clinician'], name='idx_care_request_clinician'),
        ]

    def __str__(self):
        return f"CareRequest {self.id} ({self.status})"

    @property
    def approval_ready(self):
        return (
            self.assigned_clinician_id is not None
            and self.status in APPROVABLE_CARE_REQUEST_STATUSES
        )


# ============================================================================
# Intake Form (patient self-completed)
# ============================================================================

class IntakeFormStatusChoices(models.TextChoices):
    SUBMITTED = 'submitted', 'Submitted'
    CONVERTED = 'converted', 'Converted'


class IntakeForm(models.Model):
    """
    Structured intake completed by a patient.

    Known clinical fields are typed columns; the full submission is kept
    in ``payload`` so variant forms lose nothing.

    BUSINESS RULE: converted_to_episode goes null -> set exactly once and is
    the idempotency guard for conversion.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    status = models.CharField(
        max_length=20,
        choices=IntakeFormStatusChoices.choices,
        default=IntakeFormStatusChoices.SUBMITTED
    )

    patient_name = models.CharField(max_length=255)
    email = models.EmailField(max_length=255, blank=True)
    phone = models.CharField(max_length=50, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)

    chief_complaint = models.TextField(blank=True)
    pain_level = models.PositiveSmallIntegerField(null=True, blank=True)
    injury_date = models.DateField(null=True, blank=True)
    injury_mechanism = models.TextField(blank=True)
    medical_history = models.TextField(blank=True)
    current_medications = models.TextField(blank=True)
    complaints = models.JSONField(default=list, blank=True)

    emergency_contact_name = models.CharField(max_length=255, blank=True)
    emergency_contact_phone = models.CharField(max_length=50, blank=True)
    insurance_provider = models.CharField(max_length=255, blank=True)
    referring_physician = models.CharField(max_length=255, blank=True)

    access_code = models.CharField(max_length=32, blank=True)
    payload = models.JSONField(default=dict, blank=True)

    lead = models.ForeignKey(
        Lead,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='intake_forms'
    )
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='intake_forms'
    )
    converted_to_episode = models.OneToOneField(
        'episodes.Episode',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='converted_intake_form'
    )
    converted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'intake_form'
        verbose_name = 'Intake Form'
        verbose_name_plural = 'Intake Forms'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='idx_intake_form_status'),
            models.Index(fields=['access_code'], name='idx_intake_form_access_code'),
        ]

    def __str__(self):
        return f"IntakeForm {self.id} ({self.status})"


# ============================================================================
# Pending Episode (staff placeholder awaiting intake)
# ============================================================================

class PendingEpisodeStatusChoices(models.TextChoices):
    INTAKE_PENDING = 'intake_pending', 'Intake Pending'
    CONVERTED = 'converted', 'Converted'


def generate_access_code():
    return secrets.token_hex(4).upper()


class PendingEpisode(models.Model):
    """
    Placeholder created by staff before the patient completes an intake.

    Supplies the clinician and body region when the intake arrives; matched
    by access_code, else by patient name.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient_name = models.CharField(max_length=255)
    access_code = models.CharField(max_length=32, default=generate_access_code)
    clinician = models.ForeignKey(
        'authz.Clinician',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='pending_episodes'
    )
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='pending_episodes'
    )
    body_region = models.CharField(max_length=100, blank=True)
    status = models.CharField(
        max_length=20,
        choices=PendingEpisodeStatusChoices.choices,
        default=PendingEpisodeStatusChoices.INTAKE_PENDING
    )
    converted_at = models.DateTimeField(null=True, blank=True)
    converted_episode = models.ForeignKey(
        'episodes.Episode',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='pending_episodes'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'pending_episode'
        verbose_name = 'Pending Episode'
        verbose_name_plural = 'Pending Episodes'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'access_code'], name='idx_pending_episode_code'),
        ]

    def __str__(self):
        return f"PendingEpisode {self.id} ({self.status})"
