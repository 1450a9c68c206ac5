"""
Core models: clinic

A clinic owns clinicians and episodes and carries the patient-facing
message templates used when an intake is converted into an episode.
"""
import uuid
from django.db import models


DEFAULT_WELCOME_SUBJECT = 'Welcome to {{ clinic_name }}'

DEFAULT_WELCOME_BODY = (
    'Hi {{ patient_name }},\n\n'
    'Your {{ episode_type }} episode of care for {{ body_region }} has been opened '
    'with {{ clinician_name }} at {{ clinic_name }}.\n\n'
    'If you have any questions call us at {{ clinic_phone }}.\n'
)

DEFAULT_SCHEDULING_SUBJECT = 'Schedule your first visit at {{ clinic_name }}'

DEFAULT_SCHEDULING_BODY = (
    'Hi {{ patient_name }},\n\n'
    'Please call {{ clinic_phone }} to book your first visit with {{ clinician_name }}.\n'
    'We are located at {{ clinic_address }}.\n'
)


class Clinic(models.Model):
    """
    Clinic (site) with patient communication settings.

    Template fields use Django template placeholders:
    {{ clinic_name }}, {{ patient_name }}, {{ clinician_name }},
    {{ episode_type }}, {{ body_region }}, {{ clinic_phone }}, {{ clinic_address }}
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=50, blank=True)
    email = models.EmailField(max_length=255, blank=True)
    address = models.TextField(blank=True)

    welcome_email_subject = models.CharField(max_length=255, blank=True)
    welcome_email_body = models.TextField(blank=True)
    scheduling_email_enabled = models.BooleanField(
        default=False,
        help_text='Send a scheduling email right after the welcome email'
    )
    scheduling_email_subject = models.CharField(max_length=255, blank=True)
    scheduling_email_body = models.TextField(blank=True)

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'clinic'
        verbose_name = 'Clinic'
        verbose_name_plural = 'Clinics'
        ordering = ['name']
        indexes = [
            models.Index(fields=['is_active'], name='idx_clinic_active'),
        ]

    def __str__(self):
        return self.name

    def template_context(self):
        """Clinic placeholders shared by every patient-facing template."""
        return {
            'clinic_name': self.name,
            'clinic_phone': self.phone,
            'clinic_address': self.address,
        }

    def welcome_templates(self):
        """Return (subject, body) for the welcome email, falling back to defaults."""
        return (
            self.welcome_email_subject or DEFAULT_WELCOME_SUBJECT,
            self.welcome_email_body or DEFAULT_WELCOME_BODY,
        )

    def scheduling_templates(self):
        """Return (subject, body) for the scheduling email, falling back to defaults."""
        return (
            self.scheduling_email_subject or DEFAULT_SCHEDULING_SUBJECT,
            self.scheduling_email_body or DEFAULT_SCHEDULING_BODY,
        )
