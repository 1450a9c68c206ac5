"""
Patients models: patient_account

A PatientAccount is the identity behind one or more episodes. It is keyed
by normalized email; accounts created without an email cannot be
deduplicated and are accepted as distinct identities.
"""
import uuid
from django.conf import settings
from django.db import models
from django.db.models import Q
from django.db.models.functions import Lower


class PatientAccount(models.Model):
    """
    Patient identity record.

    Invariants:
    - At most one row per normalized (trimmed, lower-cased) email,
      enforced by uniq_patient_account_email on lower(email), so rows
      written without going through normalize_email still collide
    - Never deleted
    - Contact fields are first-write-wins: later conversions may fill a
      blank phone/date_of_birth but never overwrite a stored value
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(max_length=255, null=True, blank=True)
    full_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=50, blank=True, default='')
    date_of_birth = models.DateField(null=True, blank=True)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='patient_account',
        help_text='Set when the patient claims the account for portal access'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patient_account'
        verbose_name = 'Patient Account'
        verbose_name_plural = 'Patient Accounts'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                Lower('email'),
                condition=Q(email__isnull=False),
                name='uniq_patient_account_email',
            ),
        ]
        indexes = [
            models.Index(fields=['created_at'], name='idx_patient_account_created'),
        ]

    def __str__(self):
        return f"PatientAccount {self.id}"

    @staticmethod
    def normalize_email(value):
        """Trim and lower-case an email; blank or missing becomes None."""
        if value is None:
            return None
        normalized = str(value).strip().lower()
        return normalized or None
