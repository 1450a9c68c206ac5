"""
Discharge models: discharge_letter_task

One patient discharge letter per episode, moving draft -> confirmed -> sent.
"""
import uuid
from django.conf import settings
from django.db import models


class DischargeLetterStatusChoices(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    CONFIRMED = 'confirmed', 'Confirmed'
    SENT = 'sent', 'Sent'


class DischargeLetterTask(models.Model):
    """
    Patient discharge letter for a closed episode.

    BUSINESS RULES:
    - confirm only from draft, send only from confirmed
    - sent is terminal: no further draft, confirm or send succeeds
    - regenerating a confirmed draft returns it to draft
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    episode = models.OneToOneField(
        'episodes.Episode',
        on_delete=models.PROTECT,
        related_name='discharge_letter_task'
    )
    status = models.CharField(
        max_length=20,
        choices=DischargeLetterStatusChoices.choices,
        default=DischargeLetterStatusChoices.DRAFT
    )
    draft_letter = models.JSONField(default=dict, blank=True)
    draft_generated_at = models.DateTimeField(null=True, blank=True)

    confirmed_at = models.DateTimeField(null=True, blank=True)
    confirmed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    sent_at = models.DateTimeField(null=True, blank=True)
    sent_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    sent_to = models.EmailField(max_length=255, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'discharge_letter_task'
        verbose_name = 'Discharge Letter Task'
        verbose_name_plural = 'Discharge Letter Tasks'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_discharge_letter_status'),
        ]

    def __str__(self):
        return f"DischargeLetter {self.episode_id} ({self.status})"
