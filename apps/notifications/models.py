"""
Notifications models: notification (in-app), notification_failure
"""
import uuid
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class Notification(models.Model):
    """In-app notification shown to a staff user."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    notification_type = models.CharField(max_length=64)
    title = models.CharField(max_length=255)
    message = models.TextField(blank=True)
    link = models.CharField(max_length=500, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notification'
        verbose_name = 'Notification'
        verbose_name_plural = 'Notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'is_read'], name='idx_notification_unread'),
            models.Index(fields=['created_at'], name='idx_notification_created'),
        ]

    def __str__(self):
        return f"{self.notification_type} -> {self.recipient_id}"


class NotificationFailureStatusChoices(models.TextChoices):
    PENDING = 'pending', 'Pending Retry'
    RESOLVED = 'resolved', 'Resolved'
    EXHAUSTED = 'exhausted', 'Retries Exhausted'


class NotificationFailure(models.Model):
    """
    A notification the gate could not deliver.

    Holds everything needed to send it again through the same gate:
    channel, template, recipient reference (email address or user id) and
    the rendered-from context. Retries back off via next_retry_at until
    retry_count reaches max_retries.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    channel = models.CharField(max_length=32)
    template = models.CharField(max_length=64)
    recipient_ref = models.CharField(max_length=255)
    context = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)

    entity_type = models.CharField(max_length=64, blank=True)
    entity_id = models.CharField(max_length=64, blank=True)
    step = models.CharField(max_length=64, blank=True)

    error_type = models.CharField(max_length=128)
    error_message = models.TextField(blank=True)

    status = models.CharField(
        max_length=20,
        choices=NotificationFailureStatusChoices.choices,
        default=NotificationFailureStatusChoices.PENDING
    )
    retry_count = models.PositiveIntegerField(default=0)
    max_retries = models.PositiveIntegerField(default=3)
    next_retry_at = models.DateTimeField(null=True, blank=True)
    last_retry_at = models.DateTimeField(null=True, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'notification_failure'
        verbose_name = 'Notification Failure'
        verbose_name_plural = 'Notification Failures'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'next_retry_at'], name='idx_notif_failure_due'),
            models.Index(fields=['entity_type', 'entity_id'], name='idx_notif_failure_entity'),
        ]

    def __str__(self):
        return f"{self.channel}:{self.template} ({self.status}, {self.retry_count}/{self.max_retries})"
