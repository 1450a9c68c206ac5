from rest_framework import serializers
from .models import Notification, NotificationFailure


class NotificationSerializer(serializers.ModelSerializer):

    class Meta:
        model = Notification
        fields = [
            'id',
            'notification_type',
            'title',
            'message',
            'link',
            'is_read',
            'created_at',
        ]
        read_only_fields = fields


class NotificationFailureSerializer(serializers.ModelSerializer):

    class Meta:
        model = NotificationFailure
        fields = [
            'id',
            'channel',
            'template',
            'entity_type',
            'entity_id',
            'step',
            'error_type',
            'status',
            'retry_count',
            'max_retries',
            'next_retry_at',
            'last_retry_at',
            'resolved_at',
            'created_at',
        ]
        read_only_fields = fields
