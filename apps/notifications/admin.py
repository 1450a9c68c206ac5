from django.contrib import admin
from .models import Notification, NotificationFailure


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'notification_type', 'recipient', 'is_read']
    list_filter = ['notification_type', 'is_read']
    search_fields = ['recipient__email']
    readonly_fields = ['id', 'created_at']


@admin.register(NotificationFailure)
class NotificationFailureAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'channel', 'template', 'step', 'status', 'retry_count', 'max_retries']
    list_filter = ['status', 'channel', 'template']
    search_fields = ['entity_id']
    readonly_fields = ['id', 'created_at', 'updated_at']
