from django.contrib import admin
from .models import LifecycleEvent


@admin.register(LifecycleEvent)
class LifecycleEventAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'event_type', 'entity_type', 'entity_id', 'actor_type', 'actor_id']
    list_filter = ['entity_type', 'actor_type', 'created_at']
    search_fields = ['entity_id', 'event_type', 'actor_id']
    readonly_fields = ['id', 'created_at', 'entity_type', 'entity_id', 'event_type', 'actor_type', 'actor_id', 'metadata']

    def has_add_permission(self, request):
        # Ledger rows are written by the pipeline only
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
