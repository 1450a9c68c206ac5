from django.contrib import admin
from .models import Episode, EpisodeIntakeSnapshot, PatientEpisodeAccess, PendingEpisodeContinuation


@admin.register(Episode)
class EpisodeAdmin(admin.ModelAdmin):
    list_display = ['id', 'clinician_name', 'body_region', 'status', 'date_of_service', 'created_at']
    list_filter = ['status', 'episode_type']
    search_fields = ['id']
    readonly_fields = ['id', 'patient', 'source_care_request', 'source_intake_form',
                       'source_continuation', 'created_at', 'updated_at']

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(EpisodeIntakeSnapshot)
class EpisodeIntakeSnapshotAdmin(admin.ModelAdmin):
    list_display = ['id', 'episode', 'payload_version', 'created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(PatientEpisodeAccess)
class PatientEpisodeAccessAdmin(admin.ModelAdmin):
    list_display = ['patient', 'episode', 'is_active', 'granted_at']
    list_filter = ['is_active']


@admin.register(PendingEpisodeContinuation)
class PendingEpisodeContinuationAdmin(admin.ModelAdmin):
    list_display = ['id', 'source_episode', 'status', 'clinician', 'created_at']
    list_filter = ['status', 'continuation_source']
    readonly_fields = ['id', 'status', 'created_episode', 'completed_at', 'completed_by', 'created_at', 'updated_at']
