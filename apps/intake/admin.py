from django.contrib import admin
from .models import CareRequest, IntakeForm, Lead, PendingEpisode


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):
    list_display = ['id', 'checkpoint_status', 'utm_source', 'pillar_origin', 'created_at']
    list_filter = ['checkpoint_status', 'pillar_origin']
    readonly_fields = ['id', 'checkpoint_status', 'severity_checked_at', 'intake_started_at',
                       'intake_completed_at', 'episode_opened_at', 'created_at', 'updated_at']


@admin.register(CareRequest)
class CareRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'status', 'assigned_clinician', 'episode', 'created_at']
    list_filter = ['status']
    readonly_fields = ['id', 'status', 'intake_payload', 'patient', 'episode', 'approved_at',
                       'created_at', 'updated_at']


@admin.register(IntakeForm)
class IntakeFormAdmin(admin.ModelAdmin):
    list_display = ['id', 'status', 'access_code', 'converted_to_episode', 'created_at']
    list_filter = ['status']
    readonly_fields = ['id', 'status', 'payload', 'converted_to_episode', 'converted_at',
                       'created_at', 'updated_at']


@admin.register(PendingEpisode)
class PendingEpisodeAdmin(admin.ModelAdmin):
    list_display = ['id', 'access_code', 'clinician', 'status', 'created_at']
    list_filter = ['status']
    readonly_fields = ['id', 'status', 'converted_at', 'converted_episode', 'created_at', 'updated_at']
