from django.contrib import admin
from .models import Clinic


@admin.register(Clinic)
class ClinicAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'email', 'scheduling_email_enabled', 'is_active', 'created_at']
    list_filter = ['is_active', 'scheduling_email_enabled']
    search_fields = ['name', 'email']
    readonly_fields = ['id', 'created_at', 'updated_at']

    fieldsets = (
        (None, {'fields': ('id', 'name', 'phone', 'email', 'address', 'is_active')}),
        ('Welcome email', {'fields': ('welcome_email_subject', 'welcome_email_body')}),
        ('Scheduling email', {'fields': ('scheduling_email_enabled', 'scheduling_email_subject', 'scheduling_email_body')}),
        ('Important dates', {'fields': ('created_at', 'updated_at')}),
    )
