from django.contrib import admin
from .models import PatientAccount


@admin.register(PatientAccount)
class PatientAccountAdmin(admin.ModelAdmin):
    list_display = ['id', 'full_name', 'email', 'created_at']
    search_fields = ['email', 'full_name']
    readonly_fields = ['id', 'email', 'created_at', 'updated_at']

    def has_delete_permission(self, request, obj=None):
        # Identities are never deleted
        return False
