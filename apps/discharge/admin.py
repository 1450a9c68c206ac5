from django.contrib import admin
from .models import DischargeLetterTask


@admin.register(DischargeLetterTask)
class DischargeLetterTaskAdmin(admin.ModelAdmin):
    list_display = ['episode', 'status', 'draft_generated_at', 'confirmed_at', 'sent_at']
    list_filter = ['status']
    readonly_fields = ['id', 'episode', 'status', 'confirmed_at', 'confirmed_by',
                       'sent_at', 'sent_by', 'sent_to', 'created_at', 'updated_at']
