"""
Discharge serializers.
"""
from rest_framework import serializers
from .models import DischargeLetterTask

DISCHARGE_ACTIONS = ('draft', 'confirm', 'send')


class DischargeLetterTaskSerializer(serializers.ModelSerializer):

    class Meta:
        model = DischargeLetterTask
        fields = [
            'id',
            'episode',
            'status',
            'draft_letter',
            'draft_generated_at',
            'confirmed_at',
            'confirmed_by',
            'sent_at',
            'sent_by',
            'sent_to',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields
