"""
Intake serializers.
"""
from rest_framework import serializers

from apps.authz.models import Clinician
from .models import (
    CHECKPOINT_ORDER,
    CareRequest,
    IntakeForm,
    Lead,
    PendingEpisode,
)


# ============================================================================
# Public funnel
# ============================================================================

class LeadCreateSerializer(serializers.ModelSerializer):
    """Create lead from a funnel submission."""

    class Meta:
        model = Lead
        fields = [
            'full_name',
            'email',
            'phone',
            'primary_concern',
            'system_category',
            'utm_source',
            'utm_medium',
            'utm_campaign',
            'utm_term',
            'utm_content',
            'origin_page',
            'origin_cta',
            'pillar_origin',
        ]

    def validate_full_name(self, value):
        if not value.strip():
            raise serializers.ValidationError('Full name is required')
        return value.strip()

    def validate_email(self, value):
        return value.strip().lower()

    def validate(self, attrs):
        if not attrs.get('email') and not attrs.get('phone'):
            raise serializers.ValidationError('Either email or phone is required')
        if not attrs.get('system_category') and attrs.get('primary_concern'):
            attrs['system_category'] = attrs['primary_concern']
        return attrs


class LeadCheckpointSerializer(serializers.Serializer):
    checkpoint = serializers.ChoiceField(choices=[str(c) for c in CHECKPOINT_ORDER])


class CareRequestSubmitSerializer(serializers.Serializer):
    """Public care-request submission: the raw intake payload plus links."""
    payload = serializers.JSONField()
    lead_id = serializers.PrimaryKeyRelatedField(
        queryset=Lead.objects.all(), source='lead', required=False, allow_null=True
    )

    def validate_payload(self, value):
        if not isinstance(value, dict) or not value:
            raise serializers.ValidationError('Payload must be a non-empty object')
        if not (value.get('patient_name') or value.get('legalName')):
            raise serializers.ValidationError('patient_name is required')
        return value


class IntakeFormSubmitSerializer(serializers.ModelSerializer):
    """Public intake-form submission. Unknown keys are kept in the raw payload."""
    lead_id = serializers.PrimaryKeyRelatedField(
        queryset=Lead.objects.all(), source='lead', required=False, allow_null=True
    )
    pain_level = serializers.IntegerField(min_value=0, max_value=10, required=False, allow_null=True)

    class Meta:
        model = IntakeForm
        fields = [
            'patient_name',
            'email',
            'phone',
            'date_of_birth',
            'chief_complaint',
            'pain_level',
            'injury_date',
            'injury_mechanism',
            'medical_history',
            'current_medications',
            'complaints',
            'emergency_contact_name',
            'emergency_contact_phone',
            'insurance_provider',
            'referring_physician',
            'access_code',
            'clinic',
            'lead_id',
        ]

    def validate_patient_name(self, value):
        if not value.strip():
            raise serializers.ValidationError('Patient name is required')
        return value.strip()

    def validate_complaints(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError('Complaints must be a list')
        return value


# ============================================================================
# Staff triage
# ============================================================================

class CareRequestSerializer(serializers.ModelSerializer):
    assigned_clinician_name = serializers.CharField(
        source='assigned_clinician.display_name', read_only=True, default=None
    )
    approval_ready = serializers.BooleanField(read_only=True)

    class Meta:
        model = CareRequest
        fields = [
            'id',
            'status',
            'intake_payload',
            'lead',
            'clinic',
            'assigned_clinician',
            'assigned_clinician_name',
            'approval_ready',
            'patient',
            'episode',
            'approved_at',
            'clarification_message',
            'archive_reason',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class AssignClinicianSerializer(serializers.Serializer):
    clinician_id = serializers.PrimaryKeyRelatedField(
        queryset=Clinician.objects.filter(is_active=True), source='clinician'
    )


class ClarificationSerializer(serializers.Serializer):
    message = serializers.CharField()


class ArchiveSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class IntakeFormSerializer(serializers.ModelSerializer):

    class Meta:
        model = IntakeForm
        fields = [
            'id',
            'status',
            'patient_name',
            'email',
            'phone',
            'date_of_birth',
            'chief_complaint',
            'pain_level',
            'injury_date',
            'complaints',
            'access_code',
            'lead',
            'clinic',
            'converted_to_episode',
            'converted_at',
            'created_at',
        ]
        read_only_fields = fields


class PendingEpisodeSerializer(serializers.ModelSerializer):

    class Meta:
        model = PendingEpisode
        fields = [
            'id',
            'patient_name',
            'access_code',
            'clinician',
            'clinic',
            'body_region',
            'status',
            'converted_at',
            'converted_episode',
            'created_at',
        ]
        read_only_fields = ['id', 'status', 'converted_at', 'converted_episode', 'created_at']
        extra_kwargs = {'access_code': {'required': False}}
