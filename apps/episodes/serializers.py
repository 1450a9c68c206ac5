"""
Episode serializers.
"""
from rest_framework import serializers

from apps.authz.models import Clinician
from .models import (
    ContinuationSourceChoices,
    Episode,
    EpisodeIntakeSnapshot,
    PendingEpisodeContinuation,
)


class ConversionRequestSerializer(serializers.Serializer):
    """Body of every conversion endpoint: {"sourceRecordId": "<uuid>"}."""
    sourceRecordId = serializers.UUIDField()


class EpisodeSerializer(serializers.ModelSerializer):

    class Meta:
        model = Episode
        fields = [
            'id',
            'patient',
            'patient_name',
            'date_of_birth',
            'clinician',
            'clinician_name',
            'clinic',
            'body_region',
            'episode_type',
            'status',
            'date_of_service',
            'closed_at',
            'diagnosis',
            'injury_date',
            'injury_mechanism',
            'medical_history',
            'medications',
            'pain_level',
            'referring_physician',
            'insurance_provider',
            'emergency_contact_name',
            'emergency_contact_phone',
            'source_care_request',
            'source_intake_form',
            'source_continuation',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class EpisodeIntakeSnapshotSerializer(serializers.ModelSerializer):

    class Meta:
        model = EpisodeIntakeSnapshot
        fields = ['id', 'episode', 'care_request', 'intake_form', 'continuation',
                  'payload', 'payload_version', 'created_at']
        read_only_fields = fields


class PendingEpisodeContinuationSerializer(serializers.ModelSerializer):
    clinician = serializers.PrimaryKeyRelatedField(
        queryset=Clinician.objects.filter(is_active=True), required=False, allow_null=True
    )

    class Meta:
        model = PendingEpisodeContinuation
        fields = [
            'id',
            'source_episode',
            'continuation_source',
            'documented_complaint_ref',
            'primary_complaint',
            'body_region',
            'category',
            'transition_reason',
            'outcome_tools_suggestion',
            'notes',
            'clinician',
            'clinic',
            'status',
            'created_episode',
            'completed_at',
            'created_at',
        ]
        read_only_fields = ['id', 'status', 'created_episode', 'completed_at', 'created_at']

    def validate_primary_complaint(self, value):
        if not value.strip():
            raise serializers.ValidationError('Primary complaint is required')
        return value.strip()

    def validate(self, attrs):
        continuation_source = attrs.get('continuation_source', ContinuationSourceChoices.DOCUMENTED)
        if continuation_source == ContinuationSourceChoices.DOCUMENTED and not attrs.get('documented_complaint_ref'):
            raise serializers.ValidationError(
                {'documented_complaint_ref': 'Required when continuing a documented complaint'}
            )
        return attrs
