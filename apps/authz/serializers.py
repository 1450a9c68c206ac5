"""
Authz serializers for Clinician.
"""
from rest_framework import serializers
from apps.authz.models import Clinician


class ClinicianSerializer(serializers.ModelSerializer):
    """Read serializer used by triage screens to pick an assignee."""
    user_email = serializers.EmailField(source='user.email', read_only=True)
    clinic_name = serializers.CharField(source='clinic.name', read_only=True, default=None)

    class Meta:
        model = Clinician
        fields = [
            'id',
            'user',
            'user_email',
            'display_name',
            'specialty',
            'clinic',
            'clinic_name',
            'is_active',
            'created_at',
        ]
        read_only_fields = fields


class ClinicianWriteSerializer(serializers.ModelSerializer):
    """Create/update clinicians (Admin only)."""

    class Meta:
        model = Clinician
        fields = [
            'id',
            'user',
            'display_name',
            'specialty',
            'clinic',
            'is_active',
        ]
        read_only_fields = ['id']

    def validate_user(self, value):
        if self.instance is None and Clinician.objects.filter(user=value).exists():
            raise serializers.ValidationError(
                'User already has a clinician profile'
            )
        return value
