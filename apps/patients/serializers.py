"""
Patients serializers.
"""
from rest_framework import serializers
from .models import PatientAccount


class PatientAccountSerializer(serializers.ModelSerializer):

    class Meta:
        model = PatientAccount
        fields = [
            'id',
            'email',
            'full_name',
            'phone',
            'date_of_birth',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields
