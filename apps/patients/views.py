"""
Patients views - read-only identity lookup for staff.
"""
from rest_framework import viewsets

from apps.authz.permissions import IsClinicalStaff
from .models import PatientAccount
from .serializers import PatientAccountSerializer


class PatientAccountViewSet(viewsets.ReadOnlyModelViewSet):
    """
    GET /api/v1/patients/ - List patient accounts
    GET /api/v1/patients/?email=<email> - Exact lookup by normalized email
    GET /api/v1/patients/{id}/ - Detail

    Accounts are created only by the conversion pipeline.
    """
    serializer_class = PatientAccountSerializer
    permission_classes = [IsClinicalStaff]

    def get_queryset(self):
        queryset = PatientAccount.objects.all()
        email = self.request.query_params.get('email')
        if email:
            queryset = queryset.filter(email=PatientAccount.normalize_email(email))
        return queryset
