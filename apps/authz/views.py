"""
Authz views for Clinician.
"""
from rest_framework import viewsets
from apps.authz.models import Clinician
from apps.authz.serializers import ClinicianSerializer, ClinicianWriteSerializer
from apps.authz.permissions import ClinicianPermission


class ClinicianViewSet(viewsets.ModelViewSet):
    """
    Clinician directory.

    Endpoints:
    - GET /api/v1/clinicians/ - List clinicians (active only by default)
    - GET /api/v1/clinicians/{id}/ - Clinician detail
    - POST /api/v1/clinicians/ - Create (Admin only)
    - PATCH /api/v1/clinicians/{id}/ - Update (Admin only)

    Query parameters:
    - ?include_inactive=true
    - ?clinic=<uuid>
    - ?q=search_term - Search by display_name
    """
    permission_classes = [ClinicianPermission]
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    def get_queryset(self):
        queryset = Clinician.objects.select_related('user', 'clinic').all()

        include_inactive = self.request.query_params.get('include_inactive', 'false').lower() == 'true'
        if not include_inactive:
            queryset = queryset.filter(is_active=True)

        clinic = self.request.query_params.get('clinic')
        if clinic:
            queryset = queryset.filter(clinic_id=clinic)

        q = self.request.query_params.get('q')
        if q:
            queryset = queryset.filter(display_name__icontains=q)

        return queryset.order_by('display_name')

    def get_serializer_class(self):
        if self.action in ('list', 'retrieve'):
            return ClinicianSerializer
        return ClinicianWriteSerializer
