"""
Patients URLs.
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import PatientAccountViewSet

router = SimpleRouter()
router.register(r'', PatientAccountViewSet, basename='patient-account')

urlpatterns = [
    path('', include(router.urls)),
]
