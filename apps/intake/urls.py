"""
Intake URLs (staff).
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import CareRequestViewSet, IntakeFormViewSet, PendingEpisodeViewSet

router = DefaultRouter()
router.register(r'care-requests', CareRequestViewSet, basename='care-request')
router.register(r'intake-forms', IntakeFormViewSet, basename='intake-form')
router.register(r'pending-episodes', PendingEpisodeViewSet, basename='pending-episode')

urlpatterns = [
    path('', include(router.urls)),
]
