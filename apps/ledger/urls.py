"""
Ledger URLs.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import LifecycleEventViewSet

router = DefaultRouter()
router.register(r'events', LifecycleEventViewSet, basename='lifecycle-event')

urlpatterns = [
    path('', include(router.urls)),
]
