"""
Notifications URLs.
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import NotificationFailureViewSet, NotificationViewSet

router = SimpleRouter()
# Registered before the inbox so 'failures/' is not read as a notification id
router.register(r'failures', NotificationFailureViewSet, basename='notification-failure')
router.register(r'', NotificationViewSet, basename='notification')

urlpatterns = [
    path('', include(router.urls)),
]
