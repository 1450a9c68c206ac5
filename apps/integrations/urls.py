"""Integration URLs."""
from django.urls import path
from .views import intake_webhook

urlpatterns = [
    path('intake/webhook/', intake_webhook, name='intake-webhook'),
]
