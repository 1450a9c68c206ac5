"""
Discharge URLs (mounted under /api/v1/episodes/).
"""
from django.urls import path

from .views import DischargeLetterView

urlpatterns = [
    path('<str:episode_id>/discharge-letter/', DischargeLetterView.as_view(), name='discharge-letter'),
]
