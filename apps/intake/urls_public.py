"""
Public funnel URLs (no authentication, throttled).
"""
from django.urls import path

from .views_public import (
    create_lead_view,
    lead_checkpoint_view,
    submit_care_request_view,
    submit_intake_form_view,
)

app_name = 'public'

urlpatterns = [
    path('leads/', create_lead_view, name='lead-create'),
    path('leads/<uuid:lead_id>/checkpoint/', lead_checkpoint_view, name='lead-checkpoint'),
    path('care-requests/', submit_care_request_view, name='care-request-submit'),
    path('intake-forms/', submit_intake_form_view, name='intake-form-submit'),
]
